"""Public API for the Relay runtime entrypoint."""

from packages.relay_core.main import (
    ORCHESTRATOR_COMPONENT_ID,
    instantiate_registered_components,
    main,
    run_runtime,
)

__all__ = [
    "ORCHESTRATOR_COMPONENT_ID",
    "instantiate_registered_components",
    "main",
    "run_runtime",
]
