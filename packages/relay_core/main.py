"""Process entrypoint for the Relay action-execution runtime."""

from __future__ import annotations

import asyncio
import signal
import sys
from collections.abc import Callable, Mapping

from packages.relay_shared.component_loader import (
    import_component_modules,
    import_registered_component_modules,
)
from packages.relay_shared.config import (
    CoreRuntimeSettings,
    RelaySettings,
    load_settings,
    resolve_component_settings,
)
from packages.relay_shared.logging import configure_logging_from_settings, get_logger
from packages.relay_shared.manifest import ComponentManifest, get_registry
from resources.substrates.redis import RedisSubstrate
from services.action.execution_orchestrator.service import (
    ExecutionOrchestratorService,
)

_LOGGER = get_logger(__name__)
ORCHESTRATOR_COMPONENT_ID = "service_execution_orchestrator"
_CORE_RUNTIME_COMPONENT_ID = "core_runtime"

ComponentBuilder = Callable[..., object]


def _resolve_component_builder(manifest: ComponentManifest) -> ComponentBuilder:
    """Load one component module and return its build callable."""
    for module_root in sorted(manifest.module_roots):
        module_name = f"{module_root}.component"
        import_component_modules((module_name,))
        builder = getattr(sys.modules[module_name], "build_component", None)
        if callable(builder):
            return builder
    raise RuntimeError(
        f"component '{manifest.id}' does not expose build_component(...) in its component module"
    )


def instantiate_registered_components(settings: RelaySettings) -> dict[str, object]:
    """Instantiate all registered resources, then services, by registry walk.

    A builder raising ``KeyError`` is waiting on a dependency that has not
    been built yet and is retried in the next round.
    """
    registry = get_registry()
    pending: list[ComponentManifest] = [
        *registry.list_resources(),
        *registry.list_services(),
    ]
    built: dict[str, object] = {}

    while pending:
        progressed = False
        next_round: list[ComponentManifest] = []
        for manifest in pending:
            builder = _resolve_component_builder(manifest)
            try:
                built[str(manifest.id)] = builder(settings=settings, components=built)
            except KeyError:
                next_round.append(manifest)
                continue
            progressed = True
            _LOGGER.info(
                "component instantiated",
                extra={"component_id": str(manifest.id), "layer": manifest.layer},
            )

        if not progressed:
            unresolved = ", ".join(str(item.id) for item in next_round)
            raise RuntimeError(
                "unable to resolve component dependency graph; unresolved components: "
                f"{unresolved}"
            )
        pending = next_round
    return built


async def run_runtime(
    *,
    settings: RelaySettings,
    components: Mapping[str, object],
    stop: asyncio.Event,
) -> None:
    """Start the orchestrator, hold until ``stop`` is set, then shut down."""
    orchestrator = components.get(ORCHESTRATOR_COMPONENT_ID)
    if not isinstance(orchestrator, ExecutionOrchestratorService):
        raise RuntimeError(f"component '{ORCHESTRATOR_COMPONENT_ID}' is not available")
    runtime = resolve_component_settings(
        settings=settings,
        component_id=_CORE_RUNTIME_COMPONENT_ID,
        model=CoreRuntimeSettings,
    )

    await orchestrator.start()
    _LOGGER.info(
        "relay runtime started", extra={"component_count": len(components)}
    )
    try:
        await stop.wait()
    finally:
        try:
            await asyncio.wait_for(
                orchestrator.shutdown(), timeout=runtime.shutdown_timeout_seconds
            )
        except TimeoutError:
            _LOGGER.warning(
                "orchestrator shutdown timed out: timeout_seconds=%s",
                runtime.shutdown_timeout_seconds,
            )
        await _close_resources(components)
        _LOGGER.info("relay runtime stopped")


async def _close_resources(components: Mapping[str, object]) -> None:
    for component_id, component in components.items():
        if not isinstance(component, RedisSubstrate):
            continue
        try:
            await component.close()
        except Exception as exc:
            _LOGGER.warning(
                "resource close failed: component_id=%s exception_type=%s",
                component_id,
                type(exc).__name__,
                exc_info=exc,
            )


async def _serve(*, settings: RelaySettings, components: Mapping[str, object]) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop.set)
    await run_runtime(settings=settings, components=components, stop=stop)


def main() -> None:
    """Discover components, instantiate them, and run until signalled."""
    settings = load_settings()
    configure_logging_from_settings(settings.logging)

    imported = import_registered_component_modules()
    registry = get_registry()
    registry.assert_valid()
    _LOGGER.info(
        "component registration completed",
        extra={
            "imported_count": len(imported),
            "service_count": len(registry.list_services()),
            "resource_count": len(registry.list_resources()),
        },
    )

    components = instantiate_registered_components(settings)
    asyncio.run(_serve(settings=settings, components=components))


if __name__ == "__main__":
    main()
