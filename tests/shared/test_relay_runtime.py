"""Tests for component discovery and the runtime entrypoint."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from packages.relay_core.main import (
    ORCHESTRATOR_COMPONENT_ID,
    instantiate_registered_components,
    run_runtime,
)
from packages.relay_shared.component_loader import (
    discover_component_modules,
    import_registered_component_modules,
)
from packages.relay_shared.config import RelaySettings, load_settings
from packages.relay_shared.manifest import get_registry
from services.action.execution_orchestrator.service import (
    ExecutionOrchestratorService,
)
from services.state.action_store.service import ActionStore

_EXPECTED_COMPONENTS = {
    "substrate_redis",
    "service_action_store",
    "service_risk_assessor",
    "service_approval_workflow",
    "service_action_queue",
    "service_execution_orchestrator",
}


def _settings(tmp_path: Path) -> RelaySettings:
    return load_settings(
        cli_params={
            "components": {
                "service": {"action_store": {"backend": "memory"}},
                "core_runtime": {"shutdown_timeout_seconds": 2.0},
            }
        },
        config_path=tmp_path / "relay.yaml",
        environ={},
    )


def test_discovery_finds_every_component_module() -> None:
    """Each component declaration is discovered and none come from tests."""
    modules = discover_component_modules()

    assert "resources.substrates.redis.component" in modules
    assert "services.action.execution_orchestrator.component" in modules
    assert all(".tests." not in module for module in modules)


def test_registry_walk_builds_dependency_graph(tmp_path: Path) -> None:
    """Resources and services are built in dependency order."""
    import_registered_component_modules()
    get_registry().assert_valid()

    components = instantiate_registered_components(_settings(tmp_path))

    assert _EXPECTED_COMPONENTS <= set(components)
    assert isinstance(components["service_action_store"], ActionStore)
    assert isinstance(
        components[ORCHESTRATOR_COMPONENT_ID], ExecutionOrchestratorService
    )


@pytest.mark.asyncio
async def test_runtime_starts_and_stops_on_signal(tmp_path: Path) -> None:
    """The runtime holds until stopped and then shuts down cleanly."""
    import_registered_component_modules()
    settings = _settings(tmp_path)
    components = instantiate_registered_components(settings)
    stop = asyncio.Event()

    runtime = asyncio.create_task(
        run_runtime(settings=settings, components=components, stop=stop)
    )
    await asyncio.sleep(0.05)
    assert not runtime.done()

    stop.set()
    await asyncio.wait_for(runtime, timeout=5.0)


@pytest.mark.asyncio
async def test_runtime_requires_orchestrator(tmp_path: Path) -> None:
    """A component map without the orchestrator cannot run."""
    with pytest.raises(RuntimeError, match=ORCHESTRATOR_COMPONENT_ID):
        await run_runtime(
            settings=_settings(tmp_path), components={}, stop=asyncio.Event()
        )
