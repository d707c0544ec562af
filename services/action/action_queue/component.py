"""Component declaration for the Priority Queue Manager service."""

from __future__ import annotations

from collections.abc import Mapping

from packages.relay_shared.config import RelaySettings
from packages.relay_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ServiceManifest,
    register_component,
)

SERVICE_COMPONENT_ID = ComponentId("service_action_queue")
_ACTION_STORE_COMPONENT_ID = "service_action_store"

MANIFEST = register_component(
    ServiceManifest(
        id=SERVICE_COMPONENT_ID,
        layer=1,
        system="action",
        module_roots=frozenset({ModuleRoot("services.action.action_queue")}),
        public_api_roots=frozenset(
            {
                ModuleRoot("services.action.action_queue.service"),
                ModuleRoot("services.action.action_queue.scoring"),
            }
        ),
        depends_on=frozenset({ComponentId(_ACTION_STORE_COMPONENT_ID)}),
    )
)


def build_component(
    *, settings: RelaySettings, components: Mapping[str, object]
) -> object:
    """Build concrete runtime instance for this registered service component."""
    from packages.relay_shared.events import get_default_bus
    from services.action.action_queue.service import build_action_queue_service
    from services.state.action_store.service import ActionStore

    store = components[_ACTION_STORE_COMPONENT_ID]
    if not isinstance(store, ActionStore):
        raise TypeError(_ACTION_STORE_COMPONENT_ID)
    return build_action_queue_service(
        settings=settings, store=store, bus=get_default_bus()
    )
