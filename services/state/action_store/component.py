"""Component declaration for the Action Store service."""

from __future__ import annotations

from collections.abc import Mapping

from packages.relay_shared.config import RelaySettings
from packages.relay_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ServiceManifest,
    register_component,
)

SERVICE_COMPONENT_ID = ComponentId("service_action_store")
_REDIS_COMPONENT_ID = "substrate_redis"

MANIFEST = register_component(
    ServiceManifest(
        id=SERVICE_COMPONENT_ID,
        layer=1,
        system="state",
        module_roots=frozenset({ModuleRoot("services.state.action_store")}),
        public_api_roots=frozenset(
            {
                ModuleRoot("services.state.action_store.service"),
                ModuleRoot("services.state.action_store.domain"),
            }
        ),
        owns_resources=frozenset({ComponentId(_REDIS_COMPONENT_ID)}),
    )
)


def build_component(
    *, settings: RelaySettings, components: Mapping[str, object]
) -> object:
    """Build concrete runtime instance for this registered service component."""
    from resources.substrates.redis import RedisSubstrate
    from services.state.action_store.config import resolve_action_store_settings
    from services.state.action_store.service import build_action_store

    store_settings = resolve_action_store_settings(settings)
    backend = None
    if store_settings.backend == "redis":
        backend = components[_REDIS_COMPONENT_ID]
        if not isinstance(backend, RedisSubstrate):
            raise TypeError(_REDIS_COMPONENT_ID)
    return build_action_store(settings=store_settings, backend=backend)
