"""Component declaration for the Risk Assessor service."""

from __future__ import annotations

from collections.abc import Mapping

from packages.relay_shared.config import RelaySettings
from packages.relay_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ServiceManifest,
    register_component,
)

SERVICE_COMPONENT_ID = ComponentId("service_risk_assessor")

MANIFEST = register_component(
    ServiceManifest(
        id=SERVICE_COMPONENT_ID,
        layer=1,
        system="action",
        module_roots=frozenset({ModuleRoot("services.action.risk_assessor")}),
        public_api_roots=frozenset(
            {ModuleRoot("services.action.risk_assessor.service")}
        ),
    )
)


def build_component(
    *, settings: RelaySettings, components: Mapping[str, object]
) -> object:
    """Build concrete runtime instance for this registered service component."""
    del components
    from services.action.risk_assessor.service import build_risk_assessor_service

    return build_risk_assessor_service(settings=settings)
