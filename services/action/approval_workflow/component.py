"""Component declaration for the Approval Workflow service."""

from __future__ import annotations

from collections.abc import Mapping

from packages.relay_shared.config import RelaySettings
from packages.relay_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ServiceManifest,
    register_component,
)

SERVICE_COMPONENT_ID = ComponentId("service_approval_workflow")
_ACTION_STORE_COMPONENT_ID = "service_action_store"
_RISK_ASSESSOR_COMPONENT_ID = "service_risk_assessor"

MANIFEST = register_component(
    ServiceManifest(
        id=SERVICE_COMPONENT_ID,
        layer=1,
        system="action",
        module_roots=frozenset({ModuleRoot("services.action.approval_workflow")}),
        public_api_roots=frozenset(
            {ModuleRoot("services.action.approval_workflow.service")}
        ),
        depends_on=frozenset(
            {
                ComponentId(_ACTION_STORE_COMPONENT_ID),
                ComponentId(_RISK_ASSESSOR_COMPONENT_ID),
            }
        ),
    )
)


def build_component(
    *, settings: RelaySettings, components: Mapping[str, object]
) -> object:
    """Build concrete runtime instance for this registered service component."""
    from packages.relay_shared.events import get_default_bus
    from services.action.approval_workflow.service import (
        build_approval_workflow_service,
    )
    from services.action.risk_assessor.service import RiskAssessorService
    from services.state.action_store.service import ActionStore

    store = components[_ACTION_STORE_COMPONENT_ID]
    if not isinstance(store, ActionStore):
        raise TypeError(_ACTION_STORE_COMPONENT_ID)
    risk_assessor = components[_RISK_ASSESSOR_COMPONENT_ID]
    if not isinstance(risk_assessor, RiskAssessorService):
        raise TypeError(_RISK_ASSESSOR_COMPONENT_ID)
    return build_approval_workflow_service(
        settings=settings,
        store=store,
        risk_assessor=risk_assessor,
        bus=get_default_bus(),
    )
