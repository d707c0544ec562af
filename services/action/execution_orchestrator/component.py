"""Component declaration for the Execution Orchestrator service."""

from __future__ import annotations

from collections.abc import Mapping

from packages.relay_shared.config import RelaySettings
from packages.relay_shared.manifest import (
    ComponentId,
    ModuleRoot,
    ServiceManifest,
    register_component,
)

SERVICE_COMPONENT_ID = ComponentId("service_execution_orchestrator")
_ACTION_STORE_COMPONENT_ID = "service_action_store"
_RISK_ASSESSOR_COMPONENT_ID = "service_risk_assessor"
_APPROVAL_WORKFLOW_COMPONENT_ID = "service_approval_workflow"
_ACTION_QUEUE_COMPONENT_ID = "service_action_queue"

MANIFEST = register_component(
    ServiceManifest(
        id=SERVICE_COMPONENT_ID,
        layer=1,
        system="action",
        module_roots=frozenset(
            {ModuleRoot("services.action.execution_orchestrator")}
        ),
        public_api_roots=frozenset(
            {
                ModuleRoot("services.action.execution_orchestrator.service"),
                ModuleRoot("services.action.execution_orchestrator.interfaces"),
            }
        ),
        depends_on=frozenset(
            {
                ComponentId(_ACTION_STORE_COMPONENT_ID),
                ComponentId(_RISK_ASSESSOR_COMPONENT_ID),
                ComponentId(_APPROVAL_WORKFLOW_COMPONENT_ID),
                ComponentId(_ACTION_QUEUE_COMPONENT_ID),
            }
        ),
    )
)


def build_component(
    *, settings: RelaySettings, components: Mapping[str, object]
) -> object:
    """Build concrete runtime instance for this registered service component."""
    from packages.relay_shared.events import get_default_bus
    from services.action.action_queue.service import ActionQueueService
    from services.action.approval_workflow.service import ApprovalWorkflowService
    from services.action.execution_orchestrator.service import (
        build_execution_orchestrator_service,
    )
    from services.action.risk_assessor.service import RiskAssessorService
    from services.state.action_store.service import ActionStore

    store = components[_ACTION_STORE_COMPONENT_ID]
    if not isinstance(store, ActionStore):
        raise TypeError(_ACTION_STORE_COMPONENT_ID)
    risk_assessor = components[_RISK_ASSESSOR_COMPONENT_ID]
    if not isinstance(risk_assessor, RiskAssessorService):
        raise TypeError(_RISK_ASSESSOR_COMPONENT_ID)
    approvals = components[_APPROVAL_WORKFLOW_COMPONENT_ID]
    if not isinstance(approvals, ApprovalWorkflowService):
        raise TypeError(_APPROVAL_WORKFLOW_COMPONENT_ID)
    queue = components[_ACTION_QUEUE_COMPONENT_ID]
    if not isinstance(queue, ActionQueueService):
        raise TypeError(_ACTION_QUEUE_COMPONENT_ID)
    return build_execution_orchestrator_service(
        settings=settings,
        store=store,
        risk_assessor=risk_assessor,
        approvals=approvals,
        queue=queue,
        bus=get_default_bus(),
    )
