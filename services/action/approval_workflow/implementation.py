"""Concrete Approval Workflow implementation.

Unresolved requests live in an in-memory pending set mirrored to the
approval repository. Each pending request owns one timer keyed by its id;
when it fires the request escalates, and after ``max_escalations`` windows
the next expiry rejects it on the approvers' behalf.
"""

from __future__ import annotations

from datetime import timedelta

from packages.relay_shared.config import RelaySettings
from packages.relay_shared.events import MessageBus
from packages.relay_shared.logging import get_logger, public_api_instrumented
from packages.relay_shared.timers import TimerRegistry
from services.action.approval_workflow.component import SERVICE_COMPONENT_ID
from services.action.approval_workflow.config import (
    ApprovalWorkflowSettings,
    resolve_approval_workflow_settings,
)
from services.action.approval_workflow.descriptions import describe_for_approval
from services.action.approval_workflow.errors import (
    ApprovalAlreadyResolvedError,
    ApprovalNotFoundError,
)
from services.action.approval_workflow.service import ApprovalWorkflowService
from services.action.risk_assessor.service import RiskAssessorService
from services.state.action_store.domain import (
    Action,
    ActionStatus,
    ApprovalRequest,
    ApprovalResponse,
    ApprovalType,
    LifecycleEvent,
    RiskAssessment,
    RiskCategory,
    RiskLevel,
    utc_now,
)
from services.state.action_store.errors import InvalidTransitionError
from services.state.action_store.service import ActionStore

_LOGGER = get_logger(__name__)

SYSTEM_ACTOR = "system"
_AUTO_APPROVAL_DESCRIPTION = "Auto-approved based on low risk assessment"
_AUTO_APPROVAL_REASON = "Low risk and sufficient confidence"
_CANCELLED_REASON = "action cancelled"


class DefaultApprovalWorkflowService(ApprovalWorkflowService):
    """Risk-gated approval engine with timed escalation."""

    def __init__(
        self,
        *,
        settings: ApprovalWorkflowSettings,
        store: ActionStore,
        risk_assessor: RiskAssessorService,
        bus: MessageBus,
    ) -> None:
        self._settings = settings
        self._store = store
        self._risk_assessor = risk_assessor
        self._bus = bus
        self._pending: dict[str, ApprovalRequest] = {}
        self._timers = TimerRegistry(name="approval")

    @classmethod
    def from_settings(
        cls,
        *,
        settings: RelaySettings,
        store: ActionStore,
        risk_assessor: RiskAssessorService,
        bus: MessageBus,
    ) -> "DefaultApprovalWorkflowService":
        """Build the workflow from typed root settings and collaborators."""
        return cls(
            settings=resolve_approval_workflow_settings(settings),
            store=store,
            risk_assessor=risk_assessor,
            bus=bus,
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
    )
    async def request_approval(self, *, action: Action) -> ApprovalRequest:
        """Assess ``action`` and auto-approve it or open a manual request."""
        existing = self._pending_for_action(action.id)
        if existing is not None:
            return existing

        assessment = self._risk_assessor.assess(action=action)
        action.risk_level = assessment.level

        if assessment.auto_approval_eligible:
            return await self._auto_approve(action=action, assessment=assessment)

        request = ApprovalRequest(
            action_id=action.id,
            type=(
                ApprovalType.ESCALATED
                if assessment.level is RiskLevel.CRITICAL
                else ApprovalType.MANUAL
            ),
            description=describe_for_approval(action),
            risk_assessment=assessment,
            requested_by=action.context.agent_id or SYSTEM_ACTOR,
            timeout_ms=self._timeout_ms(action=action, level=assessment.level),
            approvers=self._approvers(assessment),
        )
        _transition(action, ActionStatus.WAITING_APPROVAL)
        action.approval_request = request
        await self._store.approvals.put(record=request)
        await self._store.actions.put(record=action)
        self._pending[request.id] = request
        self._arm(request)
        await self._bus.emit(
            LifecycleEvent.APPROVAL_REQUESTED.value,
            {
                "approval_id": request.id,
                "action_id": action.id,
                "type": request.type.value,
                "approvers": list(request.approvers),
                "timeout_ms": request.timeout_ms,
                "risk_level": assessment.level.value,
            },
        )
        return request

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("approval_id",),
    )
    async def process_approval_response(
        self, *, approval_id: str, response: ApprovalResponse
    ) -> ApprovalRequest:
        """Record a decision for one pending request."""
        request = await self.get_approval_request(approval_id=approval_id)
        if request is None:
            raise ApprovalNotFoundError(approval_id)
        if request.is_resolved:
            raise ApprovalAlreadyResolvedError(approval_id)

        request.response = response
        self._timers.cancel(approval_id)
        self._pending.pop(approval_id, None)
        await self._store.approvals.put(record=request)
        await self._sync_action_request(request)
        await self._bus.emit(
            LifecycleEvent.APPROVAL_RESPONDED.value,
            {
                "approval_id": request.id,
                "action_id": request.action_id,
                "approved": response.approved,
                "approved_by": response.approved_by,
                "reason": response.reason,
            },
        )
        return request

    async def cancel_pending_approval(self, *, action_id: str) -> bool:
        """Withdraw an action's outstanding request without a decision event."""
        request = self._pending_for_action(action_id)
        if request is None:
            return False
        self._timers.cancel(request.id)
        self._pending.pop(request.id, None)
        request.response = ApprovalResponse(
            approved=False,
            approved_by=SYSTEM_ACTOR,
            reason=_CANCELLED_REASON,
        )
        await self._store.approvals.put(record=request)
        return True

    def get_pending_approvals(
        self, *, approver: str | None = None
    ) -> tuple[ApprovalRequest, ...]:
        """Return unresolved requests, optionally only those naming ``approver``."""
        requests = sorted(self._pending.values(), key=lambda item: item.requested_at)
        if approver is None:
            return tuple(requests)
        return tuple(item for item in requests if approver in item.approvers)

    async def get_approval_request(
        self, *, approval_id: str
    ) -> ApprovalRequest | None:
        """Return one request from the pending set or the durable store."""
        pending = self._pending.get(approval_id)
        if pending is not None:
            return pending
        return await self._store.approvals.get(record_id=approval_id)

    async def restore_pending(self) -> int:
        """Reload unresolved requests after restart and re-arm their timers."""
        stored = await self._store.approvals.list(
            predicate=lambda item: not item.is_resolved
            and item.type is not ApprovalType.AUTOMATIC
        )
        restored = 0
        for request in stored:
            if request.id in self._pending:
                continue
            self._pending[request.id] = request
            self._arm(request)
            restored += 1
        if restored:
            _LOGGER.info(
                "approval requests restored",
                extra={"component_id": str(SERVICE_COMPONENT_ID), "count": restored},
            )
        return restored

    async def shutdown(self) -> None:
        """Cancel every approval timer."""
        self._timers.cancel_all()

    async def _auto_approve(
        self, *, action: Action, assessment: RiskAssessment
    ) -> ApprovalRequest:
        request = ApprovalRequest(
            action_id=action.id,
            type=ApprovalType.AUTOMATIC,
            description=_AUTO_APPROVAL_DESCRIPTION,
            risk_assessment=assessment,
            requested_by=SYSTEM_ACTOR,
            timeout_ms=0,
            approvers=(SYSTEM_ACTOR,),
            response=ApprovalResponse(
                approved=True,
                approved_by=SYSTEM_ACTOR,
                reason=_AUTO_APPROVAL_REASON,
            ),
        )
        _transition(action, ActionStatus.APPROVED)
        action.approved_at = request.requested_at
        action.approval_request = request
        await self._store.approvals.put(record=request)
        await self._store.actions.put(record=action)
        await self._bus.emit(
            LifecycleEvent.ACTION_AUTO_APPROVED.value,
            {
                "approval_id": request.id,
                "action_id": action.id,
                "risk_level": assessment.level.value,
                "risk_score": assessment.score,
            },
        )
        return request

    async def _on_timeout(self, approval_id: str) -> None:
        request = self._pending.get(approval_id)
        if request is None or request.is_resolved:
            return

        if request.escalation_count >= self._settings.max_escalations:
            _LOGGER.warning(
                "approval expired after escalation limit: approval_id=%s escalations=%s",
                approval_id,
                request.escalation_count,
            )
            await self.process_approval_response(
                approval_id=approval_id,
                response=ApprovalResponse(
                    approved=False,
                    approved_by=SYSTEM_ACTOR,
                    reason=(
                        "approval timed out after "
                        f"{request.escalation_count} escalations"
                    ),
                ),
            )
            return

        request.escalated = True
        request.escalation_count += 1
        request.type = ApprovalType.ESCALATED
        request.timeout_ms = request.timeout_ms * 2
        request.window_started_at = utc_now()
        request.approvers = self._widen(request.approvers)
        await self._store.approvals.put(record=request)
        await self._sync_action_request(request)
        self._arm(request)
        await self._bus.emit(
            LifecycleEvent.APPROVAL_ESCALATED.value,
            {
                "approval_id": request.id,
                "action_id": request.action_id,
                "escalation_count": request.escalation_count,
                "approvers": list(request.approvers),
                "timeout_ms": request.timeout_ms,
            },
        )

    def _arm(self, request: ApprovalRequest) -> None:
        remaining = (request.deadline() - utc_now()).total_seconds()
        approval_id = request.id

        async def _expire() -> None:
            await self._on_timeout(approval_id)

        self._timers.arm(approval_id, delay_seconds=remaining, callback=_expire)

    async def _sync_action_request(self, request: ApprovalRequest) -> None:
        action = await self._store.actions.get(record_id=request.action_id)
        if action is None:
            _LOGGER.warning(
                "approval request references missing action: approval_id=%s action_id=%s",
                request.id,
                request.action_id,
            )
            return
        action.approval_request = request
        await self._store.actions.put(record=action)

    def _pending_for_action(self, action_id: str) -> ApprovalRequest | None:
        for request in self._pending.values():
            if request.action_id == action_id and not request.is_resolved:
                return request
        return None

    def _timeout_ms(self, *, action: Action, level: RiskLevel) -> int:
        minutes = self._settings.timeout_minutes_by_priority.get(
            action.priority, self._settings.default_timeout_minutes
        )
        if level is RiskLevel.CRITICAL:
            minutes *= self._settings.critical_risk_multiplier
        elif level is RiskLevel.LOW:
            minutes *= self._settings.low_risk_multiplier
        return int(timedelta(minutes=minutes) / timedelta(milliseconds=1))

    def _approvers(self, assessment: RiskAssessment) -> tuple[str, ...]:
        approvers = ["supervisor"]
        if assessment.level in (RiskLevel.HIGH, RiskLevel.CRITICAL):
            approvers.append("manager")
        if assessment.level is RiskLevel.CRITICAL:
            approvers.append("director")
        compliance = assessment.factor(RiskCategory.COMPLIANCE)
        if (
            compliance is not None
            and compliance.score > self._settings.compliance_approver_threshold
        ):
            approvers.append("compliance_officer")
        return tuple(approvers)

    def _widen(self, approvers: tuple[str, ...]) -> tuple[str, ...]:
        for role in self._settings.escalation_roles:
            if role not in approvers:
                return (*approvers, role)
        return approvers


def _transition(action: Action, target: ActionStatus) -> None:
    try:
        action.transition(target)
    except ValueError as exc:
        raise InvalidTransitionError(
            action_id=action.id, current=action.status, target=target
        ) from exc
