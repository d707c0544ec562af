"""Concrete Execution Orchestrator implementation.

The orchestrator owns creation and execution; every status change goes
through the queue manager so there is one mutator. Bus handlers connect the
queue (``action_ready``) and the approval workflow (``approval_responded``,
``approval_escalated``, ``action_auto_approved``) back to the action
lifecycle. Handlers persist their own snapshots, so actions are re-read from
the store after any call that may publish events.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Awaitable, Callable, Mapping
from time import perf_counter
from typing import Any

from packages.relay_shared.config import RelaySettings
from packages.relay_shared.errors import exception_to_error
from packages.relay_shared.events import BusEvent, MessageBus, Subscription
from packages.relay_shared.logging import (
    get_logger,
    log_context,
    public_api_instrumented,
)
from services.action.action_queue.errors import QueueNotFoundError
from services.action.action_queue.service import ActionQueueService
from services.action.approval_workflow.service import ApprovalWorkflowService
from services.action.execution_orchestrator import rules
from services.action.execution_orchestrator.component import SERVICE_COMPONENT_ID
from services.action.execution_orchestrator.config import (
    ExecutionOrchestratorSettings,
    resolve_execution_orchestrator_settings,
)
from services.action.execution_orchestrator.domain import ActionOptions
from services.action.execution_orchestrator.errors import (
    ActionTimeoutError,
    ActionValidationError,
    ExecutorNotFoundError,
)
from services.action.execution_orchestrator.interfaces import (
    ActionExecutor,
    StyleService,
)
from services.action.execution_orchestrator.registry import ExecutorRegistry
from services.action.execution_orchestrator.retry import (
    compute_backoff_delay_ms,
    is_retryable_error,
    should_retry,
)
from services.action.execution_orchestrator.service import (
    ExecutionOrchestratorService,
)
from services.action.risk_assessor.service import RiskAssessorService
from services.state.action_store.audit import append_audit, sanitize
from services.state.action_store.domain import (
    DEFAULT_TIMEOUTS_MS,
    Action,
    ActionContext,
    ActionParameters,
    ActionResult,
    ActionStatus,
    ActionType,
    ApprovalType,
    AuditEvent,
    ExecutionMetrics,
    LifecycleEvent,
    RetryPolicy,
    utc_now,
)
from services.state.action_store.errors import (
    ActionNotFoundError,
    InvalidTransitionError,
)
from services.state.action_store.service import ActionStore

_LOGGER = get_logger(__name__)

SYSTEM_ACTOR = "system"
_APPROVAL_PENDING_ERROR = "Action requires approval"
_AUTO_APPROVED_ERROR = "Action auto-approved and queued for execution"
_CANCELLED_ERROR = "Action cancelled during execution"
_MIN_ELAPSED_MS = 0.001

Sleep = Callable[[float], Awaitable[None]]


class DefaultExecutionOrchestratorService(ExecutionOrchestratorService):
    """Default facade over risk, approval, queueing, and executors."""

    def __init__(
        self,
        *,
        settings: ExecutionOrchestratorSettings,
        store: ActionStore,
        risk_assessor: RiskAssessorService,
        approvals: ApprovalWorkflowService,
        queue: ActionQueueService,
        bus: MessageBus,
        style_service: StyleService | None = None,
        executors: ExecutorRegistry | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._store = store
        self._risk_assessor = risk_assessor
        self._approvals = approvals
        self._queue = queue
        self._bus = bus
        self._style_service = style_service
        self._executors = executors or ExecutorRegistry()
        self._sleep = sleep
        self._subscriptions: list[Subscription] = []

    @classmethod
    def from_settings(
        cls,
        *,
        settings: RelaySettings,
        store: ActionStore,
        risk_assessor: RiskAssessorService,
        approvals: ApprovalWorkflowService,
        queue: ActionQueueService,
        bus: MessageBus,
        style_service: StyleService | None = None,
    ) -> "DefaultExecutionOrchestratorService":
        """Build the orchestrator from typed root settings and collaborators."""
        return cls(
            settings=resolve_execution_orchestrator_settings(settings),
            store=store,
            risk_assessor=risk_assessor,
            approvals=approvals,
            queue=queue,
            bus=bus,
            style_service=style_service,
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
    )
    async def create_action(
        self,
        *,
        action_type: ActionType,
        parameters: ActionParameters | Mapping[str, Any],
        context: ActionContext | Mapping[str, Any] | None = None,
        options: ActionOptions | None = None,
    ) -> Action:
        """Validate, score, persist, and announce one new action."""
        params = (
            parameters
            if isinstance(parameters, ActionParameters)
            else ActionParameters.model_validate(dict(parameters))
        )
        ctx = (
            context
            if isinstance(context, ActionContext)
            else ActionContext.model_validate(dict(context or {}))
        )
        opts = options or ActionOptions()

        if opts.validate_parameters:
            missing = rules.missing_parameters(action_type, params)
            if missing:
                raise ActionValidationError(action_type=action_type, missing=missing)

        requires_approval = (
            opts.requires_approval
            if opts.requires_approval is not None
            else rules.default_requires_approval(action_type, params)
        )
        action = Action(
            type=action_type,
            description=rules.describe_action(action_type, params),
            priority=opts.priority,
            risk_level=self._risk_assessor.initial_risk_level(
                action_type=action_type, parameters=params
            ),
            confidence=rules.estimate_confidence(action_type, params, ctx),
            requires_approval=requires_approval,
            parameters=params,
            context=ctx,
            timeout_ms=opts.timeout_ms or DEFAULT_TIMEOUTS_MS[action_type],
            max_retries=(
                opts.max_retries
                if opts.max_retries is not None
                else self._settings.retry_policy.max_retries
            ),
        )
        await self._store.actions.put(record=action)
        action = await append_audit(
            self._store,
            action_id=action.id,
            event=AuditEvent.ACTION_CREATED,
            actor=ctx.agent_id or SYSTEM_ACTOR,
            details={
                "type": action_type.value,
                "parameters": params.provided(),
                "risk_level": action.risk_level.value,
                "confidence": action.confidence,
                "requires_approval": requires_approval,
            },
        )
        await self._bus.emit(
            LifecycleEvent.ACTION_CREATED.value,
            {
                "action_id": action.id,
                "type": action_type.value,
                "priority": action.priority.value,
                "requires_approval": requires_approval,
            },
        )
        return action

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("action_id", "queue_id"),
    )
    async def queue_action(
        self, *, action_id: str, queue_id: str | None = None
    ) -> Action:
        """Place an existing action on a queue."""
        action = await self._require_action(action_id)
        await self._queue.enqueue_action(action=action, queue_id=queue_id)
        action = await self._require_action(action_id)
        return await append_audit(
            self._store,
            action_id=action_id,
            event=AuditEvent.ACTION_QUEUED,
            actor=SYSTEM_ACTOR,
            details={"queue_id": action.queue_id},
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("action_id",),
    )
    async def execute_action(self, *, action_id: str) -> ActionResult:
        """Request approval if needed, otherwise run the action now."""
        action = await self._require_action(action_id)
        if action.status.is_terminal:
            raise InvalidTransitionError(
                action_id=action.id,
                current=action.status,
                target=ActionStatus.EXECUTING,
            )
        if action.awaiting_approval:
            return await self._gate_on_approval(action)
        return await self.perform_execution(action=action)

    async def perform_execution(self, *, action: Action) -> ActionResult:
        """Run ``action`` through its executor with timeout and retries."""
        with log_context({"action_id": action.id, "action_type": action.type.value}):
            try:
                executor = self._executors.get(action.type)
            except ExecutorNotFoundError as exc:
                action = await self._ensure_executing(action)
                await self._finish_failure(action, exc, elapsed_ms=0.0)
                raise

            action = await self._ensure_executing(action)
            action = await append_audit(
                self._store,
                action_id=action.id,
                event=AuditEvent.ACTION_STARTED,
                actor=SYSTEM_ACTOR,
                details={"attempt": action.retry_count + 1},
            )
            action = await self._apply_style(action)
            if action.status is not ActionStatus.EXECUTING:
                return _abandoned(action, elapsed_ms=0.0)
            policy = self._retry_policy(action)

            while True:
                started = perf_counter()
                error: BaseException
                try:
                    result = await asyncio.wait_for(
                        executor.execute(action), timeout=action.timeout_ms / 1000.0
                    )
                except TimeoutError:
                    error = ActionTimeoutError(
                        action_id=action.id, timeout_ms=action.timeout_ms
                    )
                except Exception as exc:
                    error = exc
                else:
                    elapsed_ms = _elapsed_ms(started)
                    if result.success:
                        return await self._finish_success(action, result, elapsed_ms)
                    error = RuntimeError(result.error or "executor reported failure")
                elapsed_ms = _elapsed_ms(started)

                if not is_retryable_error(
                    error, policy.retryable_errors
                ) or not should_retry(action.retry_count, action.max_retries):
                    return await self._finish_failure(action, error, elapsed_ms=elapsed_ms)

                current = await self._require_action(action.id)
                if current.status is not ActionStatus.EXECUTING:
                    return _abandoned(current, elapsed_ms=elapsed_ms)
                retry_count = current.retry_count + 1
                delay_ms = compute_backoff_delay_ms(policy, retry_count)
                action = await append_audit(
                    self._store,
                    action_id=action.id,
                    event=AuditEvent.ACTION_RETRIED,
                    actor=SYSTEM_ACTOR,
                    details={
                        "attempt": retry_count + 1,
                        "delay_ms": delay_ms,
                        "error": str(error),
                    },
                    changes={"retry_count": retry_count},
                )
                _LOGGER.warning(
                    "action attempt failed; retrying: action_id=%s retry=%s delay_ms=%s exception_type=%s",
                    action.id,
                    retry_count,
                    delay_ms,
                    type(error).__name__,
                )
                await self._sleep(delay_ms / 1000.0)

                action = await self._require_action(action.id)
                if action.status is not ActionStatus.EXECUTING:
                    return _abandoned(action, elapsed_ms=elapsed_ms)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("action_id",),
    )
    async def cancel_action(self, *, action_id: str) -> Action:
        """Cancel a live action and withdraw it from queues and approvals."""
        action = await self._require_action(action_id)
        if action.status.is_terminal:
            raise InvalidTransitionError(
                action_id=action.id,
                current=action.status,
                target=ActionStatus.CANCELLED,
            )
        previous = action.status
        await self._approvals.cancel_pending_approval(action_id=action_id)
        await self._queue.remove_action(action_id=action_id)
        await self._queue.update_action_status(
            action_id=action_id, status=ActionStatus.CANCELLED
        )
        action = await append_audit(
            self._store,
            action_id=action_id,
            event=AuditEvent.ACTION_CANCELLED,
            actor=SYSTEM_ACTOR,
            details={"previous_status": previous.value},
        )
        await self._bus.emit(
            LifecycleEvent.ACTION_CANCELLED.value,
            {"action_id": action_id, "previous_status": previous.value},
        )
        return action

    async def get_action(self, *, action_id: str) -> Action | None:
        """Return one stored action."""
        return await self._store.actions.get(record_id=action_id)

    async def get_actions_by_status(
        self, *, status: ActionStatus
    ) -> tuple[Action, ...]:
        """Return every stored action currently in ``status``."""
        return await self._store.actions.list(
            predicate=lambda item: item.status is status
        )

    async def get_execution_metrics(self) -> ExecutionMetrics:
        """Return aggregate statistics across every stored action."""
        actions = await self._store.actions.list()
        total = len(actions)
        if total == 0:
            return ExecutionMetrics()

        by_status = Counter(action.status.value for action in actions)
        finished = sum(
            by_status[status.value]
            for status in (ActionStatus.COMPLETED, ActionStatus.FAILED, ActionStatus.TIMEOUT)
        )
        timings = [
            action.result.execution_time_ms
            for action in actions
            if action.result is not None and action.result.success
        ]
        gated = [action for action in actions if action.requires_approval]
        requests = [
            action.approval_request
            for action in actions
            if action.approval_request is not None
        ]
        return ExecutionMetrics(
            total_actions=total,
            success_rate=_ratio(by_status[ActionStatus.COMPLETED.value], finished),
            average_execution_time_ms=sum(timings) / len(timings) if timings else 0.0,
            actions_by_type=dict(Counter(action.type.value for action in actions)),
            actions_by_status=dict(by_status),
            risk_distribution=dict(Counter(action.risk_level.value for action in actions)),
            approval_rate=_ratio(
                sum(1 for action in gated if action.approved_at is not None), len(gated)
            ),
            auto_approval_rate=_ratio(
                sum(1 for item in requests if item.type is ApprovalType.AUTOMATIC),
                len(requests),
            ),
            escalation_rate=_ratio(
                sum(1 for item in requests if item.escalated), len(requests)
            ),
            retry_rate=_ratio(sum(1 for action in actions if action.retry_count > 0), total),
            timeout_rate=_ratio(by_status[ActionStatus.TIMEOUT.value], total),
        )

    def register_executor(
        self, action_type: ActionType, executor: ActionExecutor
    ) -> None:
        """Register the executor that performs ``action_type``."""
        self._executors.register(action_type, executor)
        _LOGGER.info(
            "executor registered",
            extra={"component_id": str(SERVICE_COMPONENT_ID), "action_type": action_type.value},
        )

    async def start(self) -> None:
        """Subscribe to lifecycle events, start queues, restore approvals."""
        if not self._subscriptions:
            self._subscriptions = [
                self._bus.subscribe(LifecycleEvent.ACTION_READY.value, self._on_action_ready),
                self._bus.subscribe(
                    LifecycleEvent.APPROVAL_RESPONDED.value, self._on_approval_responded
                ),
                self._bus.subscribe(
                    LifecycleEvent.APPROVAL_ESCALATED.value, self._on_approval_escalated
                ),
                self._bus.subscribe(
                    LifecycleEvent.ACTION_AUTO_APPROVED.value, self._on_auto_approved
                ),
            ]
        await self._queue.start()
        await self._approvals.restore_pending()

    async def shutdown(self) -> None:
        """Unsubscribe and stop queues and approval timers."""
        for subscription in self._subscriptions:
            self._bus.unsubscribe(subscription)
        self._subscriptions = []
        await self._queue.shutdown()
        await self._approvals.shutdown()

    async def _gate_on_approval(self, action: Action) -> ActionResult:
        request = await self._approvals.request_approval(action=action)
        action = await self._require_action(action.id)
        assessment = request.risk_assessment
        action = await append_audit(
            self._store,
            action_id=action.id,
            event=AuditEvent.RISK_ASSESSED,
            actor=SYSTEM_ACTOR,
            details={
                "level": assessment.level.value,
                "score": assessment.score,
                "auto_approval_eligible": assessment.auto_approval_eligible,
                "mitigations": list(assessment.mitigations),
            },
        )

        if request.type is ApprovalType.AUTOMATIC:
            action = await self.queue_action(action_id=action.id)
            return ActionResult(
                success=False,
                error=_AUTO_APPROVED_ERROR,
                metadata={
                    "status": action.status.value,
                    "approval_id": request.id,
                    "queue_id": action.queue_id,
                },
            )

        await append_audit(
            self._store,
            action_id=action.id,
            event=AuditEvent.APPROVAL_REQUESTED,
            actor=SYSTEM_ACTOR,
            details={
                "approval_id": request.id,
                "approval_type": request.type.value,
                "approvers": list(request.approvers),
                "timeout_ms": request.timeout_ms,
            },
        )
        return ActionResult(
            success=False,
            error=_APPROVAL_PENDING_ERROR,
            metadata={
                "status": ActionStatus.WAITING_APPROVAL.value,
                "approval_id": request.id,
            },
        )

    async def _ensure_executing(self, action: Action) -> Action:
        if action.status is ActionStatus.EXECUTING:
            return action
        return await self._queue.update_action_status(
            action_id=action.id, status=ActionStatus.EXECUTING
        )

    async def _apply_style(self, action: Action) -> Action:
        """Restyle outbound text and return the freshly stored action.

        The action may be cancelled while the style service runs; the caller
        checks the returned status before executing.
        """
        target = rules.STYLE_TARGETS.get(action.type)
        if target is None or self._style_service is None:
            return action
        field_name, content_type = target
        original = getattr(action.parameters, field_name)
        if not isinstance(original, str) or not original:
            return action
        try:
            styled = await self._style_service.mimic_writing_style(
                agent_id=action.context.agent_id,
                content=original,
                content_type=content_type,
            )
        except Exception as exc:
            _LOGGER.warning(
                "style pass failed; sending original content: action_id=%s exception_type=%s",
                action.id,
                type(exc).__name__,
                exc_info=exc,
            )
            return await self._require_action(action.id)

        current = await self._require_action(action.id)
        if current.status is not ActionStatus.EXECUTING:
            return current
        return await append_audit(
            self._store,
            action_id=action.id,
            event=AuditEvent.STYLE_ANALYZED,
            actor=SYSTEM_ACTOR,
            details={
                "content_type": content_type,
                "original_length": len(original),
                "styled_length": len(styled),
            },
            changes={
                "parameters": current.parameters.model_copy(
                    update={field_name: styled}
                )
            },
        )

    def _retry_policy(self, action: Action) -> RetryPolicy:
        if action.queue_id is None:
            return self._settings.retry_policy
        try:
            queue = self._queue.get_queue_status(queue_id=action.queue_id)
        except QueueNotFoundError:
            return self._settings.retry_policy
        return queue.config.retry_policy

    async def _finish_success(
        self, action: Action, result: ActionResult, elapsed_ms: float
    ) -> ActionResult:
        final = result.model_copy(
            update={"execution_time_ms": max(elapsed_ms, _MIN_ELAPSED_MS)}
        )
        try:
            action = await self._queue.update_action_status(
                action_id=action.id, status=ActionStatus.COMPLETED, result=final
            )
        except InvalidTransitionError:
            _LOGGER.warning(
                "executor finished after action left executing: action_id=%s",
                action.id,
            )
            return final
        await append_audit(
            self._store,
            action_id=action.id,
            event=AuditEvent.ACTION_COMPLETED,
            actor=SYSTEM_ACTOR,
            details={
                "execution_time_ms": final.execution_time_ms,
                "attempts": action.retry_count + 1,
                "side_effects": len(final.side_effects),
                "data": final.data,
            },
        )
        await self._bus.emit(
            LifecycleEvent.ACTION_EXECUTED.value,
            {
                "action_id": action.id,
                "success": True,
                "execution_time_ms": final.execution_time_ms,
            },
        )
        return final

    async def _finish_failure(
        self, action: Action, error: BaseException, *, elapsed_ms: float
    ) -> ActionResult:
        """Record a terminal failure once retries are exhausted or not allowed.

        The action ends in ``failed``, except when the final attempt lost the
        race against ``timeout_ms``: then it ends in ``timeout`` so timeouts
        stay distinguishable in status counts and ``timeout_rate``.
        """
        timed_out = isinstance(error, ActionTimeoutError)
        status = ActionStatus.TIMEOUT if timed_out else ActionStatus.FAILED
        detail = sanitize(exception_to_error(error).as_dict())
        result = ActionResult(
            success=False,
            error=str(error),
            execution_time_ms=elapsed_ms,
            metadata={"error": detail, "attempts": action.retry_count + 1},
        )
        try:
            action = await self._queue.update_action_status(
                action_id=action.id, status=status, result=result
            )
        except InvalidTransitionError:
            _LOGGER.warning(
                "executor failed after action left executing: action_id=%s",
                action.id,
            )
            return result
        await append_audit(
            self._store,
            action_id=action.id,
            event=AuditEvent.ACTION_TIMEOUT if timed_out else AuditEvent.ACTION_FAILED,
            actor=SYSTEM_ACTOR,
            details={"error": detail, "attempts": action.retry_count + 1},
        )
        _LOGGER.warning(
            "action failed: action_id=%s status=%s exception_type=%s",
            action.id,
            status.value,
            type(error).__name__,
        )
        await self._bus.emit(
            LifecycleEvent.ACTION_FAILED.value,
            {"action_id": action.id, "status": status.value, "error": str(error)},
        )
        return result

    async def _require_action(self, action_id: str) -> Action:
        action = await self._store.actions.get(record_id=action_id)
        if action is None:
            raise ActionNotFoundError(action_id)
        return action

    async def _on_action_ready(self, event: BusEvent) -> None:
        await self.execute_action(action_id=str(event.payload["action_id"]))

    async def _on_approval_responded(self, event: BusEvent) -> None:
        action_id = str(event.payload["action_id"])
        action = await self._store.actions.get(record_id=action_id)
        if action is None or action.status is not ActionStatus.WAITING_APPROVAL:
            return
        approver = str(event.payload.get("approved_by") or SYSTEM_ACTOR)
        details = {
            "approval_id": event.payload.get("approval_id"),
            "reason": event.payload.get("reason"),
        }

        if not event.payload.get("approved"):
            action = await self._queue.update_action_status(
                action_id=action_id,
                status=ActionStatus.REJECTED,
                result=ActionResult(
                    success=False,
                    error=f"Approval denied: {event.payload.get('reason') or 'no reason given'}",
                ),
            )
            await append_audit(
                self._store,
                action_id=action.id,
                event=AuditEvent.APPROVAL_DENIED,
                actor=approver,
                details=details,
            )
            return

        await self._queue.update_action_status(
            action_id=action_id, status=ActionStatus.APPROVED
        )
        await append_audit(
            self._store,
            action_id=action_id,
            event=AuditEvent.APPROVAL_GRANTED,
            actor=approver,
            details=details,
            changes={"approved_at": utc_now()},
        )
        await self.queue_action(action_id=action_id)

    async def _on_approval_escalated(self, event: BusEvent) -> None:
        action = await self._store.actions.get(record_id=str(event.payload["action_id"]))
        if action is None:
            return
        await append_audit(
            self._store,
            action_id=action.id,
            event=AuditEvent.ACTION_ESCALATED,
            actor=SYSTEM_ACTOR,
            details={
                "approval_id": event.payload.get("approval_id"),
                "escalation_count": event.payload.get("escalation_count"),
                "approvers": event.payload.get("approvers"),
            },
        )

    async def _on_auto_approved(self, event: BusEvent) -> None:
        action = await self._store.actions.get(record_id=str(event.payload["action_id"]))
        if action is None:
            return
        await append_audit(
            self._store,
            action_id=action.id,
            event=AuditEvent.APPROVAL_GRANTED,
            actor=SYSTEM_ACTOR,
            details={
                "approval_id": event.payload.get("approval_id"),
                "auto_approved": True,
                "risk_score": event.payload.get("risk_score"),
            },
        )


def _abandoned(action: Action, *, elapsed_ms: float) -> ActionResult:
    _LOGGER.info(
        "execution abandoned; action left executing: action_id=%s status=%s",
        action.id,
        action.status.value,
    )
    return ActionResult(
        success=False,
        error=_CANCELLED_ERROR,
        execution_time_ms=elapsed_ms,
        metadata={"status": action.status.value},
    )


def _elapsed_ms(started: float) -> float:
    return (perf_counter() - started) * 1000.0


def _ratio(part: int, whole: int) -> float:
    return part / whole if whole else 0.0
