"""Authoritative in-process Python API for the Execution Orchestrator."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from packages.relay_shared.config import RelaySettings
from packages.relay_shared.events import MessageBus
from services.action.action_queue.service import ActionQueueService
from services.action.approval_workflow.service import ApprovalWorkflowService
from services.action.execution_orchestrator.domain import ActionOptions
from services.action.execution_orchestrator.interfaces import (
    ActionExecutor,
    StyleService,
)
from services.action.risk_assessor.service import RiskAssessorService
from services.state.action_store.domain import (
    Action,
    ActionContext,
    ActionParameters,
    ActionResult,
    ActionStatus,
    ActionType,
    ExecutionMetrics,
)
from services.state.action_store.service import ActionStore


class ExecutionOrchestratorService(ABC):
    """Public facade that drives actions from creation to a terminal state."""

    @abstractmethod
    async def create_action(
        self,
        *,
        action_type: ActionType,
        parameters: ActionParameters | Mapping[str, Any],
        context: ActionContext | Mapping[str, Any] | None = None,
        options: ActionOptions | None = None,
    ) -> Action:
        """Validate, score, persist, and announce one new action."""

    @abstractmethod
    async def queue_action(
        self, *, action_id: str, queue_id: str | None = None
    ) -> Action:
        """Place an existing action on a queue."""

    @abstractmethod
    async def execute_action(self, *, action_id: str) -> ActionResult:
        """Request approval if needed, otherwise run the action now."""

    @abstractmethod
    async def perform_execution(self, *, action: Action) -> ActionResult:
        """Run an approved or ungated action through its executor with retries."""

    @abstractmethod
    async def cancel_action(self, *, action_id: str) -> Action:
        """Cancel a live action and withdraw it from queues and approvals."""

    @abstractmethod
    async def get_action(self, *, action_id: str) -> Action | None:
        """Return one stored action."""

    @abstractmethod
    async def get_actions_by_status(
        self, *, status: ActionStatus
    ) -> tuple[Action, ...]:
        """Return every stored action currently in ``status``."""

    @abstractmethod
    async def get_execution_metrics(self) -> ExecutionMetrics:
        """Return aggregate statistics across every stored action."""

    @abstractmethod
    def register_executor(
        self, action_type: ActionType, executor: ActionExecutor
    ) -> None:
        """Register the executor that performs ``action_type``."""

    @abstractmethod
    async def start(self) -> None:
        """Subscribe to lifecycle events, start queues, restore approvals."""

    @abstractmethod
    async def shutdown(self) -> None:
        """Unsubscribe and stop queues and approval timers."""


def build_execution_orchestrator_service(
    *,
    settings: RelaySettings,
    store: ActionStore,
    risk_assessor: RiskAssessorService,
    approvals: ApprovalWorkflowService,
    queue: ActionQueueService,
    bus: MessageBus,
    style_service: StyleService | None = None,
) -> ExecutionOrchestratorService:
    """Build default orchestrator implementation from typed settings."""
    from services.action.execution_orchestrator.implementation import (
        DefaultExecutionOrchestratorService,
    )

    return DefaultExecutionOrchestratorService.from_settings(
        settings=settings,
        store=store,
        risk_assessor=risk_assessor,
        approvals=approvals,
        queue=queue,
        bus=bus,
        style_service=style_service,
    )
