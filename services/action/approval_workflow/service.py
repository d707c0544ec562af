"""Authoritative in-process Python API for the Approval Workflow."""

from __future__ import annotations

from abc import ABC, abstractmethod

from packages.relay_shared.config import RelaySettings
from packages.relay_shared.events import MessageBus
from services.action.risk_assessor.service import RiskAssessorService
from services.state.action_store.domain import (
    Action,
    ApprovalRequest,
    ApprovalResponse,
)
from services.state.action_store.service import ActionStore


class ApprovalWorkflowService(ABC):
    """Public API for approval requests, responses, and escalation."""

    @abstractmethod
    async def request_approval(self, *, action: Action) -> ApprovalRequest:
        """Assess ``action`` and auto-approve it or open a manual request.

        ``action`` is mutated in place (risk level, status, embedded
        request) and persisted.
        """

    @abstractmethod
    async def process_approval_response(
        self, *, approval_id: str, response: ApprovalResponse
    ) -> ApprovalRequest:
        """Record a decision for one pending request."""

    @abstractmethod
    async def cancel_pending_approval(self, *, action_id: str) -> bool:
        """Withdraw an action's outstanding request without a decision event."""

    @abstractmethod
    def get_pending_approvals(
        self, *, approver: str | None = None
    ) -> tuple[ApprovalRequest, ...]:
        """Return unresolved requests, optionally only those naming ``approver``."""

    @abstractmethod
    async def get_approval_request(
        self, *, approval_id: str
    ) -> ApprovalRequest | None:
        """Return one request from the pending set or the durable store."""

    @abstractmethod
    async def restore_pending(self) -> int:
        """Reload unresolved requests after restart and re-arm their timers."""

    @abstractmethod
    async def shutdown(self) -> None:
        """Cancel every approval timer."""


def build_approval_workflow_service(
    *,
    settings: RelaySettings,
    store: ActionStore,
    risk_assessor: RiskAssessorService,
    bus: MessageBus,
) -> ApprovalWorkflowService:
    """Build default Approval Workflow implementation from typed settings."""
    from services.action.approval_workflow.implementation import (
        DefaultApprovalWorkflowService,
    )

    return DefaultApprovalWorkflowService.from_settings(
        settings=settings,
        store=store,
        risk_assessor=risk_assessor,
        bus=bus,
    )
