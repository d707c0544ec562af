"""Approval Workflow service exports."""

from services.action.approval_workflow.config import (
    ApprovalWorkflowSettings,
    resolve_approval_workflow_settings,
)
from services.action.approval_workflow.errors import (
    ApprovalAlreadyResolvedError,
    ApprovalNotFoundError,
)
from services.action.approval_workflow.implementation import (
    DefaultApprovalWorkflowService,
)
from services.action.approval_workflow.service import (
    ApprovalWorkflowService,
    build_approval_workflow_service,
)

__all__ = [
    "ApprovalAlreadyResolvedError",
    "ApprovalNotFoundError",
    "ApprovalWorkflowService",
    "ApprovalWorkflowSettings",
    "DefaultApprovalWorkflowService",
    "build_approval_workflow_service",
    "resolve_approval_workflow_settings",
]
