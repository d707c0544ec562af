"""Pydantic settings for approval windows and escalation."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from packages.relay_shared.config import RelaySettings, resolve_component_settings
from services.action.approval_workflow.component import SERVICE_COMPONENT_ID
from services.state.action_store.domain import ActionPriority


class ApprovalWorkflowSettings(BaseModel):
    """Approval timeout matrix, approver thresholds, and escalation bound."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    timeout_minutes_by_priority: dict[ActionPriority, float] = Field(
        default_factory=lambda: {
            ActionPriority.URGENT: 5.0,
            ActionPriority.HIGH: 15.0,
            ActionPriority.MEDIUM: 30.0,
            ActionPriority.LOW: 60.0,
        }
    )
    default_timeout_minutes: float = Field(default=30.0, gt=0.0)
    critical_risk_multiplier: float = Field(default=2.0, gt=0.0)
    low_risk_multiplier: float = Field(default=0.5, gt=0.0)
    compliance_approver_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    max_escalations: int = Field(default=3, ge=0)
    escalation_roles: tuple[str, ...] = ("manager", "director")


def resolve_approval_workflow_settings(
    settings: RelaySettings,
) -> ApprovalWorkflowSettings:
    """Resolve settings from ``components.service.approval_workflow``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(SERVICE_COMPONENT_ID),
        model=ApprovalWorkflowSettings,
    )
