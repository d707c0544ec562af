"""Caller-facing option models for creating actions."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from services.state.action_store.domain import ActionPriority


class ActionOptions(BaseModel):
    """Optional overrides applied when an action is created."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    priority: ActionPriority = ActionPriority.MEDIUM
    requires_approval: bool | None = None
    validate_parameters: bool = Field(default=True, alias="validate")
    timeout_ms: int | None = Field(default=None, gt=0)
    max_retries: int | None = Field(default=None, ge=0)
