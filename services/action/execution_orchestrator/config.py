"""Pydantic settings for execution retries."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from packages.relay_shared.config import RelaySettings, resolve_component_settings
from services.action.execution_orchestrator.component import SERVICE_COMPONENT_ID
from services.state.action_store.domain import RetryPolicy


class ExecutionOrchestratorSettings(BaseModel):
    """Fallback retry policy for actions outside any queue."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)


def resolve_execution_orchestrator_settings(
    settings: RelaySettings,
) -> ExecutionOrchestratorSettings:
    """Resolve settings from ``components.service.execution_orchestrator``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(SERVICE_COMPONENT_ID),
        model=ExecutionOrchestratorSettings,
    )
