"""Pydantic settings for queue definitions and polling."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from packages.relay_shared.config import RelaySettings, resolve_component_settings
from services.action.action_queue.component import SERVICE_COMPONENT_ID
from services.state.action_store.domain import (
    ApprovalPolicy,
    QueueConfig,
    QueueType,
)


class QueueDefinition(BaseModel):
    """Static definition of one queue created at startup."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    type: QueueType
    priority: int = Field(ge=1)
    max_concurrency: int = Field(ge=1)
    config: QueueConfig = Field(default_factory=QueueConfig)


def _default_queues() -> tuple[QueueDefinition, ...]:
    return (
        QueueDefinition(
            id=QueueType.HIGH_PRIORITY.value,
            name="High Priority Queue",
            type=QueueType.HIGH_PRIORITY,
            priority=1,
            max_concurrency=5,
        ),
        QueueDefinition(
            id=QueueType.STANDARD.value,
            name="Standard Queue",
            type=QueueType.STANDARD,
            priority=2,
            max_concurrency=3,
        ),
        QueueDefinition(
            id=QueueType.APPROVAL_REQUIRED.value,
            name="Approval Required Queue",
            type=QueueType.APPROVAL_REQUIRED,
            priority=3,
            max_concurrency=2,
            config=QueueConfig(
                approval_policy=ApprovalPolicy(auto_approval_threshold=0.9)
            ),
        ),
        QueueDefinition(
            id=QueueType.BACKGROUND.value,
            name="Background Queue",
            type=QueueType.BACKGROUND,
            priority=4,
            max_concurrency=2,
        ),
    )


class ActionQueueSettings(BaseModel):
    """Queue manager polling cadence and queue definitions."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    poll_interval_seconds: float = Field(default=1.0, gt=0.0)
    drain_timeout_seconds: float = Field(default=5.0, ge=0.0)
    queues: tuple[QueueDefinition, ...] = Field(default_factory=_default_queues)

    @model_validator(mode="after")
    def _queue_ids_unique(self) -> "ActionQueueSettings":
        ids = [queue.id for queue in self.queues]
        if len(ids) != len(set(ids)):
            raise ValueError("queue ids must be unique")
        return self


def resolve_action_queue_settings(settings: RelaySettings) -> ActionQueueSettings:
    """Resolve settings from ``components.service.action_queue``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(SERVICE_COMPONENT_ID),
        model=ActionQueueSettings,
    )
