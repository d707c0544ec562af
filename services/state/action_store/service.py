"""Authoritative in-process Python API for the Action Store."""

from __future__ import annotations

from dataclasses import dataclass

from resources.substrates.redis import RedisSubstrate
from services.state.action_store.config import ActionStoreSettings
from services.state.action_store.interfaces import (
    ActionRepository,
    ApprovalRepository,
    AuditRepository,
    QueueRepository,
)


@dataclass(frozen=True)
class ActionStore:
    """Bundle of the four repositories every action component persists through."""

    actions: ActionRepository
    approvals: ApprovalRepository
    queues: QueueRepository
    audit: AuditRepository


def build_action_store(
    *,
    settings: ActionStoreSettings,
    backend: RedisSubstrate | None = None,
) -> ActionStore:
    """Build the configured store; the memory backend ignores ``backend``."""
    from services.state.action_store.data.repository import (
        InMemoryActionRepository,
        InMemoryApprovalRepository,
        InMemoryAuditRepository,
        InMemoryQueueRepository,
        RedisActionRepository,
        RedisApprovalRepository,
        RedisAuditRepository,
        RedisQueueRepository,
    )

    if settings.backend == "memory":
        return ActionStore(
            actions=InMemoryActionRepository(),
            approvals=InMemoryApprovalRepository(),
            queues=InMemoryQueueRepository(),
            audit=InMemoryAuditRepository(),
        )

    if backend is None:
        raise ValueError("redis backend requires a Redis substrate instance")
    prefix = settings.key_prefix
    return ActionStore(
        actions=RedisActionRepository(
            backend=backend, key_prefix=prefix, ttl_seconds=settings.action_ttl_seconds
        ),
        approvals=RedisApprovalRepository(
            backend=backend, key_prefix=prefix, ttl_seconds=settings.approval_ttl_seconds
        ),
        queues=RedisQueueRepository(
            backend=backend, key_prefix=prefix, ttl_seconds=settings.queue_ttl_seconds
        ),
        audit=RedisAuditRepository(
            backend=backend, key_prefix=prefix, ttl_seconds=settings.audit_ttl_seconds
        ),
    )


def build_in_memory_action_store() -> ActionStore:
    """Build a process-local store for tests and single-run tooling."""
    return build_action_store(settings=ActionStoreSettings(backend="memory"))
