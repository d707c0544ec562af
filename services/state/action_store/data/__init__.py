"""Action-store data layer exports."""

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

__all__ = [
    "InMemoryActionRepository",
    "InMemoryApprovalRepository",
    "InMemoryAuditRepository",
    "InMemoryQueueRepository",
    "RedisActionRepository",
    "RedisApprovalRepository",
    "RedisAuditRepository",
    "RedisQueueRepository",
]
