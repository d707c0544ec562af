"""Unit tests for in-memory and Redis-backed action-store repositories."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from services.state.action_store.config import ActionStoreSettings
from services.state.action_store.data.repository import (
    InMemoryActionRepository,
    RedisActionRepository,
    RedisAuditRepository,
)
from services.state.action_store.domain import (
    Action,
    ActionStatus,
    ActionType,
    AuditEntry,
    AuditEvent,
)
from services.state.action_store.service import build_action_store


@dataclass
class _FakeBackend:
    """In-memory stand-in for the Redis substrate protocol."""

    values: dict[str, str] = field(default_factory=dict)
    ttls: dict[str, int | None] = field(default_factory=dict)
    sets: dict[str, set[str]] = field(default_factory=dict)

    async def set_value(self, *, key: str, value: str, ttl_seconds: int | None) -> None:
        self.values[key] = value
        self.ttls[key] = ttl_seconds

    async def get_value(self, *, key: str) -> str | None:
        return self.values.get(key)

    async def delete_value(self, *, key: str) -> bool:
        return self.values.pop(key, None) is not None

    async def add_member(self, *, index: str, member: str) -> bool:
        members = self.sets.setdefault(index, set())
        added = member not in members
        members.add(member)
        return added

    async def remove_member(self, *, index: str, member: str) -> bool:
        members = self.sets.get(index, set())
        if member not in members:
            return False
        members.remove(member)
        return True

    async def list_members(self, *, index: str) -> tuple[str, ...]:
        return tuple(sorted(self.sets.get(index, set())))

    async def ping(self) -> bool:
        return True

    async def health(self):
        raise NotImplementedError

    async def close(self) -> None:
        return None


def _action(action_type: ActionType = ActionType.CREATE_TASK) -> Action:
    return Action(type=action_type, description="Create task: follow up")


@pytest.mark.asyncio
async def test_in_memory_repository_returns_isolated_copies() -> None:
    """Mutating a fetched snapshot must not change the stored one."""
    repository = InMemoryActionRepository()
    action = _action()
    await repository.put(record=action)

    fetched = await repository.get(record_id=action.id)
    assert fetched is not None
    fetched.transition(ActionStatus.QUEUED)

    stored = await repository.get(record_id=action.id)
    assert stored is not None
    assert stored.status is ActionStatus.PENDING


@pytest.mark.asyncio
async def test_in_memory_repository_lists_by_predicate() -> None:
    """List should filter with the supplied predicate."""
    repository = InMemoryActionRepository()
    email = _action(ActionType.SEND_EMAIL)
    task = _action(ActionType.CREATE_TASK)
    await repository.put(record=email)
    await repository.put(record=task)

    emails = await repository.list(predicate=lambda item: item.type is ActionType.SEND_EMAIL)

    assert [item.id for item in emails] == [email.id]
    assert await repository.delete(record_id=task.id) is True
    assert await repository.delete(record_id=task.id) is False


@pytest.mark.asyncio
async def test_redis_repository_namespaces_keys_and_applies_ttl() -> None:
    """Snapshots should be written under the namespaced key with the TTL."""
    backend = _FakeBackend()
    repository = RedisActionRepository(
        backend=backend, key_prefix="relay", ttl_seconds=86_400
    )
    action = _action()

    await repository.put(record=action)

    key = f"relay:action:{action.id}"
    assert backend.ttls[key] == 86_400
    assert backend.sets["relay:action:index"] == {action.id}
    fetched = await repository.get(record_id=action.id)
    assert fetched == action


@pytest.mark.asyncio
async def test_redis_repository_prunes_expired_index_members() -> None:
    """Listing should drop index members whose snapshot has expired."""
    backend = _FakeBackend()
    repository = RedisActionRepository(backend=backend, key_prefix="relay", ttl_seconds=60)
    kept = _action()
    expired = _action()
    await repository.put(record=kept)
    await repository.put(record=expired)
    del backend.values[f"relay:action:{expired.id}"]

    listed = await repository.list()

    assert [item.id for item in listed] == [kept.id]
    assert backend.sets["relay:action:index"] == {kept.id}


@pytest.mark.asyncio
async def test_redis_audit_repository_preserves_append_order() -> None:
    """Audit log should read back in append order with the audit TTL."""
    backend = _FakeBackend()
    repository = RedisAuditRepository(
        backend=backend, key_prefix="relay", ttl_seconds=2_592_000
    )
    first = AuditEntry(event=AuditEvent.ACTION_CREATED, actor="agent-1")
    second = AuditEntry(event=AuditEvent.ACTION_COMPLETED, actor="system")

    await repository.append(action_id="A1", entry=first)
    await repository.append(action_id="A1", entry=second)

    assert await repository.list_for_action(action_id="A1") == (first, second)
    assert backend.ttls["relay:audit:A1"] == 2_592_000
    assert await repository.list_for_action(action_id="missing") == ()


def test_build_action_store_requires_backend_for_redis() -> None:
    """Redis-backed store construction must be given a substrate."""
    with pytest.raises(ValueError, match="requires a Redis substrate"):
        build_action_store(settings=ActionStoreSettings(backend="redis"))
