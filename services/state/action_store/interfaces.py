"""Transport-neutral protocol interfaces for action-store persistence."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol, TypeVar

from services.state.action_store.domain import (
    Action,
    ActionQueue,
    ApprovalRequest,
    AuditEntry,
)

TRecord = TypeVar("TRecord")


class RecordRepository(Protocol[TRecord]):
    """Keyed snapshot storage with predicate listing."""

    async def get(self, *, record_id: str) -> TRecord | None:
        """Return one record by id or ``None`` when missing or expired."""

    async def put(self, *, record: TRecord) -> None:
        """Insert or replace one record snapshot."""

    async def delete(self, *, record_id: str) -> bool:
        """Delete one record and return whether it existed."""

    async def list(
        self, *, predicate: Callable[[TRecord], bool] | None = None
    ) -> tuple[TRecord, ...]:
        """Return all stored records matching ``predicate`` in id order."""


class ActionRepository(RecordRepository[Action], Protocol):
    """Snapshot storage for actions."""


class ApprovalRepository(RecordRepository[ApprovalRequest], Protocol):
    """Snapshot storage for approval requests."""


class QueueRepository(RecordRepository[ActionQueue], Protocol):
    """Snapshot storage for queue definitions, membership, and metrics."""


class AuditRepository(Protocol):
    """Append-only per-action audit log storage."""

    async def append(self, *, action_id: str, entry: AuditEntry) -> None:
        """Append one entry to an action's audit log."""

    async def list_for_action(self, *, action_id: str) -> tuple[AuditEntry, ...]:
        """Return an action's audit log in append order."""
