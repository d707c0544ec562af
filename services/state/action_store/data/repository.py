"""Action-store persistence repository implementations."""

from __future__ import annotations

from collections.abc import Callable
from typing import Generic, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from packages.relay_shared.logging import get_logger
from resources.substrates.redis import RedisSubstrate
from services.state.action_store.domain import (
    Action,
    ActionQueue,
    ApprovalRequest,
    AuditEntry,
)

_LOGGER = get_logger(__name__)

TModel = TypeVar("TModel", bound=BaseModel)

_AUDIT_LOG_ADAPTER = TypeAdapter(list[AuditEntry])


class InMemoryRecordRepository(Generic[TModel]):
    """Dict-backed snapshot repository; stores deep copies."""

    def __init__(self) -> None:
        self._records: dict[str, TModel] = {}

    async def get(self, *, record_id: str) -> TModel | None:
        record = self._records.get(record_id)
        if record is None:
            return None
        return record.model_copy(deep=True)

    async def put(self, *, record: TModel) -> None:
        self._records[_record_id(record)] = record.model_copy(deep=True)

    async def delete(self, *, record_id: str) -> bool:
        return self._records.pop(record_id, None) is not None

    async def list(
        self, *, predicate: Callable[[TModel], bool] | None = None
    ) -> tuple[TModel, ...]:
        return tuple(
            record.model_copy(deep=True)
            for _, record in sorted(self._records.items())
            if predicate is None or predicate(record)
        )


class InMemoryActionRepository(InMemoryRecordRepository[Action]):
    """In-memory action snapshots."""


class InMemoryApprovalRepository(InMemoryRecordRepository[ApprovalRequest]):
    """In-memory approval request snapshots."""


class InMemoryQueueRepository(InMemoryRecordRepository[ActionQueue]):
    """In-memory queue snapshots."""


class InMemoryAuditRepository:
    """In-memory append-only audit logs keyed by action id."""

    def __init__(self) -> None:
        self._logs: dict[str, list[AuditEntry]] = {}

    async def append(self, *, action_id: str, entry: AuditEntry) -> None:
        self._logs.setdefault(action_id, []).append(entry)

    async def list_for_action(self, *, action_id: str) -> tuple[AuditEntry, ...]:
        return tuple(self._logs.get(action_id, ()))


class RedisRecordRepository(Generic[TModel]):
    """Redis-backed snapshot repository with TTL and an id index set.

    Records live at ``<prefix>:<namespace>:<id>`` as JSON; the index set at
    ``<prefix>:<namespace>:index`` enables listing. Index members whose record
    has expired are pruned lazily during ``list``.
    """

    def __init__(
        self,
        *,
        backend: RedisSubstrate,
        model: type[TModel],
        key_prefix: str,
        namespace: str,
        ttl_seconds: int | None,
    ) -> None:
        self._backend = backend
        self._model = model
        self._namespace = f"{key_prefix}:{namespace}"
        self._ttl_seconds = ttl_seconds

    async def get(self, *, record_id: str) -> TModel | None:
        serialized = await self._backend.get_value(key=self._key(record_id))
        if serialized is None:
            return None
        return self._decode(record_id, serialized)

    async def put(self, *, record: TModel) -> None:
        record_id = _record_id(record)
        try:
            await self._backend.set_value(
                key=self._key(record_id),
                value=record.model_dump_json(),
                ttl_seconds=self._ttl_seconds,
            )
            await self._backend.add_member(index=self._index_key, member=record_id)
        except Exception as exc:
            _LOGGER.warning(
                "Action store write failed: namespace=%s record_id=%s exception_type=%s",
                self._namespace,
                record_id,
                type(exc).__name__,
                exc_info=exc,
            )
            raise

    async def delete(self, *, record_id: str) -> bool:
        await self._backend.remove_member(index=self._index_key, member=record_id)
        return await self._backend.delete_value(key=self._key(record_id))

    async def list(
        self, *, predicate: Callable[[TModel], bool] | None = None
    ) -> tuple[TModel, ...]:
        records: list[TModel] = []
        for record_id in await self._backend.list_members(index=self._index_key):
            record = await self.get(record_id=record_id)
            if record is None:
                await self._backend.remove_member(index=self._index_key, member=record_id)
                continue
            if predicate is None or predicate(record):
                records.append(record)
        return tuple(records)

    @property
    def _index_key(self) -> str:
        return f"{self._namespace}:index"

    def _key(self, record_id: str) -> str:
        return f"{self._namespace}:{record_id}"

    def _decode(self, record_id: str, serialized: str) -> TModel | None:
        try:
            return self._model.model_validate_json(serialized)
        except ValidationError as exc:
            _LOGGER.warning(
                "Discarding undecodable snapshot: namespace=%s record_id=%s errors=%s",
                self._namespace,
                record_id,
                exc.error_count(),
            )
            return None


class RedisActionRepository(RedisRecordRepository[Action]):
    """Redis-backed action snapshots."""

    def __init__(
        self, *, backend: RedisSubstrate, key_prefix: str, ttl_seconds: int | None
    ) -> None:
        super().__init__(
            backend=backend,
            model=Action,
            key_prefix=key_prefix,
            namespace="action",
            ttl_seconds=ttl_seconds,
        )


class RedisApprovalRepository(RedisRecordRepository[ApprovalRequest]):
    """Redis-backed approval request snapshots."""

    def __init__(
        self, *, backend: RedisSubstrate, key_prefix: str, ttl_seconds: int | None
    ) -> None:
        super().__init__(
            backend=backend,
            model=ApprovalRequest,
            key_prefix=key_prefix,
            namespace="approval",
            ttl_seconds=ttl_seconds,
        )


class RedisQueueRepository(RedisRecordRepository[ActionQueue]):
    """Redis-backed queue snapshots."""

    def __init__(
        self, *, backend: RedisSubstrate, key_prefix: str, ttl_seconds: int | None
    ) -> None:
        super().__init__(
            backend=backend,
            model=ActionQueue,
            key_prefix=key_prefix,
            namespace="queue",
            ttl_seconds=ttl_seconds,
        )


class RedisAuditRepository:
    """Redis-backed audit logs stored as one JSON list per action."""

    def __init__(
        self, *, backend: RedisSubstrate, key_prefix: str, ttl_seconds: int | None
    ) -> None:
        self._backend = backend
        self._namespace = f"{key_prefix}:audit"
        self._ttl_seconds = ttl_seconds

    async def append(self, *, action_id: str, entry: AuditEntry) -> None:
        entries = [*await self.list_for_action(action_id=action_id), entry]
        await self._backend.set_value(
            key=self._key(action_id),
            value=_AUDIT_LOG_ADAPTER.dump_json(entries).decode("utf-8"),
            ttl_seconds=self._ttl_seconds,
        )

    async def list_for_action(self, *, action_id: str) -> tuple[AuditEntry, ...]:
        serialized = await self._backend.get_value(key=self._key(action_id))
        if serialized is None:
            return ()
        return tuple(_AUDIT_LOG_ADAPTER.validate_json(serialized))

    def _key(self, action_id: str) -> str:
        return f"{self._namespace}:{action_id}"


def _record_id(record: BaseModel) -> str:
    record_id = getattr(record, "id", None)
    if not isinstance(record_id, str) or record_id == "":
        raise ValueError(f"{type(record).__name__} snapshot has no id")
    return record_id
