"""Transport-agnostic substrate contract for Redis-backed operations."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict


class RedisHealthStatus(BaseModel):
    """Redis substrate readiness payload."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ready: bool
    detail: str


@runtime_checkable
class RedisSubstrate(Protocol):
    """Protocol for async Redis key/value and index-set operations."""

    async def set_value(self, *, key: str, value: str, ttl_seconds: int | None) -> None:
        """Set one serialized value with optional TTL in seconds."""

    async def get_value(self, *, key: str) -> str | None:
        """Get one serialized value by key or ``None`` when missing."""

    async def delete_value(self, *, key: str) -> bool:
        """Delete one key and return whether a value was removed."""

    async def add_member(self, *, index: str, member: str) -> bool:
        """Add one member to an index set; return whether it was new."""

    async def remove_member(self, *, index: str, member: str) -> bool:
        """Remove one member from an index set; return whether it existed."""

    async def list_members(self, *, index: str) -> tuple[str, ...]:
        """Return all members of an index set in sorted order."""

    async def ping(self) -> bool:
        """Return substrate liveness from Redis ``PING``."""

    async def health(self) -> RedisHealthStatus:
        """Probe Redis substrate readiness and detail."""

    async def close(self) -> None:
        """Release pooled connections."""
