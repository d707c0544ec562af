"""Redis client-backed substrate implementation."""

from __future__ import annotations

from resources.substrates.redis.client import (
    create_redis_client,
    create_redis_client_with_timeouts,
)
from resources.substrates.redis.config import RedisSettings
from resources.substrates.redis.substrate import RedisHealthStatus, RedisSubstrate


class RedisClientSubstrate(RedisSubstrate):
    """Concrete Redis substrate using redis-py asyncio client operations."""

    def __init__(self, *, settings: RedisSettings) -> None:
        self._client = create_redis_client(settings)
        self._health_client = create_redis_client_with_timeouts(
            settings=settings,
            connect_timeout_seconds=settings.health_timeout_seconds,
            socket_timeout_seconds=settings.health_timeout_seconds,
        )

    async def set_value(self, *, key: str, value: str, ttl_seconds: int | None) -> None:
        """Set one value with optional TTL in seconds."""
        if ttl_seconds is None:
            await self._client.set(key, value)
            return
        await self._client.set(key, value, ex=ttl_seconds)

    async def get_value(self, *, key: str) -> str | None:
        """Read one value by key."""
        value = await self._client.get(key)
        if value is None:
            return None
        return str(value)

    async def delete_value(self, *, key: str) -> bool:
        """Delete one key and return whether a value existed."""
        return bool(await self._client.delete(key))

    async def add_member(self, *, index: str, member: str) -> bool:
        """Add one member to an index set."""
        return bool(await self._client.sadd(index, member))

    async def remove_member(self, *, index: str, member: str) -> bool:
        """Remove one member from an index set."""
        return bool(await self._client.srem(index, member))

    async def list_members(self, *, index: str) -> tuple[str, ...]:
        """Return sorted index-set members."""
        members = await self._client.smembers(index)
        return tuple(sorted(str(member) for member in members))

    async def ping(self) -> bool:
        """Return Redis ping status."""
        return bool(await self._health_client.ping())

    async def health(self) -> RedisHealthStatus:
        """Return Redis substrate readiness and concise detail."""
        try:
            ready = await self.ping()
        except Exception as exc:  # noqa: BLE001
            return RedisHealthStatus(
                ready=False,
                detail=f"redis ping failed: {type(exc).__name__}",
            )
        return RedisHealthStatus(
            ready=ready,
            detail="ok" if ready else "redis ping returned false",
        )

    async def close(self) -> None:
        """Close both pooled clients."""
        await self._client.aclose()
        await self._health_client.aclose()
