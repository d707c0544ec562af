"""Keyed, cancellable asyncio timers.

Approval deadlines and queue poll loops are both long-lived tasks that must
be cancelled by id on resolution or shutdown. ``TimerRegistry`` owns those
tasks so nothing outlives the component that armed it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from packages.relay_shared.logging import get_logger

_LOGGER = get_logger(__name__)

TimerCallback = Callable[[], Awaitable[None]]


class TimerRegistry:
    """Registry of one-shot and interval tasks keyed by string id."""

    def __init__(self, *, name: str) -> None:
        self._name = name
        self._tasks: dict[str, asyncio.Task[None]] = {}

    def arm(self, key: str, *, delay_seconds: float, callback: TimerCallback) -> None:
        """Schedule ``callback`` once after ``delay_seconds``, replacing any prior timer."""
        self.cancel(key)
        self._tasks[key] = asyncio.get_running_loop().create_task(
            self._fire_once(key, max(0.0, delay_seconds), callback),
            name=f"{self._name}:{key}",
        )

    def arm_interval(
        self, key: str, *, interval_seconds: float, callback: TimerCallback
    ) -> None:
        """Run ``callback`` every ``interval_seconds`` until cancelled."""
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self.cancel(key)
        self._tasks[key] = asyncio.get_running_loop().create_task(
            self._fire_every(key, interval_seconds, callback),
            name=f"{self._name}:{key}",
        )

    def cancel(self, key: str) -> bool:
        """Cancel one timer; return whether an armed timer was found."""
        task = self._tasks.pop(key, None)
        if task is None:
            return False
        if task is not asyncio.current_task() and not task.done():
            task.cancel()
        return True

    def cancel_all(self) -> int:
        """Cancel every armed timer and return how many were cancelled."""
        keys = list(self._tasks)
        for key in keys:
            self.cancel(key)
        return len(keys)

    def is_armed(self, key: str) -> bool:
        """Return whether a live timer exists for ``key``."""
        task = self._tasks.get(key)
        return task is not None and not task.done()

    def armed_keys(self) -> tuple[str, ...]:
        """Return keys of all live timers."""
        return tuple(key for key in self._tasks if self.is_armed(key))

    async def _fire_once(
        self, key: str, delay_seconds: float, callback: TimerCallback
    ) -> None:
        await asyncio.sleep(delay_seconds)
        # Release the slot first so the callback may re-arm the same key.
        if self._tasks.get(key) is asyncio.current_task():
            del self._tasks[key]
        await self._invoke(key, callback)

    async def _fire_every(
        self, key: str, interval_seconds: float, callback: TimerCallback
    ) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            await self._invoke(key, callback)

    async def _invoke(self, key: str, callback: TimerCallback) -> None:
        try:
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            _LOGGER.exception("Timer callback failed: registry=%s key=%s", self._name, key)
