"""In-process publish/subscribe message bus.

Components publish lifecycle notifications by name; observers subscribe by
name (or ``*`` for everything). Delivery is in subscription order and a
failing handler is logged and skipped so it never blocks later handlers or
the publisher.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from packages.relay_shared.logging import get_logger

_LOGGER = get_logger(__name__)

WILDCARD = "*"


@dataclass(frozen=True)
class BusEvent:
    """One published notification."""

    name: str
    payload: Mapping[str, Any] = field(default_factory=dict)
    emitted_at: datetime = field(default_factory=lambda: datetime.now(UTC))


EventHandler = Callable[[BusEvent], Awaitable[None] | None]


@dataclass(frozen=True)
class Subscription:
    """Handle returned by ``subscribe`` for later removal."""

    event_name: str
    handler: EventHandler


class MessageBus:
    """Ordered, failure-isolating event dispatcher."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}

    def subscribe(self, event_name: str, handler: EventHandler) -> Subscription:
        """Register ``handler`` for ``event_name`` (or ``*``)."""
        self._handlers.setdefault(event_name, []).append(handler)
        return Subscription(event_name=event_name, handler=handler)

    def unsubscribe(self, subscription: Subscription) -> bool:
        """Remove one subscription; return whether it was registered."""
        handlers = self._handlers.get(subscription.event_name, [])
        try:
            handlers.remove(subscription.handler)
        except ValueError:
            return False
        return True

    def handler_count(self, event_name: str) -> int:
        """Return number of handlers registered for one event name."""
        return len(self._handlers.get(event_name, ()))

    async def emit(self, event_name: str, payload: Mapping[str, Any] | None = None) -> int:
        """Deliver one event to its handlers and return how many succeeded."""
        event = BusEvent(name=event_name, payload=dict(payload or {}))
        handlers = [
            *self._handlers.get(event_name, ()),
            *self._handlers.get(WILDCARD, ()),
        ]
        delivered = 0
        for handler in handlers:
            try:
                outcome = handler(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                _LOGGER.exception(
                    "Event handler failed: event=%s handler=%s",
                    event_name,
                    getattr(handler, "__qualname__", repr(handler)),
                )
                continue
            delivered += 1
        return delivered


_DEFAULT_BUS = MessageBus()


def get_default_bus() -> MessageBus:
    """Return the process-local bus shared by runtime-built components."""
    return _DEFAULT_BUS
