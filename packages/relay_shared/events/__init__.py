"""Shared in-process event bus."""

from packages.relay_shared.events.bus import (
    WILDCARD,
    BusEvent,
    EventHandler,
    MessageBus,
    Subscription,
    get_default_bus,
)

__all__ = [
    "BusEvent",
    "EventHandler",
    "MessageBus",
    "Subscription",
    "WILDCARD",
    "get_default_bus",
]
