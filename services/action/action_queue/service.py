"""Authoritative in-process Python API for the Priority Queue Manager."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod

from packages.relay_shared.config import RelaySettings
from packages.relay_shared.events import MessageBus
from services.state.action_store.domain import (
    Action,
    ActionQueue,
    ActionResult,
    ActionStatus,
    QueueMetrics,
)
from services.state.action_store.service import ActionStore


class ActionQueueService(ABC):
    """Public API for queue routing, dispatch, and status mutation."""

    @abstractmethod
    async def start(self) -> None:
        """Load or create configured queues and resume polling non-empty ones."""

    @abstractmethod
    async def enqueue_action(
        self, *, action: Action, queue_id: str | None = None
    ) -> ActionQueue:
        """Place ``action`` on ``queue_id`` or on its routed default queue."""

    @abstractmethod
    async def remove_action(self, *, action_id: str) -> bool:
        """Drop ``action_id`` from whichever queue holds it."""

    @abstractmethod
    async def poll_once(self, *, queue_id: str) -> tuple[asyncio.Task[None], ...]:
        """Dispatch ready members of one queue up to its free concurrency."""

    @abstractmethod
    async def update_action_status(
        self,
        *,
        action_id: str,
        status: ActionStatus,
        result: ActionResult | None = None,
    ) -> Action:
        """Apply one validated status change and return the stored action."""

    @abstractmethod
    async def pause_queue(self, *, queue_id: str) -> ActionQueue:
        """Stop dispatching from one queue."""

    @abstractmethod
    async def resume_queue(self, *, queue_id: str) -> ActionQueue:
        """Resume dispatching from one queue."""

    @abstractmethod
    async def clear_queue(self, *, queue_id: str) -> int:
        """Cancel every member of one queue and return how many were cancelled."""

    @abstractmethod
    def get_queue_status(self, *, queue_id: str) -> ActionQueue:
        """Return a snapshot of one queue."""

    @abstractmethod
    def get_all_queues(self) -> tuple[ActionQueue, ...]:
        """Return snapshots of every queue in tier order."""

    @abstractmethod
    def get_queue_metrics(self, *, queue_id: str) -> QueueMetrics:
        """Return rolling metrics for one queue."""

    @abstractmethod
    async def reset_queue_metrics(self, *, queue_id: str) -> QueueMetrics:
        """Zero the rolling counters of one queue."""

    @abstractmethod
    async def shutdown(self) -> None:
        """Stop poll loops and drain in-flight dispatches."""


def build_action_queue_service(
    *, settings: RelaySettings, store: ActionStore, bus: MessageBus
) -> ActionQueueService:
    """Build default queue manager implementation from typed settings."""
    from services.action.action_queue.implementation import DefaultActionQueueService

    return DefaultActionQueueService.from_settings(
        settings=settings, store=store, bus=bus
    )
