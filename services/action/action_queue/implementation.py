"""Concrete Priority Queue Manager implementation.

Queues live in memory and are mirrored to the queue repository after every
change. Each non-empty queue has an interval poll loop; a poll pops the
best-scoring members while the queue has free concurrency and hands each to
the ``action_ready`` subscribers as its own task. The in-flight counter is
released when that task ends.
"""

from __future__ import annotations

import asyncio

from packages.relay_shared.config import RelaySettings
from packages.relay_shared.events import MessageBus
from packages.relay_shared.logging import get_logger, public_api_instrumented
from packages.relay_shared.timers import TimerRegistry
from services.action.action_queue.component import SERVICE_COMPONENT_ID
from services.action.action_queue.config import (
    ActionQueueSettings,
    QueueDefinition,
    resolve_action_queue_settings,
)
from services.action.action_queue.errors import QueueNotFoundError
from services.action.action_queue.scoring import select_next
from services.action.action_queue.service import ActionQueueService
from services.state.action_store.audit import append_audit
from services.state.action_store.domain import (
    Action,
    ActionPriority,
    ActionQueue,
    ActionResult,
    ActionStatus,
    AuditEvent,
    LifecycleEvent,
    QueueMetrics,
    QueueType,
    RiskLevel,
    utc_now,
)
from services.state.action_store.errors import (
    ActionNotFoundError,
    InvalidTransitionError,
)
from services.state.action_store.service import ActionStore

_LOGGER = get_logger(__name__)

_FINISHED_STATUSES = frozenset(
    {ActionStatus.COMPLETED, ActionStatus.FAILED, ActionStatus.TIMEOUT}
)


class DefaultActionQueueService(ActionQueueService):
    """Tiered, concurrency-bounded action queues with aging."""

    def __init__(
        self,
        *,
        settings: ActionQueueSettings,
        store: ActionStore,
        bus: MessageBus,
    ) -> None:
        self._settings = settings
        self._store = store
        self._bus = bus
        self._queues: dict[str, ActionQueue] = {}
        self._timers = TimerRegistry(name="queue-poll")
        self._dispatches: set[asyncio.Task[None]] = set()
        self._started = False
        self._start_lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls,
        *,
        settings: RelaySettings,
        store: ActionStore,
        bus: MessageBus,
    ) -> "DefaultActionQueueService":
        """Build the queue manager from typed root settings and collaborators."""
        return cls(
            settings=resolve_action_queue_settings(settings),
            store=store,
            bus=bus,
        )

    async def start(self) -> None:
        """Load or create configured queues and resume polling non-empty ones."""
        await self._ensure_queues()
        for queue in self._queues.values():
            if queue.actions and not queue.paused:
                self._ensure_polling(queue.id)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("queue_id",),
    )
    async def enqueue_action(
        self, *, action: Action, queue_id: str | None = None
    ) -> ActionQueue:
        """Place ``action`` on ``queue_id`` or on its routed default queue."""
        await self._ensure_queues()
        target_id = queue_id or route_action(action)
        queue = self._require_queue(target_id)

        stored = await self._store.actions.get(record_id=action.id)
        if stored is not None:
            action = stored

        if action.queue_id is not None and action.queue_id != queue.id:
            await self._drop_member(action.queue_id, action.id)
        _transition(action, ActionStatus.QUEUED)
        action.queue_id = queue.id
        action.scheduled_at = utc_now()
        await self._store.actions.put(record=action)

        if action.id not in queue.actions:
            queue.actions = [*queue.actions, action.id]
        queue.metrics.current_queue_size = len(queue.actions)
        await self._store.queues.put(record=queue)
        await self._bus.emit(
            LifecycleEvent.ACTION_QUEUED.value,
            {"action_id": action.id, "queue_id": queue.id},
        )
        if not queue.paused:
            self._ensure_polling(queue.id)
        return queue.model_copy(deep=True)

    async def remove_action(self, *, action_id: str) -> bool:
        """Drop ``action_id`` from whichever queue holds it."""
        await self._ensure_queues()
        removed = False
        for queue_id in list(self._queues):
            removed = await self._drop_member(queue_id, action_id) or removed
        return removed

    async def poll_once(self, *, queue_id: str) -> tuple[asyncio.Task[None], ...]:
        """Dispatch ready members of one queue up to its free concurrency."""
        await self._ensure_queues()
        queue = self._require_queue(queue_id)
        if queue.paused or not queue.actions:
            return ()
        if self._bus.handler_count(LifecycleEvent.ACTION_READY.value) == 0:
            return ()

        members: list[Action] = []
        for action_id in queue.actions:
            action = await self._store.actions.get(record_id=action_id)
            if action is not None and action.status is ActionStatus.QUEUED:
                members.append(action)
        live_ids = {action.id for action in members}
        queue.actions = [item for item in queue.actions if item in live_ids]

        tasks: list[asyncio.Task[None]] = []
        weights = queue.config.priority_weights
        while queue.metrics.in_flight < queue.max_concurrency and members:
            chosen = select_next(members, weights=weights, now=utc_now())
            if chosen is None:
                break
            members.remove(chosen)
            queue.actions = [item for item in queue.actions if item != chosen.id]
            if not chosen.awaiting_approval:
                chosen.transition(ActionStatus.EXECUTING)
                chosen.executed_at = utc_now()
                await self._store.actions.put(record=chosen)
            queue.metrics.in_flight += 1
            tasks.append(self._spawn_dispatch(queue.id, chosen.id))

        queue.metrics.current_queue_size = len(queue.actions)
        await self._store.queues.put(record=queue)
        return tuple(tasks)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
        id_fields=("action_id",),
    )
    async def update_action_status(
        self,
        *,
        action_id: str,
        status: ActionStatus,
        result: ActionResult | None = None,
    ) -> Action:
        """Apply one validated status change and return the stored action."""
        await self._ensure_queues()
        action = await self._store.actions.get(record_id=action_id)
        if action is None:
            raise ActionNotFoundError(action_id)

        previous = _transition(action, status)
        if result is not None:
            action.result = result
        if status is ActionStatus.EXECUTING and action.executed_at is None:
            action.executed_at = utc_now()
        await self._store.actions.put(record=action)

        if status in _FINISHED_STATUSES and action.queue_id in self._queues:
            await self._record_completion(self._queues[action.queue_id], action)

        await self._bus.emit(
            LifecycleEvent.ACTION_STATUS_CHANGED.value,
            {
                "action_id": action.id,
                "previous_status": previous.value,
                "status": status.value,
                "queue_id": action.queue_id,
            },
        )
        return action

    async def pause_queue(self, *, queue_id: str) -> ActionQueue:
        """Stop dispatching from one queue."""
        await self._ensure_queues()
        queue = self._require_queue(queue_id)
        queue.paused = True
        await self._store.queues.put(record=queue)
        _LOGGER.info("queue paused", extra={"queue_id": queue_id})
        return queue.model_copy(deep=True)

    async def resume_queue(self, *, queue_id: str) -> ActionQueue:
        """Resume dispatching from one queue."""
        await self._ensure_queues()
        queue = self._require_queue(queue_id)
        queue.paused = False
        await self._store.queues.put(record=queue)
        if queue.actions:
            self._ensure_polling(queue.id)
        _LOGGER.info("queue resumed", extra={"queue_id": queue_id})
        return queue.model_copy(deep=True)

    async def clear_queue(self, *, queue_id: str) -> int:
        """Cancel every member of one queue and return how many were cancelled."""
        await self._ensure_queues()
        queue = self._require_queue(queue_id)
        members = list(queue.actions)
        queue.actions = []
        queue.metrics.current_queue_size = 0
        await self._store.queues.put(record=queue)

        cancelled = 0
        for action_id in members:
            stored = await self._store.actions.get(record_id=action_id)
            if stored is None or stored.status.is_terminal:
                continue
            await self.update_action_status(
                action_id=action_id, status=ActionStatus.CANCELLED
            )
            await append_audit(
                self._store,
                action_id=action_id,
                event=AuditEvent.ACTION_CANCELLED,
                actor="system",
                details={"reason": "queue cleared", "queue_id": queue_id},
            )
            cancelled += 1
        _LOGGER.info(
            "queue cleared", extra={"queue_id": queue_id, "cancelled": cancelled}
        )
        return cancelled

    def get_queue_status(self, *, queue_id: str) -> ActionQueue:
        """Return a snapshot of one queue."""
        return self._require_queue(queue_id).model_copy(deep=True)

    def get_all_queues(self) -> tuple[ActionQueue, ...]:
        """Return snapshots of every queue in tier order."""
        return tuple(
            queue.model_copy(deep=True)
            for queue in sorted(
                self._queues.values(), key=lambda item: (item.priority, item.id)
            )
        )

    def get_queue_metrics(self, *, queue_id: str) -> QueueMetrics:
        """Return rolling metrics for one queue."""
        return self._require_queue(queue_id).metrics.model_copy()

    async def reset_queue_metrics(self, *, queue_id: str) -> QueueMetrics:
        """Zero the rolling counters of one queue."""
        await self._ensure_queues()
        queue = self._require_queue(queue_id)
        queue.metrics = QueueMetrics(
            current_queue_size=len(queue.actions),
            in_flight=queue.metrics.in_flight,
        )
        await self._store.queues.put(record=queue)
        return queue.metrics.model_copy()

    async def shutdown(self) -> None:
        """Stop poll loops and drain in-flight dispatches."""
        self._timers.cancel_all()
        if not self._dispatches:
            return
        _, pending = await asyncio.wait(
            set(self._dispatches), timeout=self._settings.drain_timeout_seconds
        )
        for task in pending:
            task.cancel()
        if pending:
            _LOGGER.warning(
                "queue shutdown abandoned in-flight dispatches: count=%s", len(pending)
            )

    async def _ensure_queues(self) -> None:
        if self._started:
            return
        async with self._start_lock:
            if self._started:
                return
            for definition in self._settings.queues:
                stored = await self._store.queues.get(record_id=definition.id)
                queue = stored if stored is not None else _queue_from(definition)
                # Dispatches do not survive a restart.
                queue.metrics.in_flight = 0
                self._queues[queue.id] = queue
                await self._store.queues.put(record=queue)
            self._started = True

    def _require_queue(self, queue_id: str) -> ActionQueue:
        queue = self._queues.get(queue_id)
        if queue is None:
            raise QueueNotFoundError(queue_id)
        return queue

    def _ensure_polling(self, queue_id: str) -> None:
        if self._timers.is_armed(queue_id):
            return

        async def _poll() -> None:
            await self.poll_once(queue_id=queue_id)

        self._timers.arm_interval(
            queue_id,
            interval_seconds=self._settings.poll_interval_seconds,
            callback=_poll,
        )

    def _spawn_dispatch(self, queue_id: str, action_id: str) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(
            self._dispatch(queue_id, action_id), name=f"dispatch:{action_id}"
        )
        self._dispatches.add(task)
        task.add_done_callback(self._dispatches.discard)
        return task

    async def _dispatch(self, queue_id: str, action_id: str) -> None:
        try:
            await self._bus.emit(
                LifecycleEvent.ACTION_READY.value,
                {"action_id": action_id, "queue_id": queue_id},
            )
        finally:
            queue = self._queues[queue_id]
            queue.metrics.in_flight = max(0, queue.metrics.in_flight - 1)
            await self._store.queues.put(record=queue)

    async def _drop_member(self, queue_id: str, action_id: str) -> bool:
        queue = self._queues.get(queue_id)
        if queue is None or action_id not in queue.actions:
            return False
        queue.actions = [item for item in queue.actions if item != action_id]
        queue.metrics.current_queue_size = len(queue.actions)
        await self._store.queues.put(record=queue)
        return True

    async def _record_completion(self, queue: ActionQueue, action: Action) -> None:
        # Averages are a two-sample blend with the newest observation.
        metrics = queue.metrics
        processed = metrics.total_processed + 1
        succeeded = 1.0 if action.status is ActionStatus.COMPLETED else 0.0
        metrics.success_rate = (
            metrics.success_rate * metrics.total_processed + succeeded
        ) / processed
        metrics.error_rate = 1.0 - metrics.success_rate
        if action.result is not None:
            metrics.average_execution_time_ms = _blend(
                metrics.average_execution_time_ms,
                action.result.execution_time_ms,
                first=metrics.total_processed == 0,
            )
        if action.scheduled_at is not None and action.executed_at is not None:
            waited_ms = max(
                0.0, (action.executed_at - action.scheduled_at).total_seconds() * 1000.0
            )
            metrics.average_wait_time_ms = _blend(
                metrics.average_wait_time_ms,
                waited_ms,
                first=metrics.total_processed == 0,
            )
        if metrics.average_execution_time_ms > 0:
            metrics.processing_rate = (
                queue.max_concurrency * 1000.0 / metrics.average_execution_time_ms
            )
        metrics.total_processed = processed
        await self._store.queues.put(record=queue)


def route_action(action: Action) -> str:
    """Return the default queue id for ``action``."""
    if action.awaiting_approval:
        return QueueType.APPROVAL_REQUIRED.value
    if action.priority in (ActionPriority.URGENT, ActionPriority.HIGH):
        return QueueType.HIGH_PRIORITY.value
    if action.risk_level is RiskLevel.LOW and action.priority is ActionPriority.LOW:
        return QueueType.BACKGROUND.value
    return QueueType.STANDARD.value


def _queue_from(definition: QueueDefinition) -> ActionQueue:
    return ActionQueue(
        id=definition.id,
        name=definition.name,
        type=definition.type,
        priority=definition.priority,
        max_concurrency=definition.max_concurrency,
        config=definition.config,
    )


def _blend(current: float, sample: float, *, first: bool) -> float:
    if first:
        return sample
    return (current + sample) / 2.0


def _transition(action: Action, target: ActionStatus) -> ActionStatus:
    try:
        return action.transition(target)
    except ValueError as exc:
        raise InvalidTransitionError(
            action_id=action.id, current=action.status, target=target
        ) from exc
