"""Unit tests for queue routing, dispatch, and status mutation."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import timedelta

import pytest

from packages.relay_shared.events import BusEvent, MessageBus
from services.action.action_queue.config import ActionQueueSettings
from services.action.action_queue.errors import QueueNotFoundError
from services.action.action_queue.implementation import (
    DefaultActionQueueService,
    route_action,
)
from services.state.action_store.domain import (
    Action,
    ActionPriority,
    ActionResult,
    ActionStatus,
    ActionType,
    AuditEvent,
    RiskLevel,
    utc_now,
)
from services.state.action_store.errors import (
    ActionNotFoundError,
    InvalidTransitionError,
)
from services.state.action_store.service import (
    ActionStore,
    build_in_memory_action_store,
)


@dataclass
class _ReadyRecorder:
    """``action_ready`` subscriber that can hold dispatches open."""

    release: asyncio.Event = field(default_factory=asyncio.Event)
    started: list[str] = field(default_factory=list)
    block: bool = False

    async def __call__(self, event: BusEvent) -> None:
        self.started.append(str(event.payload["action_id"]))
        if self.block:
            await self.release.wait()


def _action(
    *,
    priority: ActionPriority = ActionPriority.MEDIUM,
    risk_level: RiskLevel = RiskLevel.MEDIUM,
    **overrides: object,
) -> Action:
    payload: dict[str, object] = {
        "type": ActionType.CREATE_TASK,
        "description": "task",
        "priority": priority,
        "risk_level": risk_level,
    }
    payload.update(overrides)
    return Action.model_validate(payload)


async def _service(
    *, store: ActionStore | None = None
) -> tuple[DefaultActionQueueService, ActionStore, MessageBus]:
    resolved_store = store or build_in_memory_action_store()
    bus = MessageBus()
    service = DefaultActionQueueService(
        settings=ActionQueueSettings(poll_interval_seconds=3600.0),
        store=resolved_store,
        bus=bus,
    )
    await service.start()
    return service, resolved_store, bus


async def _enqueue(
    service: DefaultActionQueueService,
    store: ActionStore,
    action: Action,
    queue_id: str | None = None,
) -> Action:
    await store.actions.put(record=action)
    await service.enqueue_action(action=action, queue_id=queue_id)
    return action


@pytest.mark.asyncio
async def test_start_creates_default_queues() -> None:
    """Four tiered queues exist with their concurrency bounds."""
    service, store, _ = await _service()

    queues = service.get_all_queues()

    assert [(q.id, q.priority, q.max_concurrency) for q in queues] == [
        ("high_priority", 1, 5),
        ("standard", 2, 3),
        ("approval_required", 3, 2),
        ("background", 4, 2),
    ]
    approval = service.get_queue_status(queue_id="approval_required")
    assert approval.config.approval_policy.auto_approval_threshold == 0.9
    assert len(await store.queues.list()) == 4
    await service.shutdown()


def test_default_routing_rules() -> None:
    """Routing follows approval, priority, then risk."""
    assert route_action(_action(requires_approval=True)) == "approval_required"
    assert (
        route_action(
            _action(
                requires_approval=True,
                approved_at=utc_now(),
                priority=ActionPriority.HIGH,
            )
        )
        == "high_priority"
    )
    assert route_action(_action(priority=ActionPriority.URGENT)) == "high_priority"
    assert (
        route_action(_action(priority=ActionPriority.LOW, risk_level=RiskLevel.LOW))
        == "background"
    )
    assert route_action(_action(priority=ActionPriority.LOW)) == "standard"


@pytest.mark.asyncio
async def test_enqueue_marks_action_queued_and_emits() -> None:
    """Enqueue records membership, queue id, and schedule time."""
    service, store, bus = await _service()
    events: list[BusEvent] = []
    bus.subscribe("action_queued", events.append)

    action = await _enqueue(service, store, _action())

    stored = await store.actions.get(record_id=action.id)
    assert stored is not None
    assert stored.status is ActionStatus.QUEUED
    assert stored.queue_id == "standard"
    assert stored.scheduled_at is not None
    status = service.get_queue_status(queue_id="standard")
    assert status.actions == [action.id]
    assert status.metrics.current_queue_size == 1
    assert events[0].payload == {"action_id": action.id, "queue_id": "standard"}
    await service.shutdown()


@pytest.mark.asyncio
async def test_enqueue_unknown_queue_raises() -> None:
    """An unknown target queue is rejected."""
    service, store, _ = await _service()
    action = _action()
    await store.actions.put(record=action)

    with pytest.raises(QueueNotFoundError, match="nowhere"):
        await service.enqueue_action(action=action, queue_id="nowhere")
    await service.shutdown()


@pytest.mark.asyncio
async def test_poll_without_ready_handler_dispatches_nothing() -> None:
    """Members stay queued until someone listens for ``action_ready``."""
    service, store, _ = await _service()
    action = await _enqueue(service, store, _action())

    assert await service.poll_once(queue_id="standard") == ()
    stored = await store.actions.get(record_id=action.id)
    assert stored is not None and stored.status is ActionStatus.QUEUED
    await service.shutdown()


@pytest.mark.asyncio
async def test_poll_respects_max_concurrency() -> None:
    """In-flight dispatches never exceed the queue's concurrency bound."""
    service, store, bus = await _service()
    recorder = _ReadyRecorder(block=True)
    bus.subscribe("action_ready", recorder)
    for _ in range(5):
        await _enqueue(service, store, _action())

    tasks = await service.poll_once(queue_id="standard")
    await asyncio.sleep(0)

    assert len(tasks) == 3
    status = service.get_queue_status(queue_id="standard")
    assert status.metrics.in_flight == 3
    assert len(status.actions) == 2
    assert await service.poll_once(queue_id="standard") == ()

    recorder.release.set()
    await asyncio.gather(*tasks)
    assert service.get_queue_metrics(queue_id="standard").in_flight == 0

    remaining = await service.poll_once(queue_id="standard")
    await asyncio.gather(*remaining)
    assert len(remaining) == 2
    assert len(recorder.started) == 5
    await service.shutdown()


@pytest.mark.asyncio
async def test_dispatch_marks_executing_and_keeps_fifo_for_equal_priority() -> None:
    """Equal-priority members dispatch oldest first and start executing."""
    service, store, bus = await _service()
    recorder = _ReadyRecorder()
    bus.subscribe("action_ready", recorder)
    base = utc_now() - timedelta(minutes=10)
    newest = await _enqueue(service, store, _action(created_at=base + timedelta(minutes=2)))
    oldest = await _enqueue(service, store, _action(created_at=base))
    middle = await _enqueue(service, store, _action(created_at=base + timedelta(minutes=1)))

    tasks = await service.poll_once(queue_id="standard")
    await asyncio.gather(*tasks)

    assert recorder.started == [oldest.id, middle.id, newest.id]
    stored = await store.actions.get(record_id=oldest.id)
    assert stored is not None
    assert stored.status is ActionStatus.EXECUTING
    assert stored.executed_at is not None
    await service.shutdown()


@pytest.mark.asyncio
async def test_members_awaiting_approval_are_handed_off_still_queued() -> None:
    """Dispatch does not start members that still need sign-off."""
    service, store, bus = await _service()
    recorder = _ReadyRecorder()
    bus.subscribe("action_ready", recorder)
    action = await _enqueue(service, store, _action(requires_approval=True))

    tasks = await service.poll_once(queue_id="approval_required")
    await asyncio.gather(*tasks)

    assert recorder.started == [action.id]
    stored = await store.actions.get(record_id=action.id)
    assert stored is not None and stored.status is ActionStatus.QUEUED
    await service.shutdown()


@pytest.mark.asyncio
async def test_paused_queue_does_not_dispatch_until_resumed() -> None:
    """Pausing holds members in place."""
    service, store, bus = await _service()
    recorder = _ReadyRecorder()
    bus.subscribe("action_ready", recorder)
    await _enqueue(service, store, _action())

    await service.pause_queue(queue_id="standard")
    assert await service.poll_once(queue_id="standard") == ()

    await service.resume_queue(queue_id="standard")
    tasks = await service.poll_once(queue_id="standard")
    await asyncio.gather(*tasks)
    assert len(recorder.started) == 1
    await service.shutdown()


@pytest.mark.asyncio
async def test_update_action_status_validates_and_records_metrics() -> None:
    """Finishing an action updates its queue's rolling metrics."""
    service, store, bus = await _service()
    changes: list[BusEvent] = []
    bus.subscribe("action_status_changed", changes.append)
    first = await _enqueue(service, store, _action())
    second = await _enqueue(service, store, _action())

    with pytest.raises(InvalidTransitionError):
        await service.update_action_status(
            action_id=first.id, status=ActionStatus.COMPLETED
        )

    for action, status, elapsed in (
        (first, ActionStatus.COMPLETED, 100.0),
        (second, ActionStatus.FAILED, 300.0),
    ):
        await service.update_action_status(action_id=action.id, status=ActionStatus.EXECUTING)
        await service.update_action_status(
            action_id=action.id,
            status=status,
            result=ActionResult(
                success=status is ActionStatus.COMPLETED,
                execution_time_ms=elapsed,
            ),
        )

    metrics = service.get_queue_metrics(queue_id="standard")
    assert metrics.total_processed == 2
    assert metrics.success_rate == pytest.approx(0.5)
    assert metrics.error_rate == pytest.approx(0.5)
    assert metrics.average_execution_time_ms == pytest.approx(200.0)
    assert [event.payload["status"] for event in changes] == [
        "executing",
        "completed",
        "executing",
        "failed",
    ]

    reset = await service.reset_queue_metrics(queue_id="standard")
    assert reset.total_processed == 0
    await service.shutdown()


@pytest.mark.asyncio
async def test_update_unknown_action_raises() -> None:
    """Status changes for unknown ids are rejected."""
    service, _, _ = await _service()
    with pytest.raises(ActionNotFoundError):
        await service.update_action_status(
            action_id="missing", status=ActionStatus.CANCELLED
        )
    await service.shutdown()


@pytest.mark.asyncio
async def test_clear_queue_cancels_members_with_audit() -> None:
    """Clearing cancels each member and records why."""
    service, store, _ = await _service()
    members = [await _enqueue(service, store, _action()) for _ in range(2)]

    cancelled = await service.clear_queue(queue_id="standard")

    assert cancelled == 2
    assert service.get_queue_status(queue_id="standard").actions == []
    for action in members:
        stored = await store.actions.get(record_id=action.id)
        assert stored is not None and stored.status is ActionStatus.CANCELLED
        trail = await store.audit.list_for_action(action_id=action.id)
        assert trail[-1].event is AuditEvent.ACTION_CANCELLED
        assert trail[-1].details["reason"] == "queue cleared"
    await service.shutdown()


@pytest.mark.asyncio
async def test_remove_action_drops_membership() -> None:
    """Removal takes an action out of whichever queue holds it."""
    service, store, _ = await _service()
    action = await _enqueue(service, store, _action(priority=ActionPriority.HIGH))

    assert await service.remove_action(action_id=action.id) is True
    assert await service.remove_action(action_id=action.id) is False
    assert service.get_queue_status(queue_id="high_priority").actions == []
    await service.shutdown()


@pytest.mark.asyncio
async def test_restart_reloads_queue_membership() -> None:
    """A fresh manager over the same store sees persisted members."""
    store = build_in_memory_action_store()
    first, _, _ = await _service(store=store)
    action = await _enqueue(first, store, _action())
    await first.shutdown()

    second, _, _ = await _service(store=store)

    assert second.get_queue_status(queue_id="standard").actions == [action.id]
    await second.shutdown()
