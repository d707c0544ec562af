"""Unit tests for shared action domain contracts."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from services.state.action_store.domain import (
    Action,
    ActionParameters,
    ActionStatus,
    ActionType,
    AuditEntry,
    AuditEvent,
    TimeoutPolicy,
    can_transition,
)


def _action(**overrides: object) -> Action:
    payload: dict[str, object] = {
        "type": ActionType.SEND_EMAIL,
        "description": "Send email to a@example.com",
    }
    payload.update(overrides)
    return Action.model_validate(payload)


def test_terminal_statuses_reject_every_transition() -> None:
    """Terminal states never move again, not even to cancelled."""
    for terminal in (
        ActionStatus.COMPLETED,
        ActionStatus.FAILED,
        ActionStatus.REJECTED,
        ActionStatus.CANCELLED,
        ActionStatus.TIMEOUT,
    ):
        for target in ActionStatus:
            assert can_transition(terminal, target) is False


def test_non_terminal_statuses_may_always_cancel() -> None:
    """Administrative cancellation is allowed from every live state."""
    for status in ActionStatus:
        if status.is_terminal:
            continue
        assert can_transition(status, ActionStatus.CANCELLED) is True


def test_waiting_approval_cannot_jump_to_executing() -> None:
    """Approval gating is enforced by the lifecycle table."""
    assert can_transition(ActionStatus.WAITING_APPROVAL, ActionStatus.EXECUTING) is False
    assert can_transition(ActionStatus.APPROVED, ActionStatus.QUEUED) is True


def test_action_transition_updates_timestamp_and_rejects_illegal_steps() -> None:
    """Transition should validate the step and bump ``updated_at``."""
    action = _action()
    before = action.updated_at

    previous = action.transition(ActionStatus.QUEUED)

    assert previous is ActionStatus.PENDING
    assert action.status is ActionStatus.QUEUED
    assert action.updated_at >= before
    with pytest.raises(ValueError, match="queued -> completed"):
        action.transition(ActionStatus.COMPLETED)


def test_action_rejects_confidence_out_of_range() -> None:
    """Confidence is bounded to the unit interval."""
    with pytest.raises(ValidationError):
        _action(confidence=1.2)


def test_parameters_keep_extras_and_report_provided_fields() -> None:
    """Unknown parameter keys are retained and counted as provided."""
    parameters = ActionParameters.model_validate(
        {"to": "a@example.com", "subject": "Hi", "priority_hint": "vip"}
    )

    assert parameters.provided_fields() == frozenset({"to", "subject", "priority_hint"})
    assert parameters.provided()["priority_hint"] == "vip"
    assert parameters.recipient_count() == 0


def test_record_audit_appends_in_order() -> None:
    """Embedded audit trail only grows at the tail."""
    action = _action()
    first = action.record_audit(AuditEntry(event=AuditEvent.ACTION_CREATED, actor="agent-1"))
    second = action.record_audit(AuditEntry(event=AuditEvent.ACTION_QUEUED, actor="system"))

    assert [entry.id for entry in action.audit_trail] == [first.id, second.id]


def test_timeout_policy_falls_back_to_default_for_unlisted_types() -> None:
    """Per-type timeouts override the queue default."""
    policy = TimeoutPolicy(action_timeouts_ms={ActionType.MAKE_CALL: 60_000})

    assert policy.timeout_for(ActionType.MAKE_CALL) == 60_000
    assert policy.timeout_for(ActionType.CUSTOM) == 30_000
