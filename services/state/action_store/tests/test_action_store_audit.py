"""Unit tests for audit redaction and trail appends."""

from __future__ import annotations

import pytest

from services.state.action_store.audit import REDACTED, append_audit, sanitize
from services.state.action_store.domain import (
    Action,
    ActionStatus,
    ActionType,
    AuditEvent,
)
from services.state.action_store.errors import ActionNotFoundError
from services.state.action_store.service import build_in_memory_action_store


def test_sanitize_redacts_secret_keys_recursively() -> None:
    """Keys naming passwords, tokens, keys, or secrets are masked at any depth."""
    cleaned = sanitize(
        {
            "to": "client@example.com",
            "API_KEY": "sk-1",
            "auth": {"refresh_token": "r-1", "scopes": ["crm"]},
            "attachments": [{"Secret": "s"}, "plain"],
        }
    )

    assert cleaned == {
        "to": "client@example.com",
        "API_KEY": REDACTED,
        "auth": {"refresh_token": REDACTED, "scopes": ["crm"]},
        "attachments": [{"Secret": REDACTED}, "plain"],
    }


def test_sanitize_matches_whole_name_segments_only() -> None:
    """Secret words count only as whole snake, kebab, or camel segments."""
    cleaned = sanitize(
        {
            "keywords": ["q3", "review"],
            "monkey_id": "m-1",
            "tokenizer": "bpe",
            "apiKey": "sk-2",
            "client-secret": "c-1",
            "db_password": "hunter2",
            "key": "k-1",
        }
    )

    assert cleaned == {
        "keywords": ["q3", "review"],
        "monkey_id": "m-1",
        "tokenizer": "bpe",
        "apiKey": REDACTED,
        "client-secret": REDACTED,
        "db_password": REDACTED,
        "key": REDACTED,
    }


def test_sanitize_leaves_scalars_untouched() -> None:
    """Non-container values pass through."""
    assert sanitize("password") == "password"
    assert sanitize(3) == 3


@pytest.mark.asyncio
async def test_append_audit_keeps_embedded_trail_and_log_in_step() -> None:
    """One append lands in the action snapshot and the audit log."""
    store = build_in_memory_action_store()
    action = Action(type=ActionType.CREATE_TASK, description="Create task: follow up")
    await store.actions.put(record=action)

    saved = await append_audit(
        store,
        action_id=action.id,
        event=AuditEvent.ACTION_CREATED,
        actor="agent-1",
        details={"password": "hunter2", "title": "follow up"},
    )

    entry = saved.audit_trail[-1]
    assert entry.details == {"password": REDACTED, "title": "follow up"}
    assert await store.audit.list_for_action(action_id=action.id) == (entry,)
    stored = await store.actions.get(record_id=action.id)
    assert stored is not None
    assert stored.audit_trail == [entry]


@pytest.mark.asyncio
async def test_append_audit_builds_on_stored_record_not_caller_copy() -> None:
    """A status written after the caller's read survives the append."""
    store = build_in_memory_action_store()
    action = Action(type=ActionType.FETCH_DATA, description="Fetch data from crm")
    await store.actions.put(record=action)
    stale = await store.actions.get(record_id=action.id)
    assert stale is not None

    stored = await store.actions.get(record_id=action.id)
    assert stored is not None
    stored.status = ActionStatus.CANCELLED
    await store.actions.put(record=stored)

    saved = await append_audit(
        store,
        action_id=stale.id,
        event=AuditEvent.ACTION_RETRIED,
        actor="system",
        changes={"retry_count": 1},
    )

    assert saved.status is ActionStatus.CANCELLED
    assert saved.retry_count == 1
    reread = await store.actions.get(record_id=action.id)
    assert reread is not None
    assert reread.status is ActionStatus.CANCELLED
    assert [entry.event for entry in reread.audit_trail] == [AuditEvent.ACTION_RETRIED]


@pytest.mark.asyncio
async def test_append_audit_rejects_unknown_action() -> None:
    """Appending to an unstored action fails loudly."""
    store = build_in_memory_action_store()

    with pytest.raises(ActionNotFoundError):
        await append_audit(
            store,
            action_id="missing",
            event=AuditEvent.ACTION_CREATED,
            actor="system",
        )
    assert await store.audit.list_for_action(action_id="missing") == ()
