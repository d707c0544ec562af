"""Audit trail writing with secret redaction."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from services.state.action_store.domain import Action, AuditEntry, AuditEvent
from services.state.action_store.errors import ActionNotFoundError
from services.state.action_store.service import ActionStore

REDACTED = "[REDACTED]"
_SECRET_SEGMENTS = frozenset({"password", "token", "key", "secret"})
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_SEPARATORS = re.compile(r"[^a-z0-9]+")


def sanitize(value: Any) -> Any:
    """Return ``value`` with every secret-named mapping key redacted, recursively."""
    if isinstance(value, Mapping):
        return {
            str(key): REDACTED if _is_secret_key(str(key)) else sanitize(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [sanitize(item) for item in value]
    return value


def _is_secret_key(key: str) -> bool:
    # apiKey, API_KEY, and api-key all split to {"api", "key"}; keywords does not.
    snake = _CAMEL_BOUNDARY.sub("_", key).lower()
    return not _SECRET_SEGMENTS.isdisjoint(_SEPARATORS.split(snake))


async def append_audit(
    store: ActionStore,
    *,
    action_id: str,
    event: AuditEvent,
    actor: str,
    details: Mapping[str, Any] | None = None,
    changes: Mapping[str, Any] | None = None,
) -> Action:
    """Append one sanitized entry to the action's trail and the audit log.

    The action is re-read from the store and ``changes`` are applied to that
    fresh copy before it is saved, so a status written concurrently (for
    example a cancellation) is never overwritten by a caller's stale copy.
    Returns the saved action.
    """
    action = await store.actions.get(record_id=action_id)
    if action is None:
        raise ActionNotFoundError(action_id)
    for field_name, value in (changes or {}).items():
        setattr(action, field_name, value)
    entry = AuditEntry(event=event, actor=actor, details=sanitize(dict(details or {})))
    action.record_audit(entry)
    await store.audit.append(action_id=action_id, entry=entry)
    await store.actions.put(record=action)
    return action
