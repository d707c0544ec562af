"""Human-readable approval prompts per action type."""

from __future__ import annotations

from collections.abc import Callable

from services.state.action_store.domain import Action, ActionParameters, ActionType


def _join(value: str | list[str] | None, fallback: str) -> str:
    if not value:
        return fallback
    if isinstance(value, list):
        return ", ".join(value)
    return value


def _email(params: ActionParameters, _: Action) -> str:
    return f'Send email: "{params.subject or "No subject"}" to {_join(params.to, "recipient")}'


def _call(params: ActionParameters, _: Action) -> str:
    return f"Make call to {_join(params.to, 'recipient')}"


def _meeting(params: ActionParameters, _: Action) -> str:
    return (
        f'Schedule meeting: "{params.subject or "Meeting"}" '
        f"with {_join(params.attendees, 'attendees')}"
    )


_DESCRIBERS: dict[ActionType, Callable[[ActionParameters, Action], str]] = {
    ActionType.SEND_EMAIL: _email,
    ActionType.MAKE_CALL: _call,
    ActionType.SCHEDULE_MEETING: _meeting,
    ActionType.UPDATE_CRM: lambda p, _: f"Update CRM record for {p.client_id or 'client'}",
    ActionType.CREATE_TASK: lambda p, a: f'Create task: "{p.title or a.description}"',
    ActionType.GENERATE_DOCUMENT: lambda p, _: (
        f"Generate document: {p.document_type or 'document'} "
        f"for {p.client_id or 'client'}"
    ),
    ActionType.SEND_NOTIFICATION: lambda p, _: (
        f'Send notification: "{p.message or "notification"}"'
    ),
    ActionType.ANALYZE_DATA: lambda p, _: f"Analyze data for {p.client_id or 'analysis'}",
    ActionType.FETCH_DATA: lambda p, _: f"Fetch data from {p.source or 'source'}",
    ActionType.VALIDATE_DATA: lambda p, _: (
        f"Validate data for {p.client_id or 'validation'}"
    ),
}


def describe_for_approval(action: Action) -> str:
    """Return the prompt shown to approvers for ``action``."""
    describer = _DESCRIBERS.get(action.type)
    if describer is None:
        return action.description
    return describer(action.parameters, action)
