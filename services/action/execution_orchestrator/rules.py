"""Creation-time tables: required parameters, descriptions, and defaults."""

from __future__ import annotations

from services.state.action_store.domain import (
    ActionContext,
    ActionParameters,
    ActionType,
)

REQUIRED_PARAMETERS: dict[ActionType, tuple[str, ...]] = {
    ActionType.SEND_EMAIL: ("to", "subject", "content"),
    ActionType.MAKE_CALL: ("to",),
    ActionType.SCHEDULE_MEETING: ("attendees", "subject", "start_time"),
    ActionType.UPDATE_CRM: ("client_id", "data"),
    ActionType.CREATE_TASK: ("title", "description"),
    ActionType.GENERATE_DOCUMENT: ("document_type", "client_id"),
    ActionType.SEND_NOTIFICATION: ("message", "recipient"),
    ActionType.ANALYZE_DATA: ("data",),
    ActionType.FETCH_DATA: ("source",),
    ActionType.VALIDATE_DATA: ("data",),
    ActionType.CUSTOM: (),
}

APPROVAL_REQUIRED_TYPES = frozenset(
    {ActionType.SEND_EMAIL, ActionType.MAKE_CALL, ActionType.SCHEDULE_MEETING}
)
APPROVAL_RECIPIENT_LIMIT = 5

# Field restyled in the agent's voice, and the content type sent with it.
STYLE_TARGETS: dict[ActionType, tuple[str, str]] = {
    ActionType.SEND_EMAIL: ("content", "email"),
    ActionType.SEND_NOTIFICATION: ("message", "message"),
}

BASE_CONFIDENCE = 0.7


def missing_parameters(
    action_type: ActionType, parameters: ActionParameters
) -> tuple[str, ...]:
    """Return required parameter names absent from ``parameters``."""
    provided = parameters.provided_fields()
    return tuple(
        name for name in REQUIRED_PARAMETERS.get(action_type, ()) if name not in provided
    )


def describe_action(action_type: ActionType, parameters: ActionParameters) -> str:
    """Return the stored one-line description for a new action."""
    p = parameters
    if action_type is ActionType.SEND_EMAIL:
        return f"Send email to {_join(p.to, 'recipient')}"
    if action_type is ActionType.MAKE_CALL:
        return f"Make call to {_join(p.to, 'recipient')}"
    if action_type is ActionType.SCHEDULE_MEETING:
        return f"Schedule meeting: {p.subject or 'Meeting'}"
    if action_type is ActionType.UPDATE_CRM:
        return f"Update CRM record for {p.client_id or 'client'}"
    if action_type is ActionType.CREATE_TASK:
        return f"Create task: {p.title or 'Task'}"
    if action_type is ActionType.GENERATE_DOCUMENT:
        return f"Generate {p.document_type or 'document'}"
    if action_type is ActionType.SEND_NOTIFICATION:
        return f"Send notification: {p.message or 'Notification'}"
    if action_type is ActionType.ANALYZE_DATA:
        return f"Analyze data for {p.client_id or 'analysis'}"
    if action_type is ActionType.FETCH_DATA:
        return f"Fetch data from {p.source or 'source'}"
    if action_type is ActionType.VALIDATE_DATA:
        return f"Validate data for {p.client_id or 'validation'}"
    return p.description or "Custom action"


def estimate_confidence(
    action_type: ActionType,
    parameters: ActionParameters,
    context: ActionContext,
) -> float:
    """Return creation-time confidence from context richness and completeness."""
    confidence = BASE_CONFIDENCE
    if context.client_id:
        confidence += 0.1
    if context.crm_data:
        confidence += 0.1
    if context.extracted_intent:
        confidence += 0.05
    required = REQUIRED_PARAMETERS.get(action_type, ())
    if required:
        present = len(required) - len(missing_parameters(action_type, parameters))
        completeness = min(1.0, present / len(required))
    else:
        completeness = 1.0
    confidence += 0.05 * completeness
    return round(min(1.0, confidence), 4)


def default_requires_approval(
    action_type: ActionType, parameters: ActionParameters
) -> bool:
    """Return whether a new action needs sign-off unless the caller overrides."""
    return (
        action_type in APPROVAL_REQUIRED_TYPES
        or parameters.is_bulk
        or parameters.recipient_count() > APPROVAL_RECIPIENT_LIMIT
    )


def _join(value: str | list[str] | None, fallback: str) -> str:
    if not value:
        return fallback
    if isinstance(value, list):
        return ", ".join(value)
    return value
