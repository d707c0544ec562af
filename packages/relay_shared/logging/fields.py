"""Canonical logging field names for cross-component consistency."""

TIMESTAMP = "timestamp"
LEVEL = "level"
LOGGER = "logger"
MESSAGE = "message"
EVENT = "event"

# Action lifecycle correlation fields.
ACTION_ID = "action_id"
ACTION_TYPE = "action_type"
APPROVAL_ID = "approval_id"
QUEUE_ID = "queue_id"
AGENT_ID = "agent_id"
SESSION_ID = "session_id"

# Public API invocation fields.
COMPONENT_ID = "component_id"
API_NAME = "api_name"
PUBLIC_API_INVOCATION_EVENT = "public_api_invocation"
PUBLIC_API_COMPLETION_EVENT = "public_api_completion"
PUBLIC_API_INSTRUMENTATION_FAILURE_EVENT = "public_api_instrumentation_failure"
SUCCESS = "success"
DURATION_MS = "duration_ms"
ERRORS = "errors"
OUTCOME = "outcome"
ERROR_CATEGORY = "error_category"
STAGE = "stage"
CONCERN = "concern"

# Common service-level fields.
SERVICE = "service"
ENVIRONMENT = "environment"
