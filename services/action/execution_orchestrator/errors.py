"""Exceptions raised by the Execution Orchestrator."""

from __future__ import annotations

from packages.relay_shared.errors import (
    RelayError,
    codes,
    dependency_error,
    not_found_error,
    validation_error,
)
from services.state.action_store.domain import ActionType


class ActionValidationError(RelayError):
    """Raised when a new action lacks required parameters."""

    def __init__(self, *, action_type: ActionType, missing: tuple[str, ...]) -> None:
        super().__init__(
            validation_error(
                f"missing required parameters for {action_type.value}: "
                + ", ".join(missing),
                code=codes.MISSING_REQUIRED_FIELD,
                metadata={"action_type": action_type.value, "missing": ",".join(missing)},
            )
        )
        self.missing = missing


class ExecutorNotFoundError(RelayError):
    """Raised when no executor is registered for an action type."""

    def __init__(self, action_type: ActionType) -> None:
        super().__init__(
            not_found_error(
                f"no executor registered for action type: {action_type.value}",
                code=codes.RESOURCE_NOT_FOUND,
                metadata={"action_type": action_type.value},
            )
        )
        self.action_type = action_type


class ActionTimeoutError(RelayError, TimeoutError):
    """Raised when an executor does not finish inside the action's timeout."""

    def __init__(self, *, action_id: str, timeout_ms: int) -> None:
        super().__init__(
            dependency_error(
                f"action {action_id} timed out after {timeout_ms} ms",
                code=codes.DEPENDENCY_TIMEOUT,
                metadata={"action_id": action_id, "timeout_ms": timeout_ms},
            )
        )
        self.action_id = action_id
        self.timeout_ms = timeout_ms
