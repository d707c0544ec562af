"""Exceptions for missing actions and illegal lifecycle steps."""

from __future__ import annotations

from packages.relay_shared.errors import (
    RelayError,
    codes,
    conflict_error,
    not_found_error,
)
from services.state.action_store.domain import ActionStatus


class ActionNotFoundError(RelayError):
    """Raised when an action id has no stored record."""

    def __init__(self, action_id: str) -> None:
        super().__init__(
            not_found_error(
                f"action not found: {action_id}",
                code=codes.RESOURCE_NOT_FOUND,
                metadata={"action_id": action_id},
            )
        )
        self.action_id = action_id


class InvalidTransitionError(RelayError):
    """Raised when an action is asked to make an illegal status change."""

    def __init__(
        self, *, action_id: str, current: ActionStatus, target: ActionStatus
    ) -> None:
        super().__init__(
            conflict_error(
                f"action {action_id} cannot move from {current.value} to {target.value}",
                code=codes.INVALID_TRANSITION,
                metadata={
                    "action_id": action_id,
                    "current": current.value,
                    "target": target.value,
                },
            )
        )
        self.current = current
        self.target = target
