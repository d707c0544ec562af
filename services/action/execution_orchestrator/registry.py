"""Executor strategy registry keyed by action type."""

from __future__ import annotations

from services.action.execution_orchestrator.errors import ExecutorNotFoundError
from services.action.execution_orchestrator.interfaces import ActionExecutor
from services.state.action_store.domain import ActionType


class ExecutorRegistry:
    """In-memory mapping from action type to its executor."""

    def __init__(self) -> None:
        self._executors: dict[ActionType, ActionExecutor] = {}

    def register(self, action_type: ActionType, executor: ActionExecutor) -> None:
        """Register ``executor`` for ``action_type``, replacing any previous one."""
        self._executors[action_type] = executor

    def unregister(self, action_type: ActionType) -> bool:
        """Remove the executor for ``action_type``; return whether one existed."""
        return self._executors.pop(action_type, None) is not None

    def get(self, action_type: ActionType) -> ActionExecutor:
        """Return the executor for ``action_type`` or raise."""
        executor = self._executors.get(action_type)
        if executor is None:
            raise ExecutorNotFoundError(action_type)
        return executor

    def registered_types(self) -> tuple[ActionType, ...]:
        """Return action types with an executor, in registration order."""
        return tuple(self._executors)
