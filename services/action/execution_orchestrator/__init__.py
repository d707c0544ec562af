"""Execution Orchestrator service exports."""

from services.action.execution_orchestrator.config import (
    ExecutionOrchestratorSettings,
    resolve_execution_orchestrator_settings,
)
from services.action.execution_orchestrator.domain import ActionOptions
from services.action.execution_orchestrator.errors import (
    ActionTimeoutError,
    ActionValidationError,
    ExecutorNotFoundError,
)
from services.action.execution_orchestrator.implementation import (
    DefaultExecutionOrchestratorService,
)
from services.action.execution_orchestrator.interfaces import (
    ActionExecutor,
    StyleService,
)
from services.action.execution_orchestrator.registry import ExecutorRegistry
from services.action.execution_orchestrator.service import (
    ExecutionOrchestratorService,
    build_execution_orchestrator_service,
)

__all__ = [
    "ActionExecutor",
    "ActionOptions",
    "ActionTimeoutError",
    "ActionValidationError",
    "DefaultExecutionOrchestratorService",
    "ExecutionOrchestratorService",
    "ExecutionOrchestratorSettings",
    "ExecutorNotFoundError",
    "ExecutorRegistry",
    "StyleService",
    "build_execution_orchestrator_service",
    "resolve_execution_orchestrator_settings",
]
