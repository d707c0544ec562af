"""Priority Queue Manager service exports."""

from services.action.action_queue.config import (
    ActionQueueSettings,
    QueueDefinition,
    resolve_action_queue_settings,
)
from services.action.action_queue.errors import QueueNotFoundError
from services.action.action_queue.implementation import (
    DefaultActionQueueService,
    route_action,
)
from services.action.action_queue.scoring import (
    aging_bonus,
    priority_score,
    select_next,
)
from services.action.action_queue.service import (
    ActionQueueService,
    build_action_queue_service,
)

__all__ = [
    "ActionQueueService",
    "ActionQueueSettings",
    "DefaultActionQueueService",
    "QueueDefinition",
    "QueueNotFoundError",
    "aging_bonus",
    "build_action_queue_service",
    "priority_score",
    "resolve_action_queue_settings",
    "route_action",
    "select_next",
]
