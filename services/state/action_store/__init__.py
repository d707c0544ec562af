"""Action Store package exports."""

from services.state.action_store.audit import REDACTED, append_audit, sanitize
from services.state.action_store.component import MANIFEST, SERVICE_COMPONENT_ID
from services.state.action_store.config import (
    ActionStoreSettings,
    resolve_action_store_settings,
)
from services.state.action_store.errors import ActionNotFoundError, InvalidTransitionError
from services.state.action_store.interfaces import (
    ActionRepository,
    ApprovalRepository,
    AuditRepository,
    QueueRepository,
)
from services.state.action_store.service import (
    ActionStore,
    build_action_store,
    build_in_memory_action_store,
)

__all__ = [
    "ActionNotFoundError",
    "ActionRepository",
    "ActionStore",
    "ActionStoreSettings",
    "ApprovalRepository",
    "AuditRepository",
    "InvalidTransitionError",
    "MANIFEST",
    "QueueRepository",
    "REDACTED",
    "SERVICE_COMPONENT_ID",
    "append_audit",
    "build_action_store",
    "build_in_memory_action_store",
    "resolve_action_store_settings",
    "sanitize",
]
