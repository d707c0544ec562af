"""Domain contracts shared by every action-execution component.

Lifecycle records (``Action``, ``ApprovalRequest``, ``ActionQueue``) are
mutable with assignment validation; value records (assessments, audit
entries, results, policies) are frozen.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from packages.relay_shared.ids import generate_ulid_str


def utc_now() -> datetime:
    """Return timezone-aware current UTC timestamp."""
    return datetime.now(UTC)


class ActionType(str, Enum):
    """Kinds of autonomous work an agent may propose."""

    SEND_EMAIL = "send_email"
    MAKE_CALL = "make_call"
    SCHEDULE_MEETING = "schedule_meeting"
    UPDATE_CRM = "update_crm"
    CREATE_TASK = "create_task"
    GENERATE_DOCUMENT = "generate_document"
    SEND_NOTIFICATION = "send_notification"
    ANALYZE_DATA = "analyze_data"
    FETCH_DATA = "fetch_data"
    VALIDATE_DATA = "validate_data"
    CUSTOM = "custom"


class ActionStatus(str, Enum):
    """Lifecycle states of one action."""

    PENDING = "pending"
    QUEUED = "queued"
    WAITING_APPROVAL = "waiting_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"

    @property
    def is_terminal(self) -> bool:
        """Return whether no further transition is allowed."""
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {
        ActionStatus.COMPLETED,
        ActionStatus.FAILED,
        ActionStatus.REJECTED,
        ActionStatus.CANCELLED,
        ActionStatus.TIMEOUT,
    }
)

_ALLOWED_TRANSITIONS: dict[ActionStatus, frozenset[ActionStatus]] = {
    ActionStatus.PENDING: frozenset(
        {
            ActionStatus.QUEUED,
            ActionStatus.WAITING_APPROVAL,
            ActionStatus.APPROVED,
            ActionStatus.EXECUTING,
        }
    ),
    ActionStatus.QUEUED: frozenset(
        {
            ActionStatus.EXECUTING,
            ActionStatus.WAITING_APPROVAL,
            ActionStatus.APPROVED,
        }
    ),
    ActionStatus.WAITING_APPROVAL: frozenset(
        {ActionStatus.APPROVED, ActionStatus.REJECTED}
    ),
    ActionStatus.APPROVED: frozenset({ActionStatus.QUEUED, ActionStatus.EXECUTING}),
    ActionStatus.EXECUTING: frozenset(
        {ActionStatus.COMPLETED, ActionStatus.FAILED, ActionStatus.TIMEOUT}
    ),
}


def can_transition(current: ActionStatus, target: ActionStatus) -> bool:
    """Return whether ``current -> target`` is a legal lifecycle step.

    Any non-terminal state may move to ``cancelled``.
    """
    if current.is_terminal:
        return False
    if target is ActionStatus.CANCELLED:
        return True
    return target in _ALLOWED_TRANSITIONS.get(current, frozenset())


class ActionPriority(str, Enum):
    """Caller-assigned urgency."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class RiskLevel(str, Enum):
    """Coarse risk band derived from a weighted score."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RiskCategory(str, Enum):
    """The five standard risk dimensions."""

    DATA_SENSITIVITY = "data_sensitivity"
    EXTERNAL_IMPACT = "external_impact"
    REVERSIBILITY = "reversibility"
    COMPLIANCE = "compliance"
    COST = "cost"


class ApprovalType(str, Enum):
    """How an approval request is resolved."""

    AUTOMATIC = "automatic"
    MANUAL = "manual"
    ESCALATED = "escalated"
    CONDITIONAL = "conditional"


class AuditEvent(str, Enum):
    """Audit trail event names."""

    ACTION_CREATED = "action_created"
    ACTION_QUEUED = "action_queued"
    ACTION_STARTED = "action_started"
    ACTION_COMPLETED = "action_completed"
    ACTION_FAILED = "action_failed"
    ACTION_CANCELLED = "action_cancelled"
    ACTION_TIMEOUT = "action_timeout"
    APPROVAL_REQUESTED = "approval_requested"
    APPROVAL_GRANTED = "approval_granted"
    APPROVAL_DENIED = "approval_denied"
    ACTION_ESCALATED = "action_escalated"
    ACTION_RETRIED = "action_retried"
    RISK_ASSESSED = "risk_assessed"
    STYLE_ANALYZED = "style_analyzed"


class LifecycleEvent(str, Enum):
    """Message bus event names published to external observers."""

    ACTION_CREATED = "action_created"
    ACTION_QUEUED = "action_queued"
    ACTION_READY = "action_ready"
    ACTION_EXECUTED = "action_executed"
    ACTION_FAILED = "action_failed"
    ACTION_CANCELLED = "action_cancelled"
    ACTION_STATUS_CHANGED = "action_status_changed"
    APPROVAL_REQUESTED = "approval_requested"
    APPROVAL_RESPONDED = "approval_responded"
    APPROVAL_ESCALATED = "approval_escalated"
    ACTION_AUTO_APPROVED = "action_auto_approved"


class QueueType(str, Enum):
    """Queue routing classes."""

    HIGH_PRIORITY = "high_priority"
    STANDARD = "standard"
    LOW_PRIORITY = "low_priority"
    APPROVAL_REQUIRED = "approval_required"
    BACKGROUND = "background"


# Per-type execution deadline in milliseconds.
DEFAULT_TIMEOUTS_MS: dict[ActionType, int] = {
    ActionType.SEND_EMAIL: 15_000,
    ActionType.MAKE_CALL: 60_000,
    ActionType.SCHEDULE_MEETING: 20_000,
    ActionType.UPDATE_CRM: 10_000,
    ActionType.CREATE_TASK: 5_000,
    ActionType.GENERATE_DOCUMENT: 30_000,
    ActionType.SEND_NOTIFICATION: 5_000,
    ActionType.ANALYZE_DATA: 45_000,
    ActionType.FETCH_DATA: 15_000,
    ActionType.VALIDATE_DATA: 10_000,
    ActionType.CUSTOM: 30_000,
}


class ActionParameters(BaseModel):
    """Action input with typed well-known fields and open extras.

    Fields that risk scoring, confidence, and descriptions read are declared;
    anything else a caller passes is kept as an extra for executors.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    to: str | list[str] | None = None
    recipients: list[str] | None = None
    recipient: str | None = None
    subject: str | None = None
    content: str | None = None
    message: str | None = None
    attendees: list[str] | None = None
    start_time: datetime | None = None
    client_id: str | None = None
    agent_id: str | None = None
    template_id: str | None = None
    document_type: str | None = None
    title: str | None = None
    description: str | None = None
    source: str | None = None
    data: Any = None
    bulk: bool | None = None
    count: int | None = None

    def provided(self) -> dict[str, Any]:
        """Return every non-null field, declared or extra, in a plain dict."""
        return self.model_dump(mode="json", exclude_none=True)

    def provided_fields(self) -> frozenset[str]:
        """Return names of every non-null field."""
        return frozenset(self.provided())

    def recipient_count(self) -> int:
        """Return the number of listed recipients (0 when not a list)."""
        return len(self.recipients) if self.recipients is not None else 0

    @property
    def is_bulk(self) -> bool:
        """Return whether the caller flagged this as bulk work."""
        return bool(self.bulk)


class ActionContext(BaseModel):
    """Conversation and CRM context an action was proposed in."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    session_id: str = ""
    agent_id: str = ""
    client_id: str | None = None
    workflow_id: str | None = None
    step_id: str | None = None
    original_request: str = ""
    extracted_intent: str | None = None
    entities: tuple[dict[str, Any], ...] = ()
    crm_data: dict[str, Any] | None = None
    communication_history: tuple[dict[str, Any], ...] = ()


class SideEffect(BaseModel):
    """One externally visible change produced by an executor."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["data_change", "external_communication", "system_update", "file_creation"]
    description: str
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)
    reversible: bool = False


class ActionResult(BaseModel):
    """Outcome returned by an executor or synthesized by the orchestrator."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    success: bool
    data: Any = None
    error: str | None = None
    execution_time_ms: float = Field(default=0.0, ge=0.0)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    metadata: dict[str, Any] = Field(default_factory=dict)
    side_effects: tuple[SideEffect, ...] = ()


class RiskFactor(BaseModel):
    """One weighted dimension of a risk assessment."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    category: RiskCategory
    score: float = Field(ge=0.0, le=1.0)
    weight: float = Field(ge=0.0, le=1.0)
    description: str


class RiskAssessment(BaseModel):
    """Weighted risk evaluation for one action."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    level: RiskLevel
    score: float = Field(ge=0.0, le=1.0)
    factors: tuple[RiskFactor, ...]
    mitigations: tuple[str, ...] = ()
    auto_approval_eligible: bool

    def factor(self, category: RiskCategory) -> RiskFactor | None:
        """Return the factor for ``category`` when present."""
        for item in self.factors:
            if item.category is category:
                return item
        return None


class ApprovalResponse(BaseModel):
    """A human (or system) decision on one approval request."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    approved: bool
    approved_by: str = Field(min_length=1)
    approved_at: datetime = Field(default_factory=utc_now)
    reason: str | None = None
    conditions: tuple[str, ...] = ()
    modifications: dict[str, Any] = Field(default_factory=dict)


class ApprovalRequest(BaseModel):
    """Sign-off request owned by exactly one action."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: str = Field(default_factory=generate_ulid_str)
    action_id: str
    type: ApprovalType
    description: str
    risk_assessment: RiskAssessment
    requested_by: str
    requested_at: datetime = Field(default_factory=utc_now)
    timeout_ms: int = Field(ge=0)
    approvers: tuple[str, ...]
    response: ApprovalResponse | None = None
    escalated: bool = False
    escalation_count: int = Field(default=0, ge=0)
    window_started_at: datetime | None = None

    @property
    def is_resolved(self) -> bool:
        """Return whether a response has been recorded."""
        return self.response is not None

    def deadline(self) -> datetime:
        """Return the instant the current approval window closes.

        Escalation opens a new window; before that the window starts at
        ``requested_at``.
        """
        started = self.window_started_at or self.requested_at
        return started + timedelta(milliseconds=self.timeout_ms)


class AuditEntry(BaseModel):
    """Immutable audit trail record."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=generate_ulid_str)
    timestamp: datetime = Field(default_factory=utc_now)
    event: AuditEvent
    actor: str = Field(min_length=1)
    details: dict[str, Any] = Field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None


class Action(BaseModel):
    """One unit of agent work moving through assessment, approval, and execution."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: str = Field(default_factory=generate_ulid_str)
    type: ActionType
    description: str
    status: ActionStatus = ActionStatus.PENDING
    priority: ActionPriority = ActionPriority.MEDIUM
    risk_level: RiskLevel = RiskLevel.MEDIUM
    confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    requires_approval: bool = False
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    scheduled_at: datetime | None = None
    executed_at: datetime | None = None
    approved_at: datetime | None = None
    parameters: ActionParameters = Field(default_factory=ActionParameters)
    context: ActionContext = Field(default_factory=ActionContext)
    result: ActionResult | None = None
    approval_request: ApprovalRequest | None = None
    audit_trail: list[AuditEntry] = Field(default_factory=list)
    retry_count: int = Field(default=0, ge=0)
    max_retries: int = Field(default=3, ge=0)
    timeout_ms: int = Field(default=30_000, gt=0)
    queue_id: str | None = None

    @property
    def awaiting_approval(self) -> bool:
        """Return whether the action still needs sign-off before it may run."""
        return self.requires_approval and self.approved_at is None

    def transition(self, target: ActionStatus) -> ActionStatus:
        """Move to ``target`` after validating the lifecycle step.

        Returns the previous status. Raises ``ValueError`` on illegal steps;
        callers translate that into their own error type.
        """
        previous = self.status
        if previous is target:
            return previous
        if not can_transition(previous, target):
            raise ValueError(
                f"illegal status transition {previous.value} -> {target.value}"
            )
        self.status = target
        self.updated_at = utc_now()
        return previous

    def record_audit(self, entry: AuditEntry) -> AuditEntry:
        """Append one audit entry to the embedded trail."""
        self.audit_trail = [*self.audit_trail, entry]
        return entry


class RetryPolicy(BaseModel):
    """Retry/backoff configuration for one queue."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_retries: int = Field(default=3, ge=0)
    backoff_strategy: Literal["fixed", "exponential", "linear"] = "exponential"
    base_delay_ms: int = Field(default=1_000, ge=0)
    max_delay_ms: int = Field(default=30_000, ge=0)
    retryable_errors: tuple[str, ...] = (
        "timeout",
        "network_error",
        "temporary_failure",
        "rate_limit",
        "service_unavailable",
    )


class TimeoutPolicy(BaseModel):
    """Execution and escalation deadlines for one queue."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_timeout_ms: int = Field(default=30_000, gt=0)
    action_timeouts_ms: dict[ActionType, int] = Field(
        default_factory=lambda: dict(DEFAULT_TIMEOUTS_MS)
    )
    escalation_timeout_ms: int = Field(default=300_000, gt=0)

    def timeout_for(self, action_type: ActionType) -> int:
        """Return the deadline for ``action_type``."""
        return self.action_timeouts_ms.get(action_type, self.default_timeout_ms)


class EscalationRule(BaseModel):
    """Condition under which an approval is routed to a wider approver set."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    condition: str
    escalate_to: tuple[str, ...]
    timeout_ms: int = Field(gt=0)


class ApprovalPolicy(BaseModel):
    """Approval thresholds for one queue."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    auto_approval_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    required_approvers: int = Field(default=1, ge=1)
    approver_roles: tuple[str, ...] = ("agent", "supervisor")
    escalation_rules: tuple[EscalationRule, ...] = (
        EscalationRule(
            condition="timeout_exceeded",
            escalate_to=("supervisor", "manager"),
            timeout_ms=300_000,
        ),
    )


class QueueConfig(BaseModel):
    """Policy snapshot carried by each queue."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)
    timeout_policy: TimeoutPolicy = Field(default_factory=TimeoutPolicy)
    approval_policy: ApprovalPolicy = Field(default_factory=ApprovalPolicy)
    priority_weights: dict[ActionPriority, float] = Field(
        default_factory=lambda: {
            ActionPriority.URGENT: 4.0,
            ActionPriority.HIGH: 3.0,
            ActionPriority.MEDIUM: 2.0,
            ActionPriority.LOW: 1.0,
        }
    )


class QueueMetrics(BaseModel):
    """Rolling counters for one queue.

    Averages use a two-sample blend, not a true moving average.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    total_processed: int = Field(default=0, ge=0)
    success_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    average_execution_time_ms: float = Field(default=0.0, ge=0.0)
    average_wait_time_ms: float = Field(default=0.0, ge=0.0)
    current_queue_size: int = Field(default=0, ge=0)
    processing_rate: float = Field(default=0.0, ge=0.0)
    error_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    in_flight: int = Field(default=0, ge=0)


class ActionQueue(BaseModel):
    """Named queue with its own policy snapshot, concurrency bound, and members."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    type: QueueType
    priority: int = Field(ge=1)
    max_concurrency: int = Field(ge=1)
    actions: list[str] = Field(default_factory=list)
    config: QueueConfig = Field(default_factory=QueueConfig)
    metrics: QueueMetrics = Field(default_factory=QueueMetrics)
    paused: bool = False


class ExecutionMetrics(BaseModel):
    """Aggregate statistics across every stored action."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    total_actions: int = 0
    success_rate: float = 0.0
    average_execution_time_ms: float = 0.0
    actions_by_type: dict[str, int] = Field(default_factory=dict)
    actions_by_status: dict[str, int] = Field(default_factory=dict)
    risk_distribution: dict[str, int] = Field(default_factory=dict)
    approval_rate: float = 0.0
    auto_approval_rate: float = 0.0
    escalation_rate: float = 0.0
    retry_rate: float = 0.0
    timeout_rate: float = 0.0
