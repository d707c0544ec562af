"""Static heuristics tables for the five standard risk factors.

Each table maps an action type to the increment (or absolute score, for
reversibility) it contributes. Types absent from a table take the listed
default.
"""

from __future__ import annotations

from services.state.action_store.domain import (
    ActionType,
    RiskCategory,
    RiskLevel,
)

SENSITIVE_TERMS: tuple[str, ...] = (
    "ssn",
    "social_security",
    "credit_card",
    "bank_account",
    "password",
    "personal_info",
    "medical_info",
    "financial_data",
)

REGULATED_TERMS: tuple[str, ...] = ("hipaa", "gdpr", "pii", "phi", "financial", "medical")

FACTOR_NAMES: dict[RiskCategory, tuple[str, str]] = {
    RiskCategory.DATA_SENSITIVITY: (
        "Data Sensitivity",
        "Sensitivity of data being processed",
    ),
    RiskCategory.EXTERNAL_IMPACT: (
        "External Impact",
        "Impact on external systems and stakeholders",
    ),
    RiskCategory.REVERSIBILITY: (
        "Reversibility",
        "Ability to reverse or undo the action",
    ),
    RiskCategory.COMPLIANCE: ("Compliance Risk", "Risk of compliance violations"),
    RiskCategory.COST: ("Cost Impact", "Financial impact of the action"),
}

SENSITIVITY_BASE = 0.2
SENSITIVITY_PER_TERM_HIT = 0.3
SENSITIVITY_BY_TYPE: dict[ActionType, float] = {
    ActionType.SEND_EMAIL: 0.2,
    ActionType.MAKE_CALL: 0.2,
    ActionType.UPDATE_CRM: 0.3,
    ActionType.GENERATE_DOCUMENT: 0.1,
}

EXTERNAL_IMPACT_BASE = 0.1
EXTERNAL_IMPACT_DEFAULT = 0.2
EXTERNAL_IMPACT_BY_TYPE: dict[ActionType, float] = {
    ActionType.SEND_EMAIL: 0.6,
    ActionType.MAKE_CALL: 0.7,
    ActionType.SCHEDULE_MEETING: 0.5,
    ActionType.UPDATE_CRM: 0.2,
    ActionType.SEND_NOTIFICATION: 0.3,
    ActionType.GENERATE_DOCUMENT: 0.1,
}
EXTERNAL_IMPACT_PER_RECIPIENT = 0.05
EXTERNAL_IMPACT_RECIPIENT_CAP = 0.3

# Higher is harder to undo.
REVERSIBILITY_DEFAULT = 0.5
REVERSIBILITY_BY_TYPE: dict[ActionType, float] = {
    ActionType.SEND_EMAIL: 0.9,
    ActionType.MAKE_CALL: 0.9,
    ActionType.SEND_NOTIFICATION: 0.8,
    ActionType.SCHEDULE_MEETING: 0.3,
    ActionType.UPDATE_CRM: 0.2,
    ActionType.CREATE_TASK: 0.1,
    ActionType.GENERATE_DOCUMENT: 0.1,
}

COMPLIANCE_BASE = 0.1
COMPLIANCE_PER_TERM_HIT = 0.2
COMPLIANCE_BY_TYPE: dict[ActionType, float] = {
    ActionType.SEND_EMAIL: 0.3,
    ActionType.MAKE_CALL: 0.3,
    ActionType.UPDATE_CRM: 0.2,
}

COST_BASE = 0.1
COST_DEFAULT = 0.1
COST_BY_TYPE: dict[ActionType, float] = {
    ActionType.MAKE_CALL: 0.3,
    ActionType.SEND_EMAIL: 0.1,
    ActionType.GENERATE_DOCUMENT: 0.2,
}
COST_BULK_SURCHARGE = 0.2
COST_BULK_COUNT = 10

FACTOR_MITIGATIONS: dict[RiskCategory, tuple[str, str]] = {
    RiskCategory.DATA_SENSITIVITY: (
        "Implement additional data encryption",
        "Require data handling approval",
    ),
    RiskCategory.EXTERNAL_IMPACT: (
        "Review recipient list carefully",
        "Use staged rollout approach",
    ),
    RiskCategory.REVERSIBILITY: (
        "Create backup before execution",
        "Implement rollback procedure",
    ),
    RiskCategory.COMPLIANCE: (
        "Conduct compliance review",
        "Document regulatory justification",
    ),
    RiskCategory.COST: ("Implement cost controls", "Require budget approval"),
}

TYPE_MITIGATIONS: dict[ActionType, tuple[str, ...]] = {
    ActionType.SEND_EMAIL: (
        "Preview email content before sending",
        "Verify recipient addresses",
    ),
    ActionType.UPDATE_CRM: ("Validate data before update", "Create audit trail"),
}

# Coarse band assigned at creation, before the weighted assessment runs.
INITIAL_RISK_BY_TYPE: dict[ActionType, RiskLevel] = {
    ActionType.SEND_EMAIL: RiskLevel.MEDIUM,
    ActionType.MAKE_CALL: RiskLevel.HIGH,
    ActionType.SCHEDULE_MEETING: RiskLevel.MEDIUM,
    ActionType.UPDATE_CRM: RiskLevel.LOW,
    ActionType.CREATE_TASK: RiskLevel.LOW,
    ActionType.GENERATE_DOCUMENT: RiskLevel.LOW,
    ActionType.SEND_NOTIFICATION: RiskLevel.MEDIUM,
    ActionType.ANALYZE_DATA: RiskLevel.LOW,
    ActionType.FETCH_DATA: RiskLevel.LOW,
    ActionType.VALIDATE_DATA: RiskLevel.LOW,
    ActionType.CUSTOM: RiskLevel.MEDIUM,
}
INITIAL_RISK_BULK_RECIPIENTS = 10
