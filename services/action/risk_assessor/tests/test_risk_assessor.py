"""Unit tests for the weighted risk model."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from services.action.risk_assessor.config import RiskAssessorSettings, RiskWeights
from services.action.risk_assessor.implementation import DefaultRiskAssessorService
from services.state.action_store.domain import (
    Action,
    ActionContext,
    ActionParameters,
    ActionType,
    RiskCategory,
    RiskLevel,
)


def _assessor(**overrides: object) -> DefaultRiskAssessorService:
    return DefaultRiskAssessorService(
        settings=RiskAssessorSettings.model_validate(overrides)
    )


def _action(
    action_type: ActionType,
    *,
    confidence: float = 0.9,
    **parameters: object,
) -> Action:
    return Action(
        type=action_type,
        description="test action",
        confidence=confidence,
        parameters=ActionParameters.model_validate(parameters),
        context=ActionContext(agent_id="agent-1", client_id="client-1"),
    )


def test_identical_actions_assess_equal() -> None:
    """Scoring is a pure function of the action inputs."""
    assessor = _assessor()
    action = _action(ActionType.SEND_EMAIL, to="a@example.com", subject="Hi")

    first = assessor.assess(action=action)
    second = assessor.assess(action=action.model_copy(deep=True))

    assert first == second


def test_default_weights_sum_to_one() -> None:
    """Default weights are a convex combination."""
    weights = RiskWeights().as_mapping()
    assert sum(weights.values()) == pytest.approx(1.0, abs=1e-9)
    assert set(weights) == set(RiskCategory)


def test_weights_not_summing_to_one_are_rejected() -> None:
    """Settings validation refuses a weight vector that does not sum to 1."""
    with pytest.raises(ValidationError, match="must sum to 1.0"):
        RiskWeights(data_sensitivity=0.5)


def test_unordered_thresholds_are_rejected() -> None:
    """Level bands must be ordered."""
    with pytest.raises(ValidationError, match="medium <= high <= critical"):
        RiskAssessorSettings(medium_threshold=0.7, high_threshold=0.6)


def test_email_scores_medium_and_needs_manual_approval() -> None:
    """A plain outbound email lands in the medium band and is not auto-approvable."""
    assessment = _assessor().assess(
        action=_action(
            ActionType.SEND_EMAIL,
            to="client@example.com",
            subject="Follow-up",
            content="Thanks for the meeting.",
        )
    )

    assert assessment.score == pytest.approx(0.57)
    assert assessment.level is RiskLevel.MEDIUM
    assert assessment.auto_approval_eligible is False
    assert "Preview email content before sending" in assessment.mitigations
    assert "Verify recipient addresses" in assessment.mitigations
    # External impact and reversibility both exceed the mitigation threshold.
    assert "Review recipient list carefully" in assessment.mitigations
    assert "Create backup before execution" in assessment.mitigations


def test_crm_update_scores_low_and_is_auto_approvable() -> None:
    """A confident CRM update falls in the low band and may run unattended."""
    assessment = _assessor().assess(
        action=_action(
            ActionType.UPDATE_CRM,
            confidence=0.95,
            client_id="client-1",
            data={"stage": "qualified"},
        )
    )

    assert assessment.score == pytest.approx(0.32)
    assert assessment.level is RiskLevel.LOW
    assert assessment.auto_approval_eligible is True
    assert assessment.mitigations == (
        "Validate data before update",
        "Create audit trail",
    )


def test_low_confidence_blocks_auto_approval() -> None:
    """Eligibility requires confidence at or above the configured floor."""
    assessment = _assessor().assess(
        action=_action(ActionType.UPDATE_CRM, confidence=0.75, client_id="client-1")
    )
    assert assessment.level is RiskLevel.LOW
    assert assessment.auto_approval_eligible is False


def test_auto_approval_is_monotonic_in_confidence() -> None:
    """Raising confidence never revokes eligibility."""
    assessor = _assessor()
    previous = False
    for step in range(0, 101, 5):
        confidence = step / 100
        eligible = assessor.assess(
            action=_action(
                ActionType.UPDATE_CRM, confidence=confidence, client_id="client-1"
            )
        ).auto_approval_eligible
        assert eligible or not previous
        previous = eligible


def test_auto_approval_is_monotonic_in_score() -> None:
    """Lowering the score with factors and confidence fixed never revokes eligibility."""
    action = _action(ActionType.UPDATE_CRM, confidence=0.95, client_id="client-1")
    baseline = _assessor().assess(action=action)
    highest = max(baseline.factors, key=lambda factor: factor.score).category
    lowest = min(baseline.factors, key=lambda factor: factor.score).category
    assert highest is not lowest

    scores: list[float] = []
    verdicts: list[bool] = []
    for step in range(10, -1, -1):
        share = step / 10
        weights = {category.value: 0.0 for category in RiskCategory}
        weights[highest.value] = share
        weights[lowest.value] = 1.0 - share
        assessment = _assessor(
            weights=weights, auto_approval_max_score=0.35
        ).assess(action=action)
        assert [factor.score for factor in assessment.factors] == [
            factor.score for factor in baseline.factors
        ]
        scores.append(assessment.score)
        verdicts.append(assessment.auto_approval_eligible)

    assert scores == sorted(scores, reverse=True)
    assert verdicts[0] is False
    assert verdicts[-1] is True
    for before, after in zip(verdicts, verdicts[1:]):
        assert after or not before


def test_sensitive_terms_raise_data_sensitivity_and_block_auto_approval() -> None:
    """Each parameter mentioning a sensitive term adds to data sensitivity."""
    assessment = _assessor().assess(
        action=_action(
            ActionType.UPDATE_CRM,
            confidence=0.95,
            client_id="client-1",
            bank_account="12345",
            notes="includes credit_card on file",
        )
    )

    sensitivity = assessment.factor(RiskCategory.DATA_SENSITIVITY)
    assert sensitivity is not None
    assert sensitivity.score == pytest.approx(1.0)
    assert assessment.auto_approval_eligible is False
    assert "Implement additional data encryption" in assessment.mitigations


def test_regulated_terms_raise_compliance() -> None:
    """Regulated vocabulary in parameter text adds to compliance risk."""
    assessment = _assessor().assess(
        action=_action(
            ActionType.CREATE_TASK,
            title="Review HIPAA consent form",
            data={"category": "medical"},
        )
    )

    compliance = assessment.factor(RiskCategory.COMPLIANCE)
    assert compliance is not None
    assert compliance.score == pytest.approx(0.5)


def test_recipients_and_bulk_raise_external_impact_and_cost() -> None:
    """Recipient fan-out and bulk flags are reflected in their factors."""
    assessment = _assessor().assess(
        action=_action(
            ActionType.SEND_NOTIFICATION,
            message="Office closed",
            recipients=[f"user{i}@example.com" for i in range(12)],
            bulk=True,
        )
    )

    external = assessment.factor(RiskCategory.EXTERNAL_IMPACT)
    cost = assessment.factor(RiskCategory.COST)
    assert external is not None and external.score == pytest.approx(0.7)
    assert cost is not None and cost.score == pytest.approx(0.4)


def test_factor_names_and_weights_are_reported() -> None:
    """Every assessment carries the five named, weighted factors."""
    assessment = _assessor().assess(action=_action(ActionType.CUSTOM))

    assert [factor.name for factor in assessment.factors] == [
        "Data Sensitivity",
        "External Impact",
        "Reversibility",
        "Compliance Risk",
        "Cost Impact",
    ]
    assert [factor.weight for factor in assessment.factors] == [
        0.25,
        0.30,
        0.20,
        0.15,
        0.10,
    ]


def test_custom_thresholds_shift_level_bands() -> None:
    """Level bands follow configured thresholds."""
    assessment = _assessor(medium_threshold=0.2, high_threshold=0.3).assess(
        action=_action(ActionType.UPDATE_CRM, client_id="client-1")
    )
    assert assessment.level is RiskLevel.HIGH


def test_initial_risk_level_uses_static_table() -> None:
    """Creation-time level comes from the per-type table."""
    assessor = _assessor()
    params = ActionParameters()

    assert (
        assessor.initial_risk_level(action_type=ActionType.MAKE_CALL, parameters=params)
        is RiskLevel.HIGH
    )
    assert (
        assessor.initial_risk_level(action_type=ActionType.FETCH_DATA, parameters=params)
        is RiskLevel.LOW
    )
    assert (
        assessor.initial_risk_level(action_type=ActionType.CUSTOM, parameters=params)
        is RiskLevel.MEDIUM
    )


def test_initial_risk_level_steps_up_for_bulk_work() -> None:
    """Bulk flags or large recipient lists raise the coarse band one step."""
    assessor = _assessor()

    assert (
        assessor.initial_risk_level(
            action_type=ActionType.CREATE_TASK,
            parameters=ActionParameters(bulk=True),
        )
        is RiskLevel.MEDIUM
    )
    assert (
        assessor.initial_risk_level(
            action_type=ActionType.SEND_EMAIL,
            parameters=ActionParameters(
                recipients=[f"u{i}@example.com" for i in range(11)]
            ),
        )
        is RiskLevel.HIGH
    )
