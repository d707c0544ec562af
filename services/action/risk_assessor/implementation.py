"""Concrete Risk Assessor implementation.

Scores are a weighted sum of five heuristic factors. The assessor holds no
state besides its settings, so identical actions always assess equal.
"""

from __future__ import annotations

import json
from typing import Any

from packages.relay_shared.config import RelaySettings
from packages.relay_shared.logging import get_logger, public_api_instrumented
from services.action.risk_assessor import rules
from services.action.risk_assessor.component import SERVICE_COMPONENT_ID
from services.action.risk_assessor.config import (
    RiskAssessorSettings,
    resolve_risk_assessor_settings,
)
from services.action.risk_assessor.service import RiskAssessorService
from services.state.action_store.domain import (
    Action,
    ActionParameters,
    ActionType,
    RiskAssessment,
    RiskCategory,
    RiskFactor,
    RiskLevel,
)

_LOGGER = get_logger(__name__)

_AUTO_APPROVABLE_LEVELS = frozenset({RiskLevel.LOW, RiskLevel.MEDIUM})
_SENSITIVE_CATEGORIES = (RiskCategory.DATA_SENSITIVITY, RiskCategory.COMPLIANCE)


class DefaultRiskAssessorService(RiskAssessorService):
    """Weighted five-factor risk model."""

    def __init__(self, *, settings: RiskAssessorSettings) -> None:
        self._settings = settings
        self._weights = settings.weights.as_mapping()

    @classmethod
    def from_settings(cls, settings: RelaySettings) -> "DefaultRiskAssessorService":
        """Build the assessor from typed root settings."""
        return cls(settings=resolve_risk_assessor_settings(settings))

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=str(SERVICE_COMPONENT_ID),
    )
    def assess(self, *, action: Action) -> RiskAssessment:
        """Return the weighted five-factor assessment for one action."""
        scores = {
            RiskCategory.DATA_SENSITIVITY: _data_sensitivity(action),
            RiskCategory.EXTERNAL_IMPACT: _external_impact(action),
            RiskCategory.REVERSIBILITY: _reversibility(action),
            RiskCategory.COMPLIANCE: _compliance(action),
            RiskCategory.COST: _cost(action),
        }
        factors = tuple(
            RiskFactor(
                name=rules.FACTOR_NAMES[category][0],
                category=category,
                score=score,
                weight=self._weights[category],
                description=rules.FACTOR_NAMES[category][1],
            )
            for category, score in scores.items()
        )
        total = min(1.0, sum(factor.score * factor.weight for factor in factors))
        level = self._level_for(total)
        return RiskAssessment(
            level=level,
            score=total,
            factors=factors,
            mitigations=self._mitigations(action.type, factors),
            auto_approval_eligible=self._auto_approval_eligible(
                level=level,
                score=total,
                confidence=action.confidence,
                factors=factors,
            ),
        )

    def initial_risk_level(
        self, *, action_type: ActionType, parameters: ActionParameters
    ) -> RiskLevel:
        """Return the coarse creation-time risk band for a proposed action."""
        level = rules.INITIAL_RISK_BY_TYPE.get(action_type, RiskLevel.MEDIUM)
        if (
            parameters.is_bulk
            or parameters.recipient_count() > rules.INITIAL_RISK_BULK_RECIPIENTS
        ):
            if level is RiskLevel.LOW:
                return RiskLevel.MEDIUM
            if level is not RiskLevel.CRITICAL:
                return RiskLevel.HIGH
        return level

    def _level_for(self, score: float) -> RiskLevel:
        if score >= self._settings.critical_threshold:
            return RiskLevel.CRITICAL
        if score >= self._settings.high_threshold:
            return RiskLevel.HIGH
        if score >= self._settings.medium_threshold:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def _auto_approval_eligible(
        self,
        *,
        level: RiskLevel,
        score: float,
        confidence: float,
        factors: tuple[RiskFactor, ...],
    ) -> bool:
        if level not in _AUTO_APPROVABLE_LEVELS:
            return False
        if confidence < self._settings.auto_approval_min_confidence:
            return False
        if score > self._settings.auto_approval_max_score:
            return False
        ceiling = self._settings.auto_approval_max_sensitive_factor
        return not any(
            factor.category in _SENSITIVE_CATEGORIES and factor.score > ceiling
            for factor in factors
        )

    def _mitigations(
        self, action_type: ActionType, factors: tuple[RiskFactor, ...]
    ) -> tuple[str, ...]:
        suggestions: list[str] = []
        for factor in factors:
            if factor.score > self._settings.mitigation_threshold:
                suggestions.extend(rules.FACTOR_MITIGATIONS[factor.category])
        suggestions.extend(rules.TYPE_MITIGATIONS.get(action_type, ()))
        return tuple(suggestions)


def _data_sensitivity(action: Action) -> float:
    score = rules.SENSITIVITY_BASE
    for key, value in action.parameters.provided().items():
        lowered_key = key.lower()
        lowered_value = value.lower() if isinstance(value, str) else ""
        if any(
            term in lowered_key or term in lowered_value
            for term in rules.SENSITIVE_TERMS
        ):
            score += rules.SENSITIVITY_PER_TERM_HIT
    score += rules.SENSITIVITY_BY_TYPE.get(action.type, 0.0)
    return min(1.0, score)


def _external_impact(action: Action) -> float:
    score = rules.EXTERNAL_IMPACT_BASE + rules.EXTERNAL_IMPACT_BY_TYPE.get(
        action.type, rules.EXTERNAL_IMPACT_DEFAULT
    )
    score += min(
        rules.EXTERNAL_IMPACT_RECIPIENT_CAP,
        action.parameters.recipient_count() * rules.EXTERNAL_IMPACT_PER_RECIPIENT,
    )
    return min(1.0, score)


def _reversibility(action: Action) -> float:
    return rules.REVERSIBILITY_BY_TYPE.get(action.type, rules.REVERSIBILITY_DEFAULT)


def _compliance(action: Action) -> float:
    score = rules.COMPLIANCE_BASE + rules.COMPLIANCE_BY_TYPE.get(action.type, 0.0)
    for key, value in action.parameters.provided().items():
        text = f"{key} {_as_text(value)}".lower()
        if any(term in text for term in rules.REGULATED_TERMS):
            score += rules.COMPLIANCE_PER_TERM_HIT
    return min(1.0, score)


def _cost(action: Action) -> float:
    score = rules.COST_BASE + rules.COST_BY_TYPE.get(action.type, rules.COST_DEFAULT)
    count = action.parameters.count or 0
    if action.parameters.is_bulk or count > rules.COST_BULK_COUNT:
        score += rules.COST_BULK_SURCHARGE
    return min(1.0, score)


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, default=str)
