"""Authoritative in-process Python API for the Risk Assessor."""

from __future__ import annotations

from abc import ABC, abstractmethod

from packages.relay_shared.config import RelaySettings
from services.state.action_store.domain import (
    Action,
    ActionParameters,
    ActionType,
    RiskAssessment,
    RiskLevel,
)


class RiskAssessorService(ABC):
    """Public API for deterministic, side-effect-free risk scoring."""

    @abstractmethod
    def assess(self, *, action: Action) -> RiskAssessment:
        """Return the weighted five-factor assessment for one action."""

    @abstractmethod
    def initial_risk_level(
        self, *, action_type: ActionType, parameters: ActionParameters
    ) -> RiskLevel:
        """Return the coarse creation-time risk band for a proposed action."""


def build_risk_assessor_service(*, settings: RelaySettings) -> RiskAssessorService:
    """Build default Risk Assessor implementation from typed settings."""
    from services.action.risk_assessor.implementation import DefaultRiskAssessorService

    return DefaultRiskAssessorService.from_settings(settings)
