"""Pydantic settings for Risk Assessor weights and thresholds."""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field, model_validator

from packages.relay_shared.config import RelaySettings, resolve_component_settings
from services.action.risk_assessor.component import SERVICE_COMPONENT_ID
from services.state.action_store.domain import RiskCategory


class RiskWeights(BaseModel):
    """Per-factor weights; must sum to 1.0."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    data_sensitivity: float = Field(default=0.25, ge=0.0, le=1.0)
    external_impact: float = Field(default=0.30, ge=0.0, le=1.0)
    reversibility: float = Field(default=0.20, ge=0.0, le=1.0)
    compliance: float = Field(default=0.15, ge=0.0, le=1.0)
    cost: float = Field(default=0.10, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _weights_sum_to_one(self) -> "RiskWeights":
        total = math.fsum(self.as_mapping().values())
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"risk weights must sum to 1.0, got {total}")
        return self

    def as_mapping(self) -> dict[RiskCategory, float]:
        """Return weights keyed by factor category."""
        return {category: getattr(self, category.value) for category in RiskCategory}


class RiskAssessorSettings(BaseModel):
    """Risk Assessor level bands and auto-approval gates."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    weights: RiskWeights = Field(default_factory=RiskWeights)
    critical_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    high_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    medium_threshold: float = Field(default=0.4, ge=0.0, le=1.0)
    mitigation_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    auto_approval_min_confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    auto_approval_max_score: float = Field(default=0.5, ge=0.0, le=1.0)
    auto_approval_max_sensitive_factor: float = Field(default=0.7, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _bands_are_ordered(self) -> "RiskAssessorSettings":
        if not self.medium_threshold <= self.high_threshold <= self.critical_threshold:
            raise ValueError("risk thresholds must satisfy medium <= high <= critical")
        return self


def resolve_risk_assessor_settings(settings: RelaySettings) -> RiskAssessorSettings:
    """Resolve settings from ``components.service.risk_assessor``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(SERVICE_COMPONENT_ID),
        model=RiskAssessorSettings,
    )
