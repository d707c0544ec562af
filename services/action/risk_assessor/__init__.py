"""Risk Assessor service exports."""

from services.action.risk_assessor.config import (
    RiskAssessorSettings,
    RiskWeights,
    resolve_risk_assessor_settings,
)
from services.action.risk_assessor.implementation import DefaultRiskAssessorService
from services.action.risk_assessor.service import (
    RiskAssessorService,
    build_risk_assessor_service,
)

__all__ = [
    "DefaultRiskAssessorService",
    "RiskAssessorService",
    "RiskAssessorSettings",
    "RiskWeights",
    "build_risk_assessor_service",
    "resolve_risk_assessor_settings",
]
