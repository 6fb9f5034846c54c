"""Fraud domain: case store, seller risk analysis, AI risk signals and order screening."""

from .config import FraudConfig, default_config
from .models import FraudCaseStatus, RecommendedAction, RiskResult
from .seller_risk import SellerRiskAnalyzer, compute_seller_risk
from .signals import (
    LLMRiskSignalAdapter,
    RiskSignalAdapter,
    StaticRiskSignalAdapter,
    assess_with_fallback,
)
from .store import FraudCaseStore

__all__ = [
    "FraudCaseStatus",
    "FraudCaseStore",
    "FraudConfig",
    "LLMRiskSignalAdapter",
    "RecommendedAction",
    "RiskResult",
    "RiskSignalAdapter",
    "SellerRiskAnalyzer",
    "StaticRiskSignalAdapter",
    "assess_with_fallback",
    "compute_seller_risk",
    "default_config",
]
