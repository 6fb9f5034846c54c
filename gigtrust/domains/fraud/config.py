"""Trust engine configuration with sensible defaults."""

import os
from dataclasses import dataclass, field


@dataclass
class CaseThresholds:
    """Fraud score cut-offs shared by every path that opens or grades a case."""

    confirmed_fraud_min: int = 80
    immediate_suspension_min: int = 80
    monitor_closely_min: int = 65
    # AI order screening auto-flags the buyer at or above this score
    auto_flag_min: int = 70


@dataclass
class CredibilityRules:
    baseline: int = 100
    # (min reporter fraud score, penalty); first match wins
    fraud_score_penalties: tuple[tuple[int, int], ...] = ((70, 50), (50, 30), (30, 15))
    verified_bonus: int = 10
    # (min account age in days, bonus); first match wins
    account_age_bonuses: tuple[tuple[int, int], ...] = ((90, 10), (30, 5))
    # (min total orders, bonus); first match wins
    order_count_bonuses: tuple[tuple[int, int], ...] = ((10, 10), (5, 5))
    reliable_rate_min: float = 0.8
    reliable_bonus: int = 15
    unreliable_rate_max: float = 0.3
    unreliable_penalty: int = 20


@dataclass
class TriageThresholds:
    min_description_length: int = 20
    min_credibility: int = 30
    # Reporters whose own open case is at or above this cannot report
    blocked_reporter_fraud_score: int = 50
    fast_track_credibility: int = 70
    escalation_credibility: int = 80
    urgent_similar_reports: int = 3
    high_similar_reports: int = 2
    escalation_similar_reports: int = 3


@dataclass
class SellerRiskWeights:
    case_floor: int = 50
    many_reports_min: int = 5
    many_reports_score: int = 30
    several_reports_min: int = 3
    several_reports_score: int = 20
    credible_reporter_min: int = 70
    credible_reports_min: int = 2
    credible_reports_score: int = 25
    serious_severity_reports_min: int = 2
    serious_severity_score: int = 20
    serious_category_reports_min: int = 2
    serious_category_score: int = 25
    serious_categories: tuple[str, ...] = ("scam", "non_delivery", "fake_service")
    low_completion_rate: float = 0.5
    low_completion_score: int = 15


@dataclass
class SignalSettings:
    timeout_seconds: float = 15.0
    neutral_risk_score: int = 50
    temperature: float = 0.3
    max_tokens: int = 800


@dataclass
class StoreSettings:
    max_merge_attempts: int = 3


@dataclass
class EvidenceSettings:
    max_files: int = 5
    max_file_bytes: int = 10 * 1024 * 1024
    allowed_content_types: tuple[str, ...] = (
        "image/png",
        "image/jpeg",
        "image/jpg",
        "image/webp",
        "image/gif",
        "image/heic",
        "image/heif",
        "image/svg+xml",
    )
    folder: str = "reports/evidence"


@dataclass
class FraudConfig:
    cases: CaseThresholds = field(default_factory=CaseThresholds)
    credibility: CredibilityRules = field(default_factory=CredibilityRules)
    triage: TriageThresholds = field(default_factory=TriageThresholds)
    seller_risk: SellerRiskWeights = field(default_factory=SellerRiskWeights)
    signals: SignalSettings = field(default_factory=SignalSettings)
    store: StoreSettings = field(default_factory=StoreSettings)
    evidence: EvidenceSettings = field(default_factory=EvidenceSettings)

    @classmethod
    def from_env(cls) -> "FraudConfig":
        """Load config with env var overrides. Env vars use TRUST_ prefix."""
        config = cls()

        # Case thresholds
        if v := os.getenv("TRUST_CONFIRMED_FRAUD_MIN"):
            config.cases.confirmed_fraud_min = int(v)
        if v := os.getenv("TRUST_IMMEDIATE_SUSPENSION_MIN"):
            config.cases.immediate_suspension_min = int(v)
        if v := os.getenv("TRUST_MONITOR_CLOSELY_MIN"):
            config.cases.monitor_closely_min = int(v)
        if v := os.getenv("TRUST_AUTO_FLAG_MIN"):
            config.cases.auto_flag_min = int(v)

        # Triage
        if v := os.getenv("TRUST_MIN_CREDIBILITY"):
            config.triage.min_credibility = int(v)
        if v := os.getenv("TRUST_BLOCKED_REPORTER_FRAUD_SCORE"):
            config.triage.blocked_reporter_fraud_score = int(v)

        # Seller analysis
        if v := os.getenv("TRUST_SELLER_CASE_FLOOR"):
            config.seller_risk.case_floor = int(v)

        # AI signal
        if v := os.getenv("TRUST_SIGNAL_TIMEOUT_SECONDS"):
            config.signals.timeout_seconds = float(v)

        if v := os.getenv("TRUST_MAX_MERGE_ATTEMPTS"):
            config.store.max_merge_attempts = int(v)

        return config


# Module-level default instance
default_config = FraudConfig()
