"""Tests for trust engine configuration."""

from gigtrust.api.deps import get_fraud_config, get_risk_signal_adapter
from gigtrust.config import settings
from gigtrust.domains.fraud.config import FraudConfig, default_config
from gigtrust.domains.fraud.models import (
    FraudCaseStatus,
    RecommendedAction,
    initial_case_status,
    recommended_action_for,
)


class TestDefaults:
    def test_case_thresholds(self):
        assert default_config.cases.confirmed_fraud_min == 80
        assert default_config.cases.immediate_suspension_min == 80
        assert default_config.cases.monitor_closely_min == 65
        assert default_config.cases.auto_flag_min == 70

    def test_triage_thresholds(self):
        assert default_config.triage.min_credibility == 30
        assert default_config.triage.blocked_reporter_fraud_score == 50
        assert default_config.triage.min_description_length == 20

    def test_evidence_limits(self):
        assert default_config.evidence.max_files == 5
        assert default_config.evidence.max_file_bytes == 10 * 1024 * 1024


class TestFromEnv:
    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("TRUST_CONFIRMED_FRAUD_MIN", "85")
        monkeypatch.setenv("TRUST_MIN_CREDIBILITY", "40")
        monkeypatch.setenv("TRUST_SIGNAL_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv("TRUST_MAX_MERGE_ATTEMPTS", "5")
        config = FraudConfig.from_env()
        assert config.cases.confirmed_fraud_min == 85
        assert config.triage.min_credibility == 40
        assert config.signals.timeout_seconds == 2.5
        assert config.store.max_merge_attempts == 5

    def test_no_env_keeps_defaults(self, monkeypatch):
        monkeypatch.delenv("TRUST_CONFIRMED_FRAUD_MIN", raising=False)
        assert FraudConfig.from_env().cases.confirmed_fraud_min == 80


class TestCaseGrading:
    def test_recommended_action(self):
        assert recommended_action_for(80) == RecommendedAction.IMMEDIATE_SUSPENSION
        assert recommended_action_for(79) == RecommendedAction.MONITOR_CLOSELY
        assert recommended_action_for(65) == RecommendedAction.MONITOR_CLOSELY
        assert recommended_action_for(64) == RecommendedAction.MANUAL_REVIEW

    def test_initial_status(self):
        assert initial_case_status(80) == FraudCaseStatus.CONFIRMED_FRAUD
        assert initial_case_status(79) == FraudCaseStatus.PENDING_REVIEW


class TestRequestConfig:
    def test_signal_timeout_follows_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "llm_timeout_seconds", 4.0)
        get_fraud_config.cache_clear()
        get_risk_signal_adapter.cache_clear()
        try:
            config = get_fraud_config()
            adapter = get_risk_signal_adapter()
            assert config.signals.timeout_seconds == 4.0
            assert adapter.settings is config.signals
        finally:
            get_fraud_config.cache_clear()
            get_risk_signal_adapter.cache_clear()
