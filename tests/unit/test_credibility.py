"""Tests for reporter credibility scoring."""

from gigtrust.domains.fraud.config import CredibilityRules
from gigtrust.domains.reports.credibility import (
    ReporterHistory,
    assess_reporter,
    compute_credibility_score,
)


def _history(**kwargs) -> ReporterHistory:
    return ReporterHistory(**kwargs)


class TestCredibilityScore:
    def test_clean_new_reporter_keeps_baseline(self):
        assert compute_credibility_score(_history()) == 100

    def test_flagged_reporter_example(self):
        history = _history(
            fraud_score=75,
            total_orders=2,
            account_age=10,
            verified_account=False,
            prior_reports=0,
            prior_reports_accepted=0,
        )
        assert compute_credibility_score(history) == 50

    def test_fraud_score_penalty_tiers(self):
        assert compute_credibility_score(_history(fraud_score=70)) == 50
        assert compute_credibility_score(_history(fraud_score=50)) == 70
        assert compute_credibility_score(_history(fraud_score=30)) == 85
        assert compute_credibility_score(_history(fraud_score=29)) == 100

    def test_result_is_clamped_to_100(self):
        history = _history(
            verified_account=True,
            account_age=400,
            total_orders=25,
            prior_reports=5,
            prior_reports_accepted=5,
        )
        assert compute_credibility_score(history) == 100

    def test_bonuses_apply_after_penalty(self):
        history = _history(fraud_score=70, verified_account=True, account_age=45, total_orders=6)
        # 100 - 50 + 10 + 5 + 5
        assert compute_credibility_score(history) == 70

    def test_unreliable_reporter_penalty(self):
        history = _history(fraud_score=50, prior_reports=4, prior_reports_accepted=1)
        # 100 - 30 - 20
        assert compute_credibility_score(history) == 50

    def test_middling_acceptance_rate_is_neutral(self):
        history = _history(fraud_score=50, prior_reports=2, prior_reports_accepted=1)
        assert compute_credibility_score(history) == 70

    def test_result_is_clamped_to_zero(self):
        rules = CredibilityRules(baseline=10)
        history = _history(fraud_score=90, prior_reports=3, prior_reports_accepted=0)
        assert compute_credibility_score(history, rules) == 0

    def test_deterministic(self):
        history = _history(fraud_score=40, total_orders=7, account_age=31)
        assert compute_credibility_score(history) == compute_credibility_score(history)


class TestAssessReporter:
    def test_snapshot_uses_camel_case_keys(self):
        doc = assess_reporter(_history(fraud_score=75, total_orders=2)).to_document()
        assert doc["credibilityScore"] == 50
        assert doc["fraudScore"] == 75
        assert doc["priorReportsAccepted"] == 0
