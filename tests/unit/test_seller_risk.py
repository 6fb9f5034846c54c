"""Tests for seller risk scoring."""

from types import SimpleNamespace

from gigtrust.domains.fraud.config import SellerRiskWeights
from gigtrust.domains.fraud.models import FlagCategory, Severity
from gigtrust.domains.fraud.seller_risk import compute_seller_risk


def _report(credibility: int = 50, severity: str = "low", category: str = "poor_quality"):
    return SimpleNamespace(credibility_score=credibility, severity=severity, category=category)


def _orders(completed: int, other: int):
    return [SimpleNamespace(status="completed")] * completed + [
        SimpleNamespace(status="cancelled")
    ] * other


class TestComputeSellerRisk:
    def test_no_reports_no_orders(self):
        result = compute_seller_risk([], [])
        assert result.risk_score == 0
        assert result.flags == []
        assert result.completion_rate is None

    def test_several_low_quality_reports_score_20(self):
        result = compute_seller_risk([_report()] * 3, [])
        assert result.risk_score == 20
        assert result.total_reports == 3

    def test_many_reports_flagged(self):
        result = compute_seller_risk([_report()] * 5, [])
        assert result.risk_score == 30
        assert result.flags[0].category == FlagCategory.PATTERN
        assert result.flags[0].severity == Severity.HIGH

    def test_credible_reporters(self):
        result = compute_seller_risk([_report(credibility=70), _report(credibility=85)], [])
        assert result.risk_score == 25

    def test_serious_severity_and_category(self):
        reports = [
            _report(severity="critical", category="scam"),
            _report(severity="high", category="non_delivery"),
        ]
        result = compute_seller_risk(reports, [])
        assert result.risk_score == 45
        assert {f.severity for f in result.flags} == {Severity.CRITICAL}

    def test_low_completion_rate(self):
        result = compute_seller_risk([], _orders(completed=1, other=3))
        assert result.risk_score == 15
        assert result.completion_rate == 0.25
        assert result.flags[0].evidence == {"completionRate": "25.0%"}

    def test_half_completion_is_not_low(self):
        result = compute_seller_risk([], _orders(completed=2, other=2))
        assert result.risk_score == 0

    def test_score_is_capped_at_100(self):
        reports = [_report(credibility=90, severity="critical", category="scam")] * 5
        result = compute_seller_risk(reports, _orders(completed=0, other=4))
        assert result.risk_score == 100
        assert len(result.flags) == 5

    def test_custom_weights(self):
        weights = SellerRiskWeights(several_reports_min=2, several_reports_score=40)
        result = compute_seller_risk([_report()] * 2, [], weights)
        assert result.risk_score == 40
