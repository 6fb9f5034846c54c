"""Tests for report priority, initial status and escalation rules."""

import pytest

from gigtrust.domains.reports.models import ReportPriority, ReportSeverity, ReportStatus
from gigtrust.domains.reports.triage import derive_priority, initial_status, should_escalate


class TestDerivePriority:
    @pytest.mark.parametrize(
        "severity,similar,expected",
        [
            (ReportSeverity.CRITICAL, 0, ReportPriority.URGENT),
            (ReportSeverity.LOW, 3, ReportPriority.URGENT),
            (ReportSeverity.HIGH, 0, ReportPriority.HIGH),
            (ReportSeverity.MEDIUM, 2, ReportPriority.HIGH),
            (ReportSeverity.MEDIUM, 1, ReportPriority.MEDIUM),
            (ReportSeverity.LOW, 0, ReportPriority.MEDIUM),
        ],
    )
    def test_priority(self, severity, similar, expected):
        assert derive_priority(severity, similar) == expected


class TestInitialStatus:
    def test_credible_reports_go_straight_to_review(self):
        assert initial_status(70) == ReportStatus.UNDER_REVIEW
        assert initial_status(95) == ReportStatus.UNDER_REVIEW

    def test_others_wait(self):
        assert initial_status(69) == ReportStatus.PENDING


class TestShouldEscalate:
    def test_credible_critical_report(self):
        assert should_escalate(85, ReportSeverity.CRITICAL, 0)

    def test_credible_but_not_critical(self):
        assert not should_escalate(85, ReportSeverity.HIGH, 0)

    def test_critical_but_not_credible_enough(self):
        assert not should_escalate(79, ReportSeverity.CRITICAL, 0)

    def test_similar_report_pile_up(self):
        assert should_escalate(40, ReportSeverity.LOW, 3)
        assert not should_escalate(40, ReportSeverity.LOW, 2)
