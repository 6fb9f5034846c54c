"""Buyer reports: credibility scoring, triage and report queries."""

from .credibility import ReporterHistory, compute_credibility_score
from .service import ReportService
from .triage import ReportTriage, derive_priority, initial_status, should_escalate

__all__ = [
    "ReportService",
    "ReportTriage",
    "ReporterHistory",
    "compute_credibility_score",
    "derive_priority",
    "initial_status",
    "should_escalate",
]
