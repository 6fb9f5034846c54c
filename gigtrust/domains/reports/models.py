"""Pydantic models for buyer reports."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import Field

from gigtrust.db.models import Report
from gigtrust.shared.models import CamelModel


class ReportCategory(StrEnum):
    NON_DELIVERY = "non_delivery"
    FAKE_SERVICE = "fake_service"
    POOR_QUALITY = "poor_quality"
    SCAM = "scam"
    OVERCHARGE = "overcharge"
    HARASSMENT = "harassment"
    OTHER = "other"


class ReportSeverity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ReportStatus(StrEnum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    RESOLVED = "resolved"


class ReportPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ReportDecision(StrEnum):
    PENDING = "pending"
    VALID = "valid"
    INVALID = "invalid"
    NEEDS_INVESTIGATION = "needs_investigation"


class ReportActionType(StrEnum):
    WARNING_ISSUED = "warning_issued"
    SELLER_FLAGGED = "seller_flagged"
    SELLER_SUSPENDED = "seller_suspended"
    NO_ACTION = "no_action"
    REFUND_ISSUED = "refund_issued"


def _now() -> datetime:
    return datetime.now(UTC)


class UploadOutcome(CamelModel):
    filename: str
    success: bool
    url: str | None = None
    error: str | None = None


class ReportEvidence(CamelModel):
    screenshots: list[str] = Field(default_factory=list)
    messages: list[str] = Field(default_factory=list)
    files: list[str] = Field(default_factory=list)
    additional_info: Any = None
    uploads: list[UploadOutcome] = Field(default_factory=list)


class ReportActionTaken(CamelModel):
    type: ReportActionType
    applied_at: datetime = Field(default_factory=_now)
    details: str = ""


class ReportImpact(CamelModel):
    seller_fraud_score_adjustment: int | None = None
    fraud_case_created: str | None = None
    similar_reports: int = 0


class ReportResolution(CamelModel):
    outcome: str
    details: str = ""
    refunded: bool = False
    compensation_amount: float | None = None


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class SubmitReportRequest(CamelModel):
    reported_user_id: str
    order_id: str
    category: ReportCategory
    severity: ReportSeverity = ReportSeverity.MEDIUM
    description: str = Field(max_length=2000)
    evidence: ReportEvidence = Field(default_factory=ReportEvidence)


class ReportActionRequest(CamelModel):
    type: ReportActionType
    details: str = ""


class ReviewReportRequest(CamelModel):
    decision: ReportDecision
    notes: str | None = None
    action_taken: ReportActionRequest | None = None


class ResolveReportRequest(CamelModel):
    outcome: str = Field(min_length=1)
    details: str = ""
    refunded: bool = False
    compensation_amount: float | None = Field(default=None, ge=0)


def serialize_report(report: Report) -> dict:
    return {
        "id": report.id,
        "reporterId": report.reporter_id,
        "reportedUserId": report.reported_user_id,
        "orderId": report.order_id,
        "category": report.category,
        "severity": report.severity,
        "description": report.description,
        "evidence": report.evidence,
        "reporterCredibility": report.reporter_credibility,
        "status": report.status,
        "priority": report.priority,
        "review": report.review,
        "impact": report.impact,
        "resolved": report.resolved,
        "resolvedAt": report.resolved_at.isoformat() if report.resolved_at else None,
        "resolution": report.resolution,
        "createdAt": report.created_at.isoformat() if report.created_at else None,
        "updatedAt": report.updated_at.isoformat() if report.updated_at else None,
    }
