"""Pydantic models for the fraud domain.

Sub-records are stored in the fraud_cases JSON columns via ``to_document()``,
so their camelCase aliases are the persisted field names.
"""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import Field, field_validator

from gigtrust.db.models import FraudCase
from gigtrust.shared.models import CamelModel

from .config import CaseThresholds, default_config


class FraudCaseStatus(StrEnum):
    PENDING_REVIEW = "pending_review"
    CONFIRMED_FRAUD = "confirmed_fraud"
    FALSE_POSITIVE = "false_positive"
    MONITORING = "monitoring"


class FlagCategory(StrEnum):
    BEHAVIORAL = "behavioral"
    TRANSACTIONAL = "transactional"
    ACCOUNT = "account"
    PATTERN = "pattern"
    PAYMENT = "payment"


class Severity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class PatternSeverity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TriggerType(StrEnum):
    ORDER = "order"
    MESSAGE = "message"
    PROFILE_UPDATE = "profile_update"
    PAYMENT = "payment"
    REVIEW = "review"
    OTHER = "other"


class CaseDecision(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DISMISSED = "dismissed"
    NEEDS_MORE_INFO = "needs_more_info"


class CaseActionType(StrEnum):
    ACCOUNT_SUSPENDED = "account_suspended"
    ACCOUNT_BANNED = "account_banned"
    FUNDS_HELD = "funds_held"
    WARNING_ISSUED = "warning_issued"
    NO_ACTION = "no_action"


class RecommendedAction(StrEnum):
    IMMEDIATE_SUSPENSION = "immediate_suspension"
    MONITOR_CLOSELY = "monitor_closely"
    MANUAL_REVIEW = "manual_review"
    AUTOMATED_LIMITS = "automated_limits"


class ResolutionOutcome(StrEnum):
    FRAUD_CONFIRMED = "fraud_confirmed"
    FALSE_ALARM = "false_alarm"
    PREVENTIVE_ACTION_TAKEN = "preventive_action_taken"


class Recommendation(StrEnum):
    APPROVE = "approve"
    REVIEW = "review"
    REJECT = "reject"


def _now() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Case sub-records
# ---------------------------------------------------------------------------


class FraudFlag(CamelModel):
    category: FlagCategory
    severity: Severity
    description: str
    evidence: Any = None
    detected_at: datetime = Field(default_factory=_now)


class SuspiciousPattern(CamelModel):
    pattern: str
    occurrences: int = Field(default=1, ge=0)
    severity: PatternSeverity = PatternSeverity.MEDIUM
    examples: list[Any] = Field(default_factory=list)


class TriggeringEvent(CamelModel):
    type: TriggerType
    reference_id: str | None = None
    details: dict[str, Any] | str = ""
    timestamp: datetime = Field(default_factory=_now)


class VerificationStatus(CamelModel):
    email: bool = False
    phone: bool = False
    identity: bool = False


class RecentActivity(CamelModel):
    orders_last24h: int = Field(default=0, alias="ordersLast24h")
    orders_last7days: int = Field(default=0, alias="ordersLast7days")
    messages_last24h: int = Field(default=0, alias="messagesLast24h")
    login_locations: list[str] = Field(default_factory=list)
    device_info: list[str] = Field(default_factory=list)


class UserSnapshot(CamelModel):
    account_age: int = 0
    total_orders: int = 0
    cancelled_orders: int = 0
    completed_orders: int = 0
    average_order_value: float = 0.0
    total_spent: float = 0.0
    total_earned: float = 0.0
    verification_status: VerificationStatus = Field(default_factory=VerificationStatus)
    recent_activity: RecentActivity = Field(default_factory=RecentActivity)


class AIAnalysis(CamelModel):
    model: str = "rules"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    detected_at: datetime = Field(default_factory=_now)
    analysis_version: str = "1.0"


class ActionTaken(CamelModel):
    type: CaseActionType
    applied_at: datetime = Field(default_factory=_now)
    applied_by: str | None = None
    details: str = ""


class CaseReview(CamelModel):
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    decision: CaseDecision = CaseDecision.PENDING
    notes: str = ""
    action_taken: ActionTaken | None = None


class PriorFlag(CamelModel):
    case_id: str
    fraud_score: int
    status: FraudCaseStatus
    flagged_at: datetime
    resolved: bool


class RiskAssessment(CamelModel):
    immediate_risk: bool = False
    potential_loss: float = 0.0
    affected_users: int = 0
    recommended_action: RecommendedAction = RecommendedAction.MANUAL_REVIEW


class CaseResolution(CamelModel):
    outcome: ResolutionOutcome
    details: str = ""
    resolved_by: str | None = None


# ---------------------------------------------------------------------------
# AI risk signal contract
# ---------------------------------------------------------------------------


class RiskFlag(CamelModel):
    category: FlagCategory = FlagCategory.PATTERN
    severity: Severity = Severity.MEDIUM
    description: str
    evidence: Any = None


class RiskResult(CamelModel):
    """Structured verdict returned by a risk signal adapter."""

    risk_score: int = Field(ge=0, le=100)
    is_fraudulent: bool = False
    reasons: list[str] = Field(default_factory=list)
    recommendation: Recommendation = Recommendation.REVIEW
    flags: list[RiskFlag] = Field(default_factory=list)
    suspicious_patterns: list[SuspiciousPattern] = Field(default_factory=list)

    @field_validator("risk_score", mode="before")
    @classmethod
    def _round_score(cls, value: Any) -> Any:
        if isinstance(value, float):
            return round(value)
        return value


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class FlagUserRequest(CamelModel):
    user_id: str
    fraud_score: int = Field(ge=0, le=100)
    flags: list[FraudFlag] = Field(default_factory=list)
    triggering_event: TriggeringEvent
    suspicious_patterns: list[SuspiciousPattern] = Field(default_factory=list)
    ai_analysis: AIAnalysis | None = None
    risk_assessment: RiskAssessment | None = None


class ActionTakenRequest(CamelModel):
    type: CaseActionType
    details: str = ""


class ReviewCaseRequest(CamelModel):
    decision: CaseDecision
    notes: str | None = None
    action_taken: ActionTakenRequest | None = None


class ResolveCaseRequest(CamelModel):
    outcome: ResolutionOutcome
    details: str = ""


class CaseNoteRequest(CamelModel):
    note: str = Field(min_length=1, max_length=2000)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def recommended_action_for(score: int, thresholds: CaseThresholds | None = None) -> RecommendedAction:
    thresholds = thresholds or default_config.cases
    if score >= thresholds.immediate_suspension_min:
        return RecommendedAction.IMMEDIATE_SUSPENSION
    if score >= thresholds.monitor_closely_min:
        return RecommendedAction.MONITOR_CLOSELY
    return RecommendedAction.MANUAL_REVIEW


def initial_case_status(score: int, thresholds: CaseThresholds | None = None) -> FraudCaseStatus:
    thresholds = thresholds or default_config.cases
    if score >= thresholds.confirmed_fraud_min:
        return FraudCaseStatus.CONFIRMED_FRAUD
    return FraudCaseStatus.PENDING_REVIEW


def serialize_case(case: FraudCase) -> dict:
    return {
        "id": case.id,
        "userId": case.user_id,
        "fraudScore": case.fraud_score,
        "status": case.status,
        "aiAnalysis": case.ai_analysis,
        "flags": case.flags,
        "triggeringEvent": case.triggering_event,
        "userSnapshot": case.user_snapshot,
        "suspiciousPatterns": case.suspicious_patterns,
        "review": case.review,
        "priorFlags": case.prior_flags,
        "relatedCases": case.related_cases,
        "riskAssessment": case.risk_assessment,
        "resolved": case.resolved,
        "resolvedAt": case.resolved_at.isoformat() if case.resolved_at else None,
        "resolution": case.resolution,
        "createdAt": case.created_at.isoformat() if case.created_at else None,
        "updatedAt": case.updated_at.isoformat() if case.updated_at else None,
        "lastCheckedAt": case.last_checked_at.isoformat() if case.last_checked_at else None,
    }
