"""Seller risk analysis from buyer reports and order history.

``compute_seller_risk`` is pure: it scores a seller from the reports
currently counted against them (accepted or under review) and their
orders. ``SellerRiskAnalyzer`` loads that data, and when the score reaches
the case floor it opens or merges the seller's fraud case.
"""

from collections.abc import Sequence
from typing import Any

import structlog
from pydantic import Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gigtrust.db.models import FraudCase, Report, UserAccount
from gigtrust.domains.orders.service import orders_for_seller
from gigtrust.shared.models import CamelModel

from .config import FraudConfig, SellerRiskWeights, default_config
from .models import (
    AIAnalysis,
    FlagCategory,
    FraudFlag,
    PatternSeverity,
    RiskAssessment,
    Severity,
    SuspiciousPattern,
    TriggeringEvent,
    TriggerType,
    recommended_action_for,
)
from .store import FraudCaseStore

logger = structlog.get_logger()

COUNTED_REPORT_STATUSES = ("accepted", "under_review")
SERIOUS_SEVERITIES = ("critical", "high")


class ReportContext(CamelModel):
    """The report that caused the analysis to run."""

    report_id: str
    category: str
    severity: str
    credibility_score: int
    similar_reports: int = 0


class SellerRiskAssessment(CamelModel):
    risk_score: int = 0
    total_reports: int = 0
    completion_rate: float | None = None
    flags: list[FraudFlag] = Field(default_factory=list)
    reasons: list[str] = Field(default_factory=list)


def compute_seller_risk(
    reports: Sequence[Any],
    orders: Sequence[Any],
    weights: SellerRiskWeights | None = None,
) -> SellerRiskAssessment:
    """Score a seller. ``reports`` and ``orders`` only need the attributes read below."""
    weights = weights or default_config.seller_risk
    assessment = SellerRiskAssessment(total_reports=len(reports))
    score = 0

    if len(reports) >= weights.many_reports_min:
        score += weights.many_reports_score
        assessment.flags.append(
            FraudFlag(
                category=FlagCategory.PATTERN,
                severity=Severity.HIGH,
                description=f"{len(reports)} reports filed against seller",
                evidence={"reportCount": len(reports)},
            )
        )
        assessment.reasons.append(f"Multiple reports ({len(reports)}) from different buyers")
    elif len(reports) >= weights.several_reports_min:
        score += weights.several_reports_score
        assessment.reasons.append(f"Several reports ({len(reports)}) against seller")

    credible = [
        r for r in reports if r.credibility_score >= weights.credible_reporter_min
    ]
    if len(credible) >= weights.credible_reports_min:
        score += weights.credible_reports_score
        assessment.flags.append(
            FraudFlag(
                category=FlagCategory.BEHAVIORAL,
                severity=Severity.HIGH,
                description="Multiple reports from highly credible buyers",
                evidence={"count": len(credible)},
            )
        )
        assessment.reasons.append("Reports from trusted, verified buyers")

    serious = [r for r in reports if r.severity in SERIOUS_SEVERITIES]
    if len(serious) >= weights.serious_severity_reports_min:
        score += weights.serious_severity_score
        assessment.flags.append(
            FraudFlag(
                category=FlagCategory.TRANSACTIONAL,
                severity=Severity.CRITICAL,
                description="Multiple critical/high severity reports",
                evidence={"count": len(serious)},
            )
        )
        assessment.reasons.append("Multiple serious violations reported")

    scam_like = [r for r in reports if r.category in weights.serious_categories]
    if len(scam_like) >= weights.serious_category_reports_min:
        score += weights.serious_category_score
        assessment.flags.append(
            FraudFlag(
                category=FlagCategory.TRANSACTIONAL,
                severity=Severity.CRITICAL,
                description="Reports indicate potential scam activity",
                evidence={"categories": [r.category for r in scam_like]},
            )
        )
        assessment.reasons.append("Pattern of non-delivery or scam behavior")

    if orders:
        completion_rate = sum(1 for o in orders if o.status == "completed") / len(orders)
        assessment.completion_rate = completion_rate
        if completion_rate < weights.low_completion_rate:
            score += weights.low_completion_score
            assessment.flags.append(
                FraudFlag(
                    category=FlagCategory.PATTERN,
                    severity=Severity.MEDIUM,
                    description="Low order completion rate",
                    evidence={"completionRate": f"{completion_rate * 100:.1f}%"},
                )
            )
            assessment.reasons.append("Low completion rate on orders")

    assessment.risk_score = min(score, 100)
    return assessment


class SellerRiskAnalyzer:
    def __init__(self, session: AsyncSession, config: FraudConfig | None = None) -> None:
        self._session = session
        self._config = config or default_config
        self._store = FraudCaseStore(session, self._config)

    async def analyze_seller(self, seller_id: str, context: ReportContext) -> FraudCase | None:
        """Score the seller and open or merge a fraud case when warranted.

        Returns None when the seller is unknown or the score is below the
        case floor.
        """
        if await self._session.get(UserAccount, seller_id) is None:
            logger.warning("seller_analysis_unknown_seller", seller_id=seller_id)
            return None

        result = await self._session.execute(
            select(Report)
            .where(
                Report.reported_user_id == seller_id,
                Report.status.in_(COUNTED_REPORT_STATUSES),
            )
            .order_by(Report.created_at.desc())
        )
        reports = list(result.scalars().all())
        orders = await orders_for_seller(self._session, seller_id)

        assessment = compute_seller_risk(reports, orders, self._config.seller_risk)
        logger.info(
            "seller_risk_computed",
            seller_id=seller_id,
            risk_score=assessment.risk_score,
            reports=assessment.total_reports,
            report_id=context.report_id,
        )
        if assessment.risk_score < self._config.seller_risk.case_floor:
            return None

        thresholds = self._config.cases
        pattern = SuspiciousPattern(
            pattern="Multiple buyer reports",
            occurrences=len(reports),
            severity=(
                PatternSeverity.HIGH
                if len(reports) >= self._config.seller_risk.many_reports_min
                else PatternSeverity.MEDIUM
            ),
            examples=[
                {"reportId": r.id, "category": r.category, "reporter": r.reporter_id}
                for r in reports[:3]
            ],
        )
        return await self._store.upsert_case(
            user_id=seller_id,
            fraud_score=assessment.risk_score,
            flags=assessment.flags,
            triggering_event=TriggeringEvent(
                type=TriggerType.OTHER,
                reference_id=context.report_id,
                details={
                    "source": "buyer_reports",
                    "reportCategory": context.category,
                    "reportSeverity": context.severity,
                    "similarReports": context.similar_reports,
                },
            ),
            suspicious_patterns=[pattern],
            ai_analysis=AIAnalysis(
                model="report-based-analysis",
                confidence=context.credibility_score / 100,
            ),
            risk_assessment=RiskAssessment(
                immediate_risk=assessment.risk_score >= thresholds.immediate_suspension_min,
                affected_users=len(reports),
                recommended_action=recommended_action_for(assessment.risk_score, thresholds),
            ),
        )
