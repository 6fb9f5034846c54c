"""Buyer report triage.

Submission runs its preconditions in a fixed order (description, order,
reporter, reported user, duplicate), scores the reporter from a live
history snapshot, then derives priority and initial status. Reports that
look serious trigger a synchronous seller analysis once the report is
committed.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gigtrust.db.models import FraudCase, Order, Report, UserAccount
from gigtrust.domains.accounts.service import account_age_days
from gigtrust.domains.fraud.config import FraudConfig, TriageThresholds, default_config
from gigtrust.domains.fraud.seller_risk import ReportContext, SellerRiskAnalyzer
from gigtrust.domains.fraud.store import FraudCaseStore
from gigtrust.shared.errors import (
    AuthorizationError,
    NotFoundError,
    StateConflict,
    SubmissionBlocked,
    ValidationError,
)
from gigtrust.shared.models import new_id, parse_id

from .credibility import ReporterHistory, assess_reporter
from .evidence import EvidenceFile, EvidenceStore, check_evidence_files, upload_evidence
from .models import (
    ReportDecision,
    ReportImpact,
    ReportPriority,
    ReportSeverity,
    ReportStatus,
    SubmitReportRequest,
)

logger = structlog.get_logger()

SIMILAR_REPORT_STATUSES = (ReportStatus.ACCEPTED.value, ReportStatus.UNDER_REVIEW.value)


def derive_priority(
    severity: ReportSeverity, similar_reports: int, thresholds: TriageThresholds | None = None
) -> ReportPriority:
    thresholds = thresholds or default_config.triage
    if severity == ReportSeverity.CRITICAL or similar_reports >= thresholds.urgent_similar_reports:
        return ReportPriority.URGENT
    if severity == ReportSeverity.HIGH or similar_reports >= thresholds.high_similar_reports:
        return ReportPriority.HIGH
    return ReportPriority.MEDIUM


def initial_status(credibility: int, thresholds: TriageThresholds | None = None) -> ReportStatus:
    thresholds = thresholds or default_config.triage
    if credibility >= thresholds.fast_track_credibility:
        return ReportStatus.UNDER_REVIEW
    return ReportStatus.PENDING


def should_escalate(
    credibility: int,
    severity: ReportSeverity,
    similar_reports: int,
    thresholds: TriageThresholds | None = None,
) -> bool:
    thresholds = thresholds or default_config.triage
    return (
        credibility >= thresholds.escalation_credibility and severity == ReportSeverity.CRITICAL
    ) or similar_reports >= thresholds.escalation_similar_reports


@dataclass
class SubmissionResult:
    report: Report
    credibility_score: int
    priority: ReportPriority
    uploaded_screenshots: int = 0
    fraud_case: FraudCase | None = None
    upload_errors: list[str] = field(default_factory=list)


class ReportTriage:
    def __init__(
        self,
        session: AsyncSession,
        evidence_store: EvidenceStore | None = None,
        config: FraudConfig | None = None,
    ) -> None:
        self._session = session
        self._evidence_store = evidence_store
        self._config = config or default_config
        self._cases = FraudCaseStore(session, self._config)

    async def submit_report(
        self,
        reporter_id: str,
        request: SubmitReportRequest,
        screenshots: Sequence[EvidenceFile] = (),
    ) -> SubmissionResult:
        thresholds = self._config.triage

        if len(request.description.strip()) < thresholds.min_description_length:
            raise ValidationError(
                f"Description must be at least {thresholds.min_description_length} characters"
            )
        order = await self._session.get(Order, parse_id(request.order_id, "order ID"))
        if order is None:
            raise NotFoundError("Order not found", details={"order_id": request.order_id})
        if order.buyer_id != reporter_id:
            raise AuthorizationError("You can only report orders you placed")
        reported_user_id = parse_id(request.reported_user_id, "reported user ID")
        if order.seller_id != reported_user_id:
            raise ValidationError("Reported user is not the seller of this order")
        if await self._already_reported(reporter_id, order.id):
            raise StateConflict("You have already reported this order")
        check_evidence_files(screenshots, self._config.evidence)

        history = await self.reporter_history(reporter_id)
        credibility = assess_reporter(history, self._config.credibility)
        score = credibility.credibility_score
        if score < thresholds.min_credibility:
            logger.warning("report_blocked_low_credibility", reporter_id=reporter_id, credibility=score)
            raise SubmissionBlocked(
                "Your account cannot submit reports at this time",
                details={"credibility_score": score},
            )
        if history.fraud_score >= thresholds.blocked_reporter_fraud_score:
            logger.warning(
                "report_blocked_flagged_reporter",
                reporter_id=reporter_id,
                fraud_score=history.fraud_score,
            )
            raise SubmissionBlocked("Your account is under review and cannot submit reports")

        similar = await self._similar_reports(reported_user_id, request.category.value)
        priority = derive_priority(request.severity, similar, thresholds)
        status = initial_status(score, thresholds)

        evidence = request.evidence.model_copy()
        if screenshots and self._evidence_store is not None:
            outcomes = await upload_evidence(self._evidence_store, screenshots)
            evidence.uploads = [*evidence.uploads, *outcomes]
            evidence.screenshots = [*evidence.screenshots, *(o.url for o in outcomes if o.success)]
        uploaded = sum(1 for o in evidence.uploads if o.success)

        report_id = new_id()
        report = Report(
            id=report_id,
            reporter_id=reporter_id,
            reported_user_id=reported_user_id,
            order_id=order.id,
            category=request.category.value,
            severity=request.severity.value,
            description=request.description,
            evidence=evidence.to_document(),
            reporter_credibility=credibility.to_document(),
            credibility_score=score,
            status=status.value,
            priority=priority.value,
            review={"decision": ReportDecision.PENDING.value, "notes": ""},
            impact=ReportImpact(similar_reports=similar).to_document(),
            resolved=False,
            created_at=datetime.now(UTC),
        )
        self._session.add(report)
        try:
            await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            raise StateConflict("You have already reported this order") from exc

        logger.info(
            "report_submitted",
            report_id=report_id,
            reporter_id=reporter_id,
            reported_user_id=reported_user_id,
            category=request.category.value,
            severity=request.severity.value,
            credibility=score,
            priority=priority.value,
            status=status.value,
            similar_reports=similar,
        )

        result = SubmissionResult(
            report=report,
            credibility_score=score,
            priority=priority,
            uploaded_screenshots=uploaded,
            upload_errors=[o.filename for o in evidence.uploads if not o.success],
        )
        if should_escalate(score, request.severity, similar, thresholds):
            result.fraud_case = await self._escalate(report, score, similar)
            # A retried case write rolls back and expires the report instance
            await self._session.refresh(report)
        return result

    async def _escalate(self, report: Report, credibility: int, similar: int) -> FraudCase | None:
        report_id, seller_id = report.id, report.reported_user_id
        analyzer = SellerRiskAnalyzer(self._session, self._config)
        context = ReportContext(
            report_id=report_id,
            category=report.category,
            severity=report.severity,
            credibility_score=credibility,
            similar_reports=similar + 1,
        )
        try:
            case = await analyzer.analyze_seller(seller_id, context)
        except StateConflict as exc:
            # The report stands; admin review re-runs the analysis later
            logger.warning(
                "seller_analysis_conflict", report_id=report_id, seller_id=seller_id, error=exc.message
            )
            return None
        logger.info(
            "seller_analysis_escalated",
            report_id=report_id,
            seller_id=seller_id,
            case_id=case.id if case else None,
        )
        return case

    async def reporter_history(self, reporter_id: str) -> ReporterHistory:
        user = await self._session.get(UserAccount, reporter_id)
        if user is None:
            raise NotFoundError("Reporter not found", details={"user_id": reporter_id})

        total_orders = (
            await self._session.execute(
                select(func.count()).select_from(Order).where(Order.buyer_id == reporter_id)
            )
        ).scalar_one()
        decisions = (
            await self._session.execute(
                select(Report.review).where(Report.reporter_id == reporter_id)
            )
        ).scalars().all()

        return ReporterHistory(
            fraud_score=await self._cases.active_fraud_score(reporter_id),
            total_orders=total_orders,
            account_age=account_age_days(user),
            verified_account=user.verified_email,
            prior_reports=len(decisions),
            prior_reports_accepted=sum(
                1 for r in decisions if (r or {}).get("decision") == ReportDecision.VALID
            ),
        )

    async def _already_reported(self, reporter_id: str, order_id: str) -> bool:
        result = await self._session.execute(
            select(Report.id).where(Report.reporter_id == reporter_id, Report.order_id == order_id)
        )
        return result.first() is not None

    async def _similar_reports(self, seller_id: str, category: str) -> int:
        result = await self._session.execute(
            select(func.count())
            .select_from(Report)
            .where(
                Report.reported_user_id == seller_id,
                Report.category == category,
                Report.status.in_(SIMILAR_REPORT_STATUSES),
            )
        )
        return result.scalar_one()
