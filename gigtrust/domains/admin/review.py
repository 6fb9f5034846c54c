"""Admin review workflow for reports and fraud cases, with enforcement.

Each entity is committed in its own step; no transaction spans a report,
its order and a fraud case. Every step is safe to repeat, so re-running
a review after a partial failure converges instead of duplicating work:
a cancelled order is not cancelled twice, a suspended account is not
re-suspended, and a report already linked to a fraud case is not
re-analyzed.
"""

from datetime import UTC, datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from gigtrust.db.models import FraudCase, Report
from gigtrust.domains.accounts.service import AccountSuspender
from gigtrust.domains.fraud.config import FraudConfig, default_config
from gigtrust.domains.fraud.models import (
    ActionTakenRequest,
    CaseActionType,
    CaseDecision,
    RecommendedAction,
    ResolutionOutcome,
)
from gigtrust.domains.fraud.seller_risk import ReportContext, SellerRiskAnalyzer
from gigtrust.domains.fraud.store import FraudCaseStore
from gigtrust.domains.orders.models import OrderStatus
from gigtrust.domains.orders.service import OrderService
from gigtrust.domains.orders.state_machine import check_transition
from gigtrust.domains.reports.models import (
    ReportActionRequest,
    ReportActionTaken,
    ReportActionType,
    ReportDecision,
    ReportResolution,
    ReportStatus,
)
from gigtrust.domains.reports.service import ReportService
from gigtrust.shared.errors import AuthenticationRequired, StateConflict

logger = structlog.get_logger()

_REPORT_DECISION_STATUS = {
    ReportDecision.VALID: ReportStatus.ACCEPTED,
    ReportDecision.INVALID: ReportStatus.REJECTED,
    ReportDecision.NEEDS_INVESTIGATION: ReportStatus.UNDER_REVIEW,
}

_FLAGGING_ACTIONS = (ReportActionType.SELLER_FLAGGED, ReportActionType.SELLER_SUSPENDED)
_SUSPENDING_CASE_ACTIONS = (CaseActionType.ACCOUNT_SUSPENDED, CaseActionType.ACCOUNT_BANNED)
_RESOLVABLE_REPORT_STATUSES = (ReportStatus.ACCEPTED, ReportStatus.REJECTED)


def _require_admin(admin_id: str | None) -> str:
    if not admin_id:
        raise AuthenticationRequired("Admin authentication required")
    return admin_id


class AdminReviewWorkflow:
    def __init__(
        self,
        session: AsyncSession,
        suspender: AccountSuspender,
        config: FraudConfig | None = None,
    ) -> None:
        self._session = session
        self._suspender = suspender
        self._config = config or default_config
        self._reports = ReportService(session)
        self._orders = OrderService(session)
        self._cases = FraudCaseStore(session, self._config)

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    async def review_report(
        self,
        report_id: str,
        admin_id: str | None,
        decision: ReportDecision,
        notes: str | None = None,
        action_taken: ReportActionRequest | None = None,
    ) -> Report:
        admin_id = _require_admin(admin_id)
        report = await self._reports.get_report(report_id)
        if report.resolved or report.status == ReportStatus.RESOLVED:
            raise StateConflict("Report is already resolved", details={"report_id": report.id})

        report_id = report.id
        seller_id = report.reported_user_id
        action = action_taken.type if action_taken else None

        if action == ReportActionType.REFUND_ISSUED:
            await self._refund_order(report.order_id, report_id)
            report = await self._reports.get_report(report_id)

        now = datetime.now(UTC)
        review = dict(report.review or {})
        review["reviewedBy"] = admin_id
        review["reviewedAt"] = now.isoformat()
        review["decision"] = decision.value
        if notes:
            review["notes"] = notes
        if action_taken is not None:
            review["actionTaken"] = ReportActionTaken(
                type=action_taken.type, applied_at=now, details=action_taken.details
            ).to_document()
        report.review = review
        if status := _REPORT_DECISION_STATUS.get(decision):
            report.status = status.value
        await self._commit_report(report_id)

        logger.info(
            "report_reviewed",
            report_id=report_id,
            admin_id=admin_id,
            decision=decision.value,
            action=action.value if action else None,
        )

        accepted = decision == ReportDecision.VALID
        if accepted and action in _FLAGGING_ACTIONS:
            await self._link_fraud_case(report_id)
        if action == ReportActionType.SELLER_SUSPENDED:
            await self._suspend_seller(seller_id, f"Suspended after review of report {report_id}")

        return await self._reports.get_report(report_id)

    async def resolve_report(
        self,
        report_id: str,
        admin_id: str | None,
        outcome: str,
        details: str = "",
        refunded: bool = False,
        compensation_amount: float | None = None,
    ) -> Report:
        admin_id = _require_admin(admin_id)
        report = await self._reports.get_report(report_id)
        if report.status not in _RESOLVABLE_REPORT_STATUSES:
            raise StateConflict(
                "Only accepted or rejected reports can be resolved",
                details={"report_id": report.id, "status": report.status},
            )

        report_id = report.id
        report.status = ReportStatus.RESOLVED.value
        report.resolved = True
        report.resolved_at = datetime.now(UTC)
        report.resolution = ReportResolution(
            outcome=outcome,
            details=details,
            refunded=refunded,
            compensation_amount=compensation_amount,
        ).to_document()
        await self._commit_report(report_id)
        logger.info("report_resolved", report_id=report_id, admin_id=admin_id, outcome=outcome)
        return report

    async def _refund_order(self, order_id: str, report_id: str) -> None:
        order = await self._orders.load(order_id)
        if order.status == OrderStatus.CANCELLED:
            return
        check_transition(OrderStatus(order.status), OrderStatus.CANCELLED)
        await self._orders.force_cancel(order_id, f"Refund issued after review of report {report_id}")

    async def _link_fraud_case(self, report_id: str) -> None:
        report = await self._reports.get_report(report_id)
        if (report.impact or {}).get("fraudCaseCreated"):
            logger.info("report_already_linked", report_id=report_id)
            return

        analyzer = SellerRiskAnalyzer(self._session, self._config)
        case = await analyzer.analyze_seller(
            report.reported_user_id,
            ReportContext(
                report_id=report_id,
                category=report.category,
                severity=report.severity,
                credibility_score=report.credibility_score,
                similar_reports=(report.impact or {}).get("similarReports", 0),
            ),
        )
        if case is None:
            return

        case_id, case_score = case.id, case.fraud_score
        report = await self._reports.get_report(report_id)
        report.impact = {
            **(report.impact or {}),
            "fraudCaseCreated": case_id,
            "sellerFraudScoreAdjustment": case_score,
        }
        await self._commit_report(report_id)
        logger.info("report_linked_to_case", report_id=report_id, case_id=case_id)

    async def _commit_report(self, report_id: str) -> None:
        try:
            await self._session.commit()
        except StaleDataError as exc:
            await self._session.rollback()
            raise StateConflict(
                "Report was modified concurrently; reload and retry",
                details={"report_id": report_id},
            ) from exc

    # ------------------------------------------------------------------
    # Fraud cases
    # ------------------------------------------------------------------

    async def review_case(
        self,
        case_id: str,
        admin_id: str | None,
        decision: CaseDecision,
        notes: str | None = None,
        action_taken: ActionTakenRequest | None = None,
    ) -> FraudCase:
        admin_id = _require_admin(admin_id)
        case = await self._cases.review_case(case_id, admin_id, decision, notes, action_taken)
        case_id, user_id = case.id, case.user_id
        recommended = (case.risk_assessment or {}).get("recommendedAction")

        confirmed_severe = (
            decision == CaseDecision.CONFIRMED
            and recommended == RecommendedAction.IMMEDIATE_SUSPENSION
        )
        suspending_action = action_taken is not None and action_taken.type in _SUSPENDING_CASE_ACTIONS
        if confirmed_severe or suspending_action:
            await self._suspend_seller(user_id, f"Suspended after review of fraud case {case_id}")
            case = await self._cases.get_case(case_id)
        return case

    async def resolve_case(
        self,
        case_id: str,
        admin_id: str | None,
        outcome: ResolutionOutcome,
        details: str = "",
    ) -> FraudCase:
        return await self._cases.resolve_case(case_id, _require_admin(admin_id), outcome, details)

    # ------------------------------------------------------------------
    # Enforcement
    # ------------------------------------------------------------------

    async def _suspend_seller(self, user_id: str, reason: str) -> None:
        """Suspend the account, then cancel its open orders as seller."""
        await self._suspender.suspend(user_id, reason)

        order_ids = [o.id for o in await self._orders.open_orders_for_seller(user_id)]
        for order_id in order_ids:
            try:
                await self._orders.force_cancel(order_id, reason)
            except StateConflict as exc:
                # Moved on concurrently; leave it to the buyer and seller
                logger.warning(
                    "suspension_order_skipped", order_id=order_id, user_id=user_id, error=exc.message
                )
        logger.warning(
            "seller_suspended", user_id=user_id, cancelled_orders=len(order_ids), reason=reason
        )
