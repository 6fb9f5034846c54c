"""Tests for the admin review workflow and its enforcement steps."""

import pytest

from gigtrust.db.models import UserAccount
from gigtrust.domains.accounts.service import DatabaseAccountSuspender
from gigtrust.domains.admin.review import AdminReviewWorkflow
from gigtrust.domains.fraud.models import (
    ActionTakenRequest,
    CaseActionType,
    CaseDecision,
    FlagCategory,
    FraudCaseStatus,
    FraudFlag,
    ResolutionOutcome,
    Severity,
    TriggeringEvent,
    TriggerType,
)
from gigtrust.domains.fraud.store import FraudCaseStore
from gigtrust.domains.orders.service import OrderService
from gigtrust.domains.reports.models import (
    ReportActionRequest,
    ReportActionType,
    ReportDecision,
    ReportStatus,
)
from gigtrust.domains.reports.service import ReportService
from gigtrust.shared.errors import AuthenticationRequired, StateConflict


class RecordingSuspender:
    def __init__(self) -> None:
        self.suspended: list[tuple[str, str]] = []

    async def suspend(self, user_id: str, reason: str) -> None:
        self.suspended.append((user_id, reason))


def _action(action_type: ReportActionType) -> ReportActionRequest:
    return ReportActionRequest(type=action_type, details="applied by test")


async def _reported_seller(make_user, make_order, make_report, prior_reports: int = 3):
    """A seller with accepted reports from several buyers and one report awaiting review."""
    seller = await make_user()
    for _ in range(prior_reports):
        buyer = await make_user()
        order = await make_order(buyer, seller)
        await make_report(buyer, seller, order)
    buyer = await make_user()
    order = await make_order(buyer, seller, paid=True)
    report = await make_report(buyer, seller, order, status="under_review")
    return seller, order, report


class TestReviewReport:
    @pytest.mark.asyncio
    async def test_valid_flagging_links_fraud_case_once(
        self, db_session, make_user, make_order, make_report, make_admin
    ):
        admin = await make_admin()
        seller, _, report = await _reported_seller(make_user, make_order, make_report)
        workflow = AdminReviewWorkflow(db_session, RecordingSuspender())

        reviewed = await workflow.review_report(
            report.id,
            admin.id,
            ReportDecision.VALID,
            notes="Confirmed with buyer",
            action_taken=_action(ReportActionType.SELLER_FLAGGED),
        )

        assert reviewed.status == ReportStatus.ACCEPTED
        assert reviewed.review["reviewedBy"] == admin.id
        assert reviewed.review["actionTaken"]["type"] == "seller_flagged"
        case_id = reviewed.impact["fraudCaseCreated"]
        assert case_id
        assert reviewed.impact["sellerFraudScoreAdjustment"] == 100

        case = await FraudCaseStore(db_session).get_case(case_id)
        assert case.user_id == seller.id
        flag_count = len(case.flags)

        again = await workflow.review_report(
            report.id,
            admin.id,
            ReportDecision.VALID,
            action_taken=_action(ReportActionType.SELLER_FLAGGED),
        )
        assert again.impact["fraudCaseCreated"] == case_id
        case = await FraudCaseStore(db_session).get_case(case_id)
        assert len(case.flags) == flag_count

    @pytest.mark.asyncio
    async def test_invalid_decision_never_flags(
        self, db_session, make_user, make_order, make_report, make_admin
    ):
        admin = await make_admin()
        seller, _, report = await _reported_seller(make_user, make_order, make_report)

        reviewed = await AdminReviewWorkflow(db_session, RecordingSuspender()).review_report(
            report.id,
            admin.id,
            ReportDecision.INVALID,
            action_taken=_action(ReportActionType.SELLER_FLAGGED),
        )

        assert reviewed.status == ReportStatus.REJECTED
        assert "fraudCaseCreated" not in reviewed.impact
        assert await FraudCaseStore(db_session).open_case_for(seller.id) is None

    @pytest.mark.asyncio
    async def test_needs_investigation_keeps_report_under_review(
        self, db_session, make_user, make_order, make_report, make_admin
    ):
        admin = await make_admin()
        _, _, report = await _reported_seller(make_user, make_order, make_report, prior_reports=0)
        reviewed = await AdminReviewWorkflow(db_session, RecordingSuspender()).review_report(
            report.id, admin.id, ReportDecision.NEEDS_INVESTIGATION
        )
        assert reviewed.status == ReportStatus.UNDER_REVIEW
        assert reviewed.review["decision"] == "needs_investigation"

    @pytest.mark.asyncio
    async def test_weak_evidence_links_nothing(
        self, db_session, make_user, make_order, make_report, make_admin
    ):
        admin = await make_admin()
        _, _, report = await _reported_seller(make_user, make_order, make_report, prior_reports=0)
        reviewed = await AdminReviewWorkflow(db_session, RecordingSuspender()).review_report(
            report.id,
            admin.id,
            ReportDecision.VALID,
            action_taken=_action(ReportActionType.SELLER_FLAGGED),
        )
        assert reviewed.status == ReportStatus.ACCEPTED
        assert "fraudCaseCreated" not in reviewed.impact

    @pytest.mark.asyncio
    async def test_requires_admin(self, db_session, make_user, make_order, make_report):
        _, _, report = await _reported_seller(make_user, make_order, make_report, prior_reports=0)
        with pytest.raises(AuthenticationRequired):
            await AdminReviewWorkflow(db_session, RecordingSuspender()).review_report(
                report.id, None, ReportDecision.VALID
            )


class TestRefund:
    @pytest.mark.asyncio
    async def test_refund_cancels_paid_order(
        self, db_session, make_user, make_order, make_report, make_admin
    ):
        admin = await make_admin()
        _, order, report = await _reported_seller(make_user, make_order, make_report, prior_reports=0)
        order_id = order.id
        workflow = AdminReviewWorkflow(db_session, RecordingSuspender())

        reviewed = await workflow.review_report(
            report.id, admin.id, ReportDecision.VALID, action_taken=_action(ReportActionType.REFUND_ISSUED)
        )

        assert reviewed.review["actionTaken"]["type"] == "refund_issued"
        refunded = await OrderService(db_session).load(order_id)
        assert refunded.status == "cancelled"
        assert refunded.payment["status"] == "refunded"
        assert refunded.cancellation_reason.startswith("Refund issued")

        # Repeating the review does not cancel twice
        await workflow.review_report(
            report.id, admin.id, ReportDecision.VALID, action_taken=_action(ReportActionType.REFUND_ISSUED)
        )
        assert (await OrderService(db_session).load(order_id)).status == "cancelled"

    @pytest.mark.asyncio
    async def test_refund_on_delivered_order_is_a_conflict(
        self, db_session, make_user, make_order, make_report, make_admin
    ):
        admin = await make_admin()
        seller, buyer = await make_user(), await make_user()
        order = await make_order(buyer, seller, status="delivered", paid=True)
        report = await make_report(buyer, seller, order, status="under_review")
        workflow = AdminReviewWorkflow(db_session, RecordingSuspender())

        with pytest.raises(StateConflict):
            await workflow.review_report(
                report.id,
                admin.id,
                ReportDecision.VALID,
                action_taken=_action(ReportActionType.REFUND_ISSUED),
            )

        untouched = await ReportService(db_session).get_report(report.id)
        assert untouched.review["decision"] == "pending"
        assert (await OrderService(db_session).load(order.id)).status == "delivered"


class TestSuspension:
    @pytest.mark.asyncio
    async def test_suspension_cancels_open_seller_orders(
        self, db_session, make_user, make_order, make_report, make_admin
    ):
        admin = await make_admin()
        seller, buyer = await make_user(), await make_user()
        report_order = await make_order(buyer, seller, paid=True)
        pending = await make_order(await make_user(), seller, status="pending")
        delivered = await make_order(await make_user(), seller, status="delivered")
        # Orders the seller placed as a buyer stay untouched
        purchase = await make_order(seller, await make_user())
        report = await make_report(buyer, seller, report_order, status="under_review")
        ids = {
            "report_order": report_order.id,
            "pending": pending.id,
            "delivered": delivered.id,
            "purchase": purchase.id,
        }
        seller_id = seller.id

        await AdminReviewWorkflow(db_session, DatabaseAccountSuspender(db_session)).review_report(
            report.id,
            admin.id,
            ReportDecision.VALID,
            action_taken=_action(ReportActionType.SELLER_SUSPENDED),
        )

        user = await db_session.get(UserAccount, seller_id, populate_existing=True)
        assert user.suspended is True
        assert user.suspension_reason.startswith("Suspended after review of report")

        orders = OrderService(db_session)
        assert (await orders.load(ids["report_order"])).status == "cancelled"
        assert (await orders.load(ids["report_order"])).payment["status"] == "refunded"
        assert (await orders.load(ids["pending"])).status == "cancelled"
        assert (await orders.load(ids["delivered"])).status == "delivered"
        assert (await orders.load(ids["purchase"])).status == "active"

    @pytest.mark.asyncio
    async def test_repeat_suspension_keeps_first_reason(self, db_session, make_user):
        user = await make_user()
        suspender = DatabaseAccountSuspender(db_session)
        await suspender.suspend(user.id, "first")
        await suspender.suspend(user.id, "second")
        assert user.suspension_reason == "first"


class TestResolveReport:
    @pytest.mark.asyncio
    async def test_resolves_accepted_report(
        self, db_session, make_user, make_order, make_report, make_admin
    ):
        admin = await make_admin()
        seller, buyer = await make_user(), await make_user()
        order = await make_order(buyer, seller)
        report = await make_report(buyer, seller, order, status="accepted")
        workflow = AdminReviewWorkflow(db_session, RecordingSuspender())

        resolved = await workflow.resolve_report(
            report.id, admin.id, "refunded_buyer", "Full refund", refunded=True, compensation_amount=100.0
        )

        assert resolved.status == ReportStatus.RESOLVED
        assert resolved.resolved is True
        assert resolved.resolved_at is not None
        assert resolved.resolution == {
            "outcome": "refunded_buyer",
            "details": "Full refund",
            "refunded": True,
            "compensationAmount": 100.0,
        }

        with pytest.raises(StateConflict, match="already resolved"):
            await workflow.review_report(report.id, admin.id, ReportDecision.VALID)

    @pytest.mark.asyncio
    async def test_pending_report_cannot_be_resolved(
        self, db_session, make_user, make_order, make_report, make_admin
    ):
        admin = await make_admin()
        seller, buyer = await make_user(), await make_user()
        order = await make_order(buyer, seller)
        report = await make_report(buyer, seller, order, status="pending")
        with pytest.raises(StateConflict, match="accepted or rejected"):
            await AdminReviewWorkflow(db_session, RecordingSuspender()).resolve_report(
                report.id, admin.id, "done"
            )


class TestReviewCase:
    async def _case(self, db_session, user_id: str, score: int):
        return await FraudCaseStore(db_session).flag_user(
            user_id,
            score,
            [FraudFlag(category=FlagCategory.PAYMENT, severity=Severity.HIGH, description="x")],
            TriggeringEvent(type=TriggerType.OTHER),
        )

    @pytest.mark.asyncio
    async def test_confirming_severe_case_suspends(self, db_session, make_user, make_admin):
        admin, user = await make_admin(), await make_user()
        case = await self._case(db_session, user.id, 85)
        suspender = RecordingSuspender()

        reviewed = await AdminReviewWorkflow(db_session, suspender).review_case(
            case.id, admin.id, CaseDecision.CONFIRMED
        )

        assert reviewed.status == FraudCaseStatus.CONFIRMED_FRAUD
        assert [uid for uid, _ in suspender.suspended] == [user.id]

    @pytest.mark.asyncio
    async def test_confirming_moderate_case_does_not_suspend(self, db_session, make_user, make_admin):
        admin, user = await make_admin(), await make_user()
        case = await self._case(db_session, user.id, 60)
        suspender = RecordingSuspender()

        await AdminReviewWorkflow(db_session, suspender).review_case(
            case.id, admin.id, CaseDecision.CONFIRMED
        )
        assert suspender.suspended == []

    @pytest.mark.asyncio
    async def test_ban_action_suspends_regardless_of_score(self, db_session, make_user, make_admin):
        admin, user = await make_admin(), await make_user()
        case = await self._case(db_session, user.id, 40)
        suspender = RecordingSuspender()

        reviewed = await AdminReviewWorkflow(db_session, suspender).review_case(
            case.id,
            admin.id,
            CaseDecision.NEEDS_MORE_INFO,
            action_taken=ActionTakenRequest(type=CaseActionType.ACCOUNT_BANNED),
        )
        assert reviewed.status == FraudCaseStatus.MONITORING
        assert len(suspender.suspended) == 1

    @pytest.mark.asyncio
    async def test_resolve_case(self, db_session, make_user, make_admin):
        admin, user = await make_admin(), await make_user()
        case = await self._case(db_session, user.id, 40)
        resolved = await AdminReviewWorkflow(db_session, RecordingSuspender()).resolve_case(
            case.id, admin.id, ResolutionOutcome.PREVENTIVE_ACTION_TAKEN, "Limits applied"
        )
        assert resolved.resolved is True
        assert resolved.resolution["outcome"] == "preventive_action_taken"
