"""Tests for buyer report submission and triage."""

import pytest

from gigtrust.domains.fraud.config import CredibilityRules, FraudConfig
from gigtrust.domains.fraud.models import FlagCategory, FraudFlag, Severity, TriggeringEvent, TriggerType
from gigtrust.domains.fraud.store import FraudCaseStore
from gigtrust.domains.reports.evidence import EvidenceFile
from gigtrust.domains.reports.models import (
    ReportCategory,
    ReportPriority,
    ReportSeverity,
    ReportStatus,
    SubmitReportRequest,
)
from gigtrust.domains.reports.triage import ReportTriage
from gigtrust.shared.errors import (
    AuthorizationError,
    NotFoundError,
    StateConflict,
    SubmissionBlocked,
    ValidationError,
)

DESCRIPTION = "Seller took payment and never delivered anything"
MISSING_ID = "550e8400-e29b-41d4-a716-446655440000"


class RecordingEvidenceStore:
    def __init__(self, failing: tuple[str, ...] = ()) -> None:
        self.failing = failing
        self.uploaded: list[str] = []

    async def upload(self, data: bytes, filename: str, content_type: str) -> str:
        if filename in self.failing:
            raise OSError("connection reset")
        self.uploaded.append(filename)
        return f"https://evidence.test/{filename}"


def _request(order, seller_id: str | None = None, **overrides) -> SubmitReportRequest:
    fields = {
        "reported_user_id": seller_id or order.seller_id,
        "order_id": order.id,
        "category": ReportCategory.NON_DELIVERY,
        "severity": ReportSeverity.MEDIUM,
        "description": DESCRIPTION,
    }
    fields.update(overrides)
    return SubmitReportRequest(**fields)


def _png(name: str, size: int = 10) -> EvidenceFile:
    return EvidenceFile(filename=name, content_type="image/png", data=b"x" * size)


class TestPreconditions:
    @pytest.mark.asyncio
    async def test_short_description_checked_first(self, db_session, make_user):
        buyer = await make_user()
        request = SubmitReportRequest(
            reported_user_id=MISSING_ID,
            order_id=MISSING_ID,
            category=ReportCategory.SCAM,
            description="too short",
        )
        with pytest.raises(ValidationError, match="at least 20"):
            await ReportTriage(db_session).submit_report(buyer.id, request)

    @pytest.mark.asyncio
    async def test_missing_order(self, db_session, make_user):
        buyer = await make_user()
        request = SubmitReportRequest(
            reported_user_id=MISSING_ID,
            order_id=MISSING_ID,
            category=ReportCategory.SCAM,
            description=DESCRIPTION,
        )
        with pytest.raises(NotFoundError):
            await ReportTriage(db_session).submit_report(buyer.id, request)

    @pytest.mark.asyncio
    async def test_only_the_buyer_can_report(self, db_session, make_user, make_order):
        buyer, seller, stranger = await make_user(), await make_user(), await make_user()
        order = await make_order(buyer, seller)
        with pytest.raises(AuthorizationError):
            await ReportTriage(db_session).submit_report(stranger.id, _request(order))

    @pytest.mark.asyncio
    async def test_reported_user_must_be_the_seller(self, db_session, make_user, make_order):
        buyer, seller, other = await make_user(), await make_user(), await make_user()
        order = await make_order(buyer, seller)
        with pytest.raises(ValidationError, match="not the seller"):
            await ReportTriage(db_session).submit_report(buyer.id, _request(order, other.id))

    @pytest.mark.asyncio
    async def test_duplicate_report(self, db_session, make_user, make_order):
        buyer, seller = await make_user(), await make_user()
        order = await make_order(buyer, seller)
        triage = ReportTriage(db_session)
        await triage.submit_report(buyer.id, _request(order))

        # Duplicate detection wins over evidence validation
        bad_file = EvidenceFile(filename="notes.txt", content_type="text/plain", data=b"hi")
        with pytest.raises(StateConflict, match="already reported"):
            await triage.submit_report(buyer.id, _request(order), [bad_file])

    @pytest.mark.asyncio
    async def test_rejects_non_image_evidence(self, db_session, make_user, make_order):
        buyer, seller = await make_user(), await make_user()
        order = await make_order(buyer, seller)
        bad_file = EvidenceFile(filename="notes.txt", content_type="text/plain", data=b"hi")
        with pytest.raises(ValidationError, match="image"):
            await ReportTriage(db_session, RecordingEvidenceStore()).submit_report(
                buyer.id, _request(order), [bad_file]
            )

    @pytest.mark.asyncio
    async def test_rejects_too_many_files(self, db_session, make_user, make_order):
        buyer, seller = await make_user(), await make_user()
        order = await make_order(buyer, seller)
        files = [_png(f"{i}.png") for i in range(6)]
        with pytest.raises(ValidationError, match="At most 5"):
            await ReportTriage(db_session, RecordingEvidenceStore()).submit_report(
                buyer.id, _request(order), files
            )


class TestCredibilityGate:
    @pytest.mark.asyncio
    async def test_low_credibility_is_blocked(self, db_session, make_user, make_order):
        buyer, seller = await make_user(), await make_user()
        order = await make_order(buyer, seller)
        config = FraudConfig(credibility=CredibilityRules(baseline=20))

        with pytest.raises(SubmissionBlocked) as exc_info:
            await ReportTriage(db_session, config=config).submit_report(buyer.id, _request(order))
        assert exc_info.value.details == {"credibility_score": 20}

    @pytest.mark.asyncio
    async def test_flagged_reporter_is_blocked(self, db_session, make_user, make_order):
        buyer, seller = await make_user(), await make_user()
        order = await make_order(buyer, seller)
        await FraudCaseStore(db_session).flag_user(
            buyer.id,
            60,
            [FraudFlag(category=FlagCategory.ACCOUNT, severity=Severity.MEDIUM, description="x")],
            TriggeringEvent(type=TriggerType.OTHER),
        )

        with pytest.raises(SubmissionBlocked, match="under review"):
            await ReportTriage(db_session).submit_report(buyer.id, _request(order))

    @pytest.mark.asyncio
    async def test_credibility_snapshot_is_stored(self, db_session, make_user, make_order):
        buyer = await make_user(age_days=45, verified_email=True)
        seller = await make_user()
        order = await make_order(buyer, seller)

        result = await ReportTriage(db_session).submit_report(buyer.id, _request(order))

        snapshot = result.report.reporter_credibility
        assert snapshot["accountAge"] == 45
        assert snapshot["verifiedAccount"] is True
        assert snapshot["totalOrders"] == 1
        assert snapshot["credibilityScore"] == 100
        assert result.credibility_score == 100


class TestTriage:
    @pytest.mark.asyncio
    async def test_medium_report_from_credible_reporter(self, db_session, make_user, make_order):
        buyer, seller = await make_user(), await make_user()
        order = await make_order(buyer, seller)

        result = await ReportTriage(db_session).submit_report(buyer.id, _request(order))

        assert result.priority == ReportPriority.MEDIUM
        assert result.report.status == ReportStatus.UNDER_REVIEW
        assert result.report.review["decision"] == "pending"
        assert result.report.impact["similarReports"] == 0
        assert result.fraud_case is None

    @pytest.mark.asyncio
    async def test_less_credible_reporter_starts_pending(self, db_session, make_user, make_order):
        buyer, seller = await make_user(), await make_user()
        order = await make_order(buyer, seller)
        config = FraudConfig(credibility=CredibilityRules(baseline=60))

        result = await ReportTriage(db_session, config=config).submit_report(
            buyer.id, _request(order, severity=ReportSeverity.HIGH)
        )

        assert result.priority == ReportPriority.HIGH
        assert result.report.status == ReportStatus.PENDING

    @pytest.mark.asyncio
    async def test_critical_report_escalates_to_seller_case(
        self, db_session, make_user, make_order, make_report
    ):
        seller = await make_user()
        for _ in range(2):
            other_buyer = await make_user()
            other_order = await make_order(other_buyer, seller)
            await make_report(other_buyer, seller, other_order)
        buyer = await make_user()
        order = await make_order(buyer, seller)

        result = await ReportTriage(db_session).submit_report(
            buyer.id,
            _request(order, category=ReportCategory.SCAM, severity=ReportSeverity.CRITICAL),
        )

        assert result.credibility_score == 100
        assert result.priority == ReportPriority.URGENT
        assert result.report.impact["similarReports"] == 0
        case = result.fraud_case
        assert case is not None
        assert case.user_id == seller.id
        assert case.fraud_score == 100
        assert case.triggering_event["referenceId"] == result.report.id
        assert case.ai_analysis["model"] == "report-based-analysis"
        assert case.risk_assessment["affectedUsers"] == 3
        assert case.suspicious_patterns[0]["pattern"] == "Multiple buyer reports"

    @pytest.mark.asyncio
    async def test_similar_reports_raise_priority(self, db_session, make_user, make_order, make_report):
        seller = await make_user()
        for _ in range(3):
            other_buyer = await make_user()
            other_order = await make_order(other_buyer, seller)
            await make_report(other_buyer, seller, other_order, severity="low", credibility=40)
        buyer = await make_user()
        order = await make_order(buyer, seller)

        result = await ReportTriage(db_session).submit_report(
            buyer.id, _request(order, severity=ReportSeverity.LOW)
        )

        assert result.report.impact["similarReports"] == 3
        assert result.priority == ReportPriority.URGENT

    @pytest.mark.asyncio
    async def test_weak_seller_signal_opens_no_case(self, db_session, make_user, make_order):
        seller = await make_user()
        buyer = await make_user()
        order = await make_order(buyer, seller, status="completed")

        result = await ReportTriage(db_session).submit_report(
            buyer.id, _request(order, category=ReportCategory.POOR_QUALITY, severity=ReportSeverity.CRITICAL)
        )

        assert result.priority == ReportPriority.URGENT
        assert result.fraud_case is None
        assert await FraudCaseStore(db_session).open_case_for(seller.id) is None


class TestEvidenceUpload:
    @pytest.mark.asyncio
    async def test_partial_upload_failure_keeps_report(self, db_session, make_user, make_order):
        buyer, seller = await make_user(), await make_user()
        order = await make_order(buyer, seller)
        store = RecordingEvidenceStore(failing=("b.png",))

        result = await ReportTriage(db_session, store).submit_report(
            buyer.id, _request(order), [_png("a.png"), _png("b.png")]
        )

        assert store.uploaded == ["a.png"]
        assert result.uploaded_screenshots == 1
        assert result.upload_errors == ["b.png"]
        evidence = result.report.evidence
        assert evidence["screenshots"] == ["https://evidence.test/a.png"]
        assert [u["success"] for u in evidence["uploads"]] == [True, False]
        assert evidence["uploads"][1]["error"] == "connection reset"
