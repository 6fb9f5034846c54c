"""Buyer report submission and admin report review endpoints."""

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import ValidationError as SchemaError
from sqlalchemy.ext.asyncio import AsyncSession

from gigtrust.api.deps import (
    get_account_suspender,
    get_actor_id,
    get_evidence_store,
    require_admin,
)
from gigtrust.db.database import get_session
from gigtrust.db.models import AdminAccount
from gigtrust.domains.accounts.service import AccountSuspender
from gigtrust.domains.admin.review import AdminReviewWorkflow
from gigtrust.domains.reports.evidence import EvidenceFile, EvidenceStore
from gigtrust.domains.reports.models import (
    ReportCategory,
    ReportPriority,
    ReportStatus,
    ResolveReportRequest,
    ReviewReportRequest,
    SubmitReportRequest,
    serialize_report,
)
from gigtrust.domains.reports.service import ReportService
from gigtrust.domains.reports.triage import ReportTriage
from gigtrust.shared.errors import ValidationError

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


@router.post("", status_code=201)
async def submit_report(
    data: str = Form(...),
    screenshots: list[UploadFile] = File(default=[]),  # noqa: B008
    actor_id: str = Depends(get_actor_id),
    session: AsyncSession = Depends(get_session),  # noqa: B008
    evidence_store: EvidenceStore = Depends(get_evidence_store),  # noqa: B008
) -> dict:
    try:
        request = SubmitReportRequest.model_validate_json(data)
    except SchemaError as exc:
        raise ValidationError(
            "Invalid report data", details={"errors": exc.errors(include_url=False, include_context=False)}
        ) from exc

    files = [
        EvidenceFile(
            filename=upload.filename or "screenshot",
            content_type=upload.content_type or "application/octet-stream",
            data=await upload.read(),
        )
        for upload in screenshots
    ]
    result = await ReportTriage(session, evidence_store).submit_report(actor_id, request, files)
    return {
        "message": "Report submitted successfully",
        "report": serialize_report(result.report),
        "credibilityScore": result.credibility_score,
        "priority": result.priority.value,
        "uploadedScreenshots": result.uploaded_screenshots,
        "failedScreenshots": result.upload_errors,
        "fraudCaseId": result.fraud_case.id if result.fraud_case else None,
    }


@router.get("/mine")
async def my_reports(
    actor_id: str = Depends(get_actor_id),
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    reports = await ReportService(session).reports_by(actor_id)
    return {"reports": [serialize_report(r) for r in reports]}


@router.get("/seller/{seller_id}")
async def seller_reports(
    seller_id: str,
    actor_id: str = Depends(get_actor_id),
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    reports, stats = await ReportService(session).seller_history(seller_id)
    return {"reports": [serialize_report(r) for r in reports], "stats": stats}


@router.get("")
async def list_reports(
    status: ReportStatus | None = Query(default=None),  # noqa: B008
    priority: ReportPriority | None = Query(default=None),  # noqa: B008
    category: ReportCategory | None = Query(default=None),  # noqa: B008
    reported_user_id: str | None = Query(default=None, alias="reportedUserId"),
    min_credibility: int | None = Query(default=None, alias="minCredibility", ge=0, le=100),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=50),
    admin: AdminAccount = Depends(require_admin),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    reports, total = await ReportService(session).list_reports(
        status=status,
        priority=priority,
        category=category,
        reported_user_id=reported_user_id,
        min_credibility=min_credibility,
        page=page,
        limit=limit,
    )
    return {
        "reports": [serialize_report(r) for r in reports],
        "pagination": {"page": page, "limit": limit, "total": total, "pages": -(-total // limit)},
    }


@router.get("/{report_id}")
async def get_report(
    report_id: str,
    admin: AdminAccount = Depends(require_admin),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    report = await ReportService(session).get_report(report_id)
    return {"report": serialize_report(report)}


@router.put("/{report_id}/review")
async def review_report(
    report_id: str,
    request: ReviewReportRequest,
    admin: AdminAccount = Depends(require_admin),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
    suspender: AccountSuspender = Depends(get_account_suspender),  # noqa: B008
) -> dict:
    report = await AdminReviewWorkflow(session, suspender).review_report(
        report_id, admin.id, request.decision, request.notes, request.action_taken
    )
    return {"message": "Report reviewed successfully", "report": serialize_report(report)}


@router.put("/{report_id}/resolve")
async def resolve_report(
    report_id: str,
    request: ResolveReportRequest,
    admin: AdminAccount = Depends(require_admin),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
    suspender: AccountSuspender = Depends(get_account_suspender),  # noqa: B008
) -> dict:
    report = await AdminReviewWorkflow(session, suspender).resolve_report(
        report_id,
        admin.id,
        request.outcome,
        request.details,
        request.refunded,
        request.compensation_amount,
    )
    return {"message": "Report resolved successfully", "report": serialize_report(report)}
