"""Fraud case endpoints: flagging, status checks, screening and admin review."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from gigtrust.api.deps import (
    get_account_suspender,
    get_actor_id,
    get_fraud_config,
    get_risk_signal_adapter,
    require_admin,
)
from gigtrust.config import settings
from gigtrust.db.database import get_session
from gigtrust.db.models import AdminAccount
from gigtrust.domains.accounts.service import AccountSuspender
from gigtrust.domains.admin.review import AdminReviewWorkflow
from gigtrust.domains.fraud.config import FraudConfig
from gigtrust.domains.fraud.models import (
    CaseNoteRequest,
    FlagUserRequest,
    FraudCaseStatus,
    ResolveCaseRequest,
    ReviewCaseRequest,
    serialize_case,
)
from gigtrust.domains.fraud.screening import OrderScreener
from gigtrust.domains.fraud.signals import RiskSignalAdapter
from gigtrust.domains.fraud.store import FraudCaseStore
from gigtrust.domains.orders.service import OrderService

router = APIRouter(prefix="/api/v1/fraud", tags=["fraud"])


@router.post("/flag", status_code=201)
async def flag_user(
    request: FlagUserRequest,
    admin: AdminAccount = Depends(require_admin),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    case = await FraudCaseStore(session).flag_user(
        user_id=request.user_id,
        fraud_score=request.fraud_score,
        flags=request.flags,
        triggering_event=request.triggering_event,
        suspicious_patterns=request.suspicious_patterns,
        ai_analysis=request.ai_analysis,
        risk_assessment=request.risk_assessment,
    )
    return {"message": "User flagged for fraud review", "fraudCase": serialize_case(case)}


@router.get("/check/{user_id}")
async def check_user(
    user_id: str,
    actor_id: str = Depends(get_actor_id),
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    return await FraudCaseStore(session).check_status(user_id)


@router.post("/orders/{order_id}/screen")
async def screen_order(
    order_id: str,
    admin: AdminAccount = Depends(require_admin),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
    adapter: RiskSignalAdapter = Depends(get_risk_signal_adapter),  # noqa: B008
    config: FraudConfig = Depends(get_fraud_config),  # noqa: B008
) -> dict:
    order = await OrderService(session).load(order_id)
    screener = OrderScreener(session, adapter, config, model_name=settings.llm_model)
    result = await screener.screen_order(order)
    return {"orderId": order_id, "fraudCheck": result.to_document()}


@router.get("/cases")
async def list_cases(
    status: FraudCaseStatus | None = Query(default=None),  # noqa: B008
    min_score: int | None = Query(default=None, alias="minScore", ge=0, le=100),
    max_score: int | None = Query(default=None, alias="maxScore", ge=0, le=100),
    resolved: bool | None = Query(default=None),
    immediate_risk: bool | None = Query(default=None, alias="immediateRisk"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=50),
    admin: AdminAccount = Depends(require_admin),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    cases, total = await FraudCaseStore(session).list_cases(
        status=status,
        min_score=min_score,
        max_score=max_score,
        resolved=resolved,
        immediate_risk=immediate_risk,
        page=page,
        limit=limit,
    )
    return {
        "fraudCases": [serialize_case(c) for c in cases],
        "pagination": {"page": page, "limit": limit, "total": total, "pages": -(-total // limit)},
    }


@router.get("/cases/{case_id}")
async def get_case(
    case_id: str,
    admin: AdminAccount = Depends(require_admin),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    case = await FraudCaseStore(session).get_case(case_id)
    return {"fraudCase": serialize_case(case)}


@router.put("/cases/{case_id}/review")
async def review_case(
    case_id: str,
    request: ReviewCaseRequest,
    admin: AdminAccount = Depends(require_admin),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
    suspender: AccountSuspender = Depends(get_account_suspender),  # noqa: B008
) -> dict:
    case = await AdminReviewWorkflow(session, suspender).review_case(
        case_id, admin.id, request.decision, request.notes, request.action_taken
    )
    return {"message": "Fraud case reviewed successfully", "fraudCase": serialize_case(case)}


@router.put("/cases/{case_id}/resolve")
async def resolve_case(
    case_id: str,
    request: ResolveCaseRequest,
    admin: AdminAccount = Depends(require_admin),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
    suspender: AccountSuspender = Depends(get_account_suspender),  # noqa: B008
) -> dict:
    case = await AdminReviewWorkflow(session, suspender).resolve_case(
        case_id, admin.id, request.outcome, request.details
    )
    return {"message": "Fraud case resolved successfully", "fraudCase": serialize_case(case)}


@router.post("/cases/{case_id}/notes")
async def add_case_note(
    case_id: str,
    request: CaseNoteRequest,
    admin: AdminAccount = Depends(require_admin),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    case = await FraudCaseStore(session).add_note(case_id, admin.id, request.note)
    return {"message": "Note added successfully", "fraudCase": serialize_case(case)}


@router.get("/statistics")
async def statistics(
    admin: AdminAccount = Depends(require_admin),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    return {"statistics": await FraudCaseStore(session).statistics()}
