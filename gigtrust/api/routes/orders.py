"""Order endpoints for buyers and sellers."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from gigtrust.api.deps import get_actor_id, get_fraud_config, get_risk_signal_adapter
from gigtrust.config import settings
from gigtrust.db.database import get_session
from gigtrust.domains.fraud.config import FraudConfig
from gigtrust.domains.fraud.screening import OrderScreener
from gigtrust.domains.fraud.signals import RiskSignalAdapter
from gigtrust.domains.orders.models import (
    CancelRequest,
    CreateOrderRequest,
    DeliverableRequest,
    OrderRole,
    OrderStatus,
    PaymentRequest,
    ReviewRequest,
    RevisionDecisionRequest,
    RevisionRequestBody,
    StatusUpdateRequest,
    serialize_order,
)
from gigtrust.domains.orders.service import OrderService

router = APIRouter(prefix="/api/v1/orders", tags=["orders"])


@router.post("", status_code=201)
async def create_order(
    request: CreateOrderRequest,
    actor_id: str = Depends(get_actor_id),
    session: AsyncSession = Depends(get_session),  # noqa: B008
    adapter: RiskSignalAdapter = Depends(get_risk_signal_adapter),  # noqa: B008
    config: FraudConfig = Depends(get_fraud_config),  # noqa: B008
) -> dict:
    order = await OrderService(session).create_order(actor_id, request)
    body = {"message": "Order created successfully", "order": serialize_order(order)}

    if settings.screen_new_orders:
        screener = OrderScreener(session, adapter, config, model_name=settings.llm_model)
        result = await screener.screen_order(order)
        body["fraudCheck"] = result.to_document()
    return body


async def _list(
    role: OrderRole,
    actor_id: str,
    session: AsyncSession,
    status: OrderStatus | None,
    page: int,
    limit: int,
) -> dict:
    orders, total = await OrderService(session).list_orders(actor_id, role, status, page, limit)
    return {
        "orders": [serialize_order(o) for o in orders],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": -(-total // limit) if limit else 0,
        },
    }


@router.get("/buyer")
async def list_buyer_orders(
    status: OrderStatus | None = Query(default=None),  # noqa: B008
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=20),
    actor_id: str = Depends(get_actor_id),
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    return await _list(OrderRole.BUYER, actor_id, session, status, page, limit)


@router.get("/seller")
async def list_seller_orders(
    status: OrderStatus | None = Query(default=None),  # noqa: B008
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=20),
    actor_id: str = Depends(get_actor_id),
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    return await _list(OrderRole.SELLER, actor_id, session, status, page, limit)


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    actor_id: str = Depends(get_actor_id),
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    order = await OrderService(session).get_order(order_id, actor_id)
    return {"order": serialize_order(order)}


@router.put("/{order_id}/status")
async def update_order_status(
    order_id: str,
    request: StatusUpdateRequest,
    actor_id: str = Depends(get_actor_id),
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    order = await OrderService(session).update_status(
        order_id, actor_id, request.status, request.note
    )
    return {
        "message": f"Order status updated to {request.status.value}",
        "order": serialize_order(order),
    }


@router.post("/{order_id}/payment")
async def record_payment(
    order_id: str,
    request: PaymentRequest,
    actor_id: str = Depends(get_actor_id),
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    order = await OrderService(session).record_payment(order_id, actor_id, request.transaction_id)
    return {"message": "Payment recorded successfully", "order": serialize_order(order)}


@router.post("/{order_id}/deliverables")
async def add_deliverable(
    order_id: str,
    request: DeliverableRequest,
    actor_id: str = Depends(get_actor_id),
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    deliverable = await OrderService(session).add_deliverable(
        order_id, actor_id, request.files, request.description
    )
    return {"message": "Deliverable added successfully", "deliverable": deliverable}


@router.post("/{order_id}/revisions")
async def request_revision(
    order_id: str,
    request: RevisionRequestBody,
    actor_id: str = Depends(get_actor_id),
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    revision = await OrderService(session).request_revision(
        order_id, actor_id, request.description
    )
    return {"message": "Revision requested successfully", "revisionRequest": revision}


@router.put("/{order_id}/revisions/{index}")
async def respond_to_revision(
    order_id: str,
    index: int,
    request: RevisionDecisionRequest,
    actor_id: str = Depends(get_actor_id),
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    order = await OrderService(session).respond_to_revision(
        order_id, actor_id, index, request.approve
    )
    verdict = "approved" if request.approve else "rejected"
    return {"message": f"Revision request {verdict}", "order": serialize_order(order)}


@router.post("/{order_id}/review")
async def add_review(
    order_id: str,
    request: ReviewRequest,
    actor_id: str = Depends(get_actor_id),
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    review = await OrderService(session).add_review(
        order_id, actor_id, request.rating, request.comment
    )
    return {"message": "Review added successfully", "review": review}


@router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    request: CancelRequest,
    actor_id: str = Depends(get_actor_id),
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    order = await OrderService(session).cancel_order(order_id, actor_id, request.reason)
    return {"message": "Order cancelled successfully", "order": serialize_order(order)}
