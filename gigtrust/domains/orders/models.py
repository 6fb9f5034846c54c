"""Pydantic models for the order domain."""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import Field

from gigtrust.shared.models import CamelModel


class OrderStatus(StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    IN_REVISION = "in_revision"


class PaymentStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class RevisionStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class OrderType(StrEnum):
    STANDARD = "standard"
    SIMPLE = "simple"


class OrderRole(StrEnum):
    BUYER = "buyer"
    SELLER = "seller"


def _now() -> datetime:
    return datetime.now(UTC)


class Requirement(CamelModel):
    question: str
    answer: str


class Extra(CamelModel):
    title: str
    price: float = Field(ge=0)


class Deliverable(CamelModel):
    files: list[str] = Field(default_factory=list)
    description: str = Field(max_length=500)
    delivered_at: datetime = Field(default_factory=_now)


class RevisionRequest(CamelModel):
    description: str = Field(max_length=500)
    requested_at: datetime = Field(default_factory=_now)
    status: RevisionStatus = RevisionStatus.PENDING


class Payment(CamelModel):
    amount: float
    currency: str = "USD"
    status: PaymentStatus = PaymentStatus.PENDING
    transaction_id: str | None = None
    paid_at: datetime | None = None
    refunded_at: datetime | None = None


class OrderReview(CamelModel):
    rating: int = Field(ge=1, le=5)
    comment: str = ""
    reviewed_at: datetime = Field(default_factory=_now)


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class CreateOrderRequest(CamelModel):
    gig_id: str
    seller_id: str
    order_type: OrderType = OrderType.SIMPLE
    package: str | None = None
    price: float = Field(ge=0)
    delivery_time: int = Field(ge=1)
    revisions: int = Field(default=0, ge=0)
    requirements: list[Requirement] = Field(default_factory=list)
    extras: list[Extra] = Field(default_factory=list)


class StatusUpdateRequest(CamelModel):
    status: OrderStatus
    note: str | None = Field(default=None, max_length=500)


class PaymentRequest(CamelModel):
    transaction_id: str


class DeliverableRequest(CamelModel):
    files: list[str] = Field(default_factory=list)
    description: str = Field(min_length=1, max_length=500)


class RevisionRequestBody(CamelModel):
    description: str = Field(min_length=1, max_length=500)


class RevisionDecisionRequest(CamelModel):
    approve: bool


class ReviewRequest(CamelModel):
    rating: int
    comment: str = ""


class CancelRequest(CamelModel):
    reason: str | None = None


def serialize_order(order) -> dict:
    return {
        "id": order.id,
        "orderType": order.order_type,
        "gigId": order.gig_id,
        "buyerId": order.buyer_id,
        "sellerId": order.seller_id,
        "package": order.package,
        "price": order.price,
        "totalAmount": order.total_amount,
        "deliveryTime": order.delivery_time,
        "revisions": order.revisions,
        "status": order.status,
        "requirements": order.requirements,
        "extras": order.extras,
        "deliverables": order.deliverables,
        "revisionRequests": order.revision_requests,
        "payment": order.payment,
        "timeline": order.timeline,
        "review": order.review,
        "expectedDelivery": order.expected_delivery.isoformat() if order.expected_delivery else None,
        "cancellationReason": order.cancellation_reason,
        "createdAt": order.created_at.isoformat() if order.created_at else None,
        "updatedAt": order.updated_at.isoformat() if order.updated_at else None,
    }
