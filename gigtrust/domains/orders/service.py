"""Order operations for buyers and sellers.

Every write is a single read-modify-write on one order row guarded by the
version column. If another writer got there first the flush fails and the
caller sees StateConflict; nothing is partially applied.
"""

from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from gigtrust.db.models import Order, UserAccount
from gigtrust.shared.errors import (
    AuthorizationError,
    NotFoundError,
    StateConflict,
    ValidationError,
)
from gigtrust.shared.models import new_id, parse_id

from .models import (
    CreateOrderRequest,
    Deliverable,
    OrderReview,
    OrderRole,
    OrderStatus,
    OrderType,
    Payment,
    PaymentStatus,
    RevisionRequest,
    RevisionStatus,
)
from .state_machine import (
    actor_role,
    apply_transition,
    check_actor,
    check_revision_quota,
    check_transition,
)

logger = structlog.get_logger()

MAX_PAGE_SIZE = 20
OPEN_STATUSES = (OrderStatus.PENDING, OrderStatus.ACTIVE)


async def orders_for_buyer(session: AsyncSession, user_id: str) -> list[Order]:
    result = await session.execute(
        select(Order).where(Order.buyer_id == user_id).order_by(Order.created_at)
    )
    return list(result.scalars().all())


async def orders_for_seller(session: AsyncSession, user_id: str) -> list[Order]:
    result = await session.execute(
        select(Order).where(Order.seller_id == user_id).order_by(Order.created_at)
    )
    return list(result.scalars().all())


class OrderService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def load(self, order_id: str) -> Order:
        order = await self._session.get(
            Order, parse_id(order_id, "order ID"), populate_existing=True
        )
        if order is None:
            raise NotFoundError("Order not found", details={"order_id": order_id})
        return order

    async def get_order(self, order_id: str, actor_id: str) -> Order:
        order = await self.load(order_id)
        actor_role(order, actor_id)
        return order

    async def list_orders(
        self,
        actor_id: str,
        role: OrderRole,
        status: OrderStatus | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Order], int]:
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        page = max(page, 1)
        party = Order.buyer_id if role == OrderRole.BUYER else Order.seller_id
        conditions = [party == actor_id]
        if status is not None:
            conditions.append(Order.status == status.value)

        total = (
            await self._session.execute(select(func.count()).select_from(Order).where(*conditions))
        ).scalar_one()
        result = await self._session.execute(
            select(Order)
            .where(*conditions)
            .order_by(Order.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def open_orders_for_seller(self, seller_id: str) -> list[Order]:
        result = await self._session.execute(
            select(Order).where(
                Order.seller_id == seller_id,
                Order.status.in_([s.value for s in OPEN_STATUSES]),
            )
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_order(self, buyer_id: str, request: CreateOrderRequest) -> Order:
        seller_id = parse_id(request.seller_id, "seller ID")
        if seller_id == buyer_id:
            raise ValidationError("Cannot order your own gig")
        if await self._session.get(UserAccount, seller_id) is None:
            raise NotFoundError("Seller not found", details={"seller_id": seller_id})
        if request.order_type == OrderType.STANDARD and not request.package:
            raise ValidationError("Package is required for standard orders")

        now = datetime.now(UTC)
        extras = request.extras if request.order_type == OrderType.STANDARD else []
        total = request.price + sum(e.price for e in extras)

        order = Order(
            id=new_id(),
            order_type=request.order_type.value,
            gig_id=request.gig_id,
            buyer_id=buyer_id,
            seller_id=seller_id,
            package=request.package,
            price=request.price,
            total_amount=total,
            delivery_time=request.delivery_time,
            revisions=request.revisions,
            status=OrderStatus.PENDING.value,
            requirements=[r.to_document() for r in request.requirements],
            extras=[e.to_document() for e in extras],
            deliverables=[],
            revision_requests=[],
            payment=Payment(amount=total).to_document(),
            timeline={"ordered": now.isoformat()},
            expected_delivery=now + timedelta(days=request.delivery_time),
            created_at=now,
        )
        self._session.add(order)
        await self._session.commit()

        logger.info(
            "order_created",
            order_id=order.id,
            buyer_id=buyer_id,
            seller_id=seller_id,
            total_amount=total,
        )
        return order

    async def update_status(
        self,
        order_id: str,
        actor_id: str,
        target: OrderStatus,
        note: str | None = None,
    ) -> Order:
        order = await self.load(order_id)
        role = actor_role(order, actor_id)
        current = OrderStatus(order.status)
        check_transition(current, target)
        check_actor(role, current, target)

        if target == OrderStatus.IN_REVISION:
            # A direct move into revision consumes one revision from the quota
            check_revision_quota(order)
            request = RevisionRequest(
                description=note or "Revision requested", status=RevisionStatus.APPROVED
            )
            order.revision_requests = [*order.revision_requests, request.to_document()]
        if target == OrderStatus.CANCELLED and note:
            order.cancellation_reason = note

        apply_transition(order, target)
        await self._commit(order)
        logger.info(
            "order_status_updated",
            order_id=order.id,
            from_status=current.value,
            to_status=target.value,
            actor_id=actor_id,
        )
        return order

    async def record_payment(self, order_id: str, actor_id: str, transaction_id: str) -> Order:
        order = await self.load(order_id)
        if actor_role(order, actor_id) != OrderRole.BUYER:
            raise AuthorizationError("Only buyer can pay for an order")
        if order.status == OrderStatus.CANCELLED:
            raise StateConflict("Cannot pay for a cancelled order")
        if order.payment.get("status") != PaymentStatus.PENDING:
            raise StateConflict("Order payment is not pending")

        order.payment = {
            **order.payment,
            "status": PaymentStatus.PAID.value,
            "transactionId": transaction_id,
            "paidAt": datetime.now(UTC).isoformat(),
        }
        await self._commit(order)
        logger.info("order_paid", order_id=order.id, amount=order.payment.get("amount"))
        return order

    async def add_deliverable(
        self, order_id: str, actor_id: str, files: list[str], description: str
    ) -> dict:
        order = await self.load(order_id)
        if actor_role(order, actor_id) != OrderRole.SELLER:
            raise AuthorizationError("Only seller can add deliverables")
        if order.status != OrderStatus.ACTIVE:
            raise StateConflict("Order must be active to add deliverables")

        deliverable = Deliverable(files=files, description=description).to_document()
        order.deliverables = [*order.deliverables, deliverable]
        await self._commit(order)
        logger.info("deliverable_added", order_id=order.id, files=len(files))
        return deliverable

    async def request_revision(self, order_id: str, actor_id: str, description: str) -> dict:
        order = await self.load(order_id)
        if actor_role(order, actor_id) != OrderRole.BUYER:
            raise AuthorizationError("Only buyer can request revisions")
        if order.status != OrderStatus.DELIVERED:
            raise StateConflict("Order must be delivered to request revision")
        check_revision_quota(order)
        if any(r.get("status") == RevisionStatus.PENDING for r in order.revision_requests):
            raise StateConflict("A revision request is already pending")

        request = RevisionRequest(description=description).to_document()
        order.revision_requests = [*order.revision_requests, request]
        await self._commit(order)
        logger.info("revision_requested", order_id=order.id)
        return request

    async def respond_to_revision(
        self, order_id: str, actor_id: str, index: int, approve: bool
    ) -> Order:
        """Seller approves or rejects a pending revision request.

        Approval moves the order from delivered into revision.
        """
        order = await self.load(order_id)
        if actor_role(order, actor_id) != OrderRole.SELLER:
            raise AuthorizationError("Only seller can respond to revision requests")
        if not 0 <= index < len(order.revision_requests):
            raise NotFoundError("Revision request not found", details={"index": index})

        requests = [dict(r) for r in order.revision_requests]
        if requests[index].get("status") != RevisionStatus.PENDING:
            raise StateConflict("Revision request has already been answered")

        if approve:
            check_transition(OrderStatus(order.status), OrderStatus.IN_REVISION)
            check_revision_quota(order)
            requests[index]["status"] = RevisionStatus.APPROVED.value
            order.revision_requests = requests
            apply_transition(order, OrderStatus.IN_REVISION)
        else:
            requests[index]["status"] = RevisionStatus.REJECTED.value
            order.revision_requests = requests

        await self._commit(order)
        logger.info("revision_answered", order_id=order.id, index=index, approved=approve)
        return order

    async def add_review(self, order_id: str, actor_id: str, rating: int, comment: str) -> dict:
        order = await self.load(order_id)
        if actor_role(order, actor_id) != OrderRole.BUYER:
            raise AuthorizationError("Only buyer can add reviews")
        if order.status != OrderStatus.COMPLETED:
            raise StateConflict("Order must be completed to add review")
        if order.review:
            raise StateConflict("Review already exists")
        if not 1 <= rating <= 5:
            raise ValidationError("Rating must be between 1 and 5")

        order.review = OrderReview(rating=rating, comment=comment).to_document()
        await self._commit(order)
        logger.info("order_reviewed", order_id=order.id, rating=rating)
        return order.review

    async def cancel_order(self, order_id: str, actor_id: str, reason: str | None = None) -> Order:
        order = await self.load(order_id)
        actor_role(order, actor_id)
        return await self._cancel(order, reason, cancelled_by=actor_id)

    async def force_cancel(self, order_id: str, reason: str) -> Order:
        """Cancel on behalf of the platform, e.g. after a refund or suspension."""
        order = await self.load(order_id)
        return await self._cancel(order, reason, cancelled_by="platform")

    async def _cancel(self, order: Order, reason: str | None, cancelled_by: str) -> Order:
        previous = order.status
        apply_transition(order, OrderStatus.CANCELLED)
        if reason:
            order.cancellation_reason = reason
        await self._commit(order)
        logger.info(
            "order_cancelled",
            order_id=order.id,
            from_status=previous,
            cancelled_by=cancelled_by,
            refunded=order.payment.get("status") == PaymentStatus.REFUNDED,
        )
        return order

    async def _commit(self, order: Order) -> None:
        order_id = order.id
        try:
            await self._session.commit()
        except StaleDataError as exc:
            await self._session.rollback()
            logger.warning("order_write_conflict", order_id=order_id)
            raise StateConflict(
                "Order was modified concurrently; reload and retry",
                details={"order_id": order_id},
            ) from exc
