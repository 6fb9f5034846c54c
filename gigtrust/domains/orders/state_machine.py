"""Order status state machine.

Legal transitions:

    pending     -> active | cancelled
    active      -> delivered | cancelled
    delivered   -> completed | in_revision
    in_revision -> delivered
    completed, cancelled: terminal

Entering a state stamps its timeline field once; later entries never
overwrite it. Cancelling a paid order refunds it in the same write.
"""

from datetime import UTC, datetime

from gigtrust.shared.errors import AuthorizationError, InvalidTransition, StateConflict

from .models import OrderRole, OrderStatus, PaymentStatus, RevisionStatus

ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.ACTIVE, OrderStatus.CANCELLED}),
    OrderStatus.ACTIVE: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.COMPLETED, OrderStatus.IN_REVISION}),
    OrderStatus.IN_REVISION: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ORDER_TRANSITIONS.items() if not targets
)

TIMELINE_FIELDS: dict[OrderStatus, str] = {
    OrderStatus.PENDING: "ordered",
    OrderStatus.ACTIVE: "started",
    OrderStatus.DELIVERED: "delivered",
    OrderStatus.COMPLETED: "completed",
    OrderStatus.CANCELLED: "cancelled",
    OrderStatus.IN_REVISION: "inRevision",
}

# Transitions only one party may request; everything else is open to both.
TRANSITION_ROLES: dict[tuple[OrderStatus, OrderStatus], frozenset[OrderRole]] = {
    (OrderStatus.ACTIVE, OrderStatus.DELIVERED): frozenset({OrderRole.SELLER}),
    (OrderStatus.IN_REVISION, OrderStatus.DELIVERED): frozenset({OrderRole.SELLER}),
    (OrderStatus.DELIVERED, OrderStatus.COMPLETED): frozenset({OrderRole.BUYER}),
    (OrderStatus.DELIVERED, OrderStatus.IN_REVISION): frozenset({OrderRole.BUYER}),
}

_BOTH_ROLES = frozenset({OrderRole.BUYER, OrderRole.SELLER})


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ORDER_TRANSITIONS.get(current, frozenset())


def check_transition(current: OrderStatus, target: OrderStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransition(current.value, target.value)


def actor_role(order, actor_id: str | None) -> OrderRole:
    """Return the actor's role on the order, or raise if they are not a party to it."""
    if actor_id and actor_id == order.seller_id:
        return OrderRole.SELLER
    if actor_id and actor_id == order.buyer_id:
        return OrderRole.BUYER
    raise AuthorizationError("Access denied")


def check_actor(role: OrderRole, current: OrderStatus, target: OrderStatus) -> None:
    allowed = TRANSITION_ROLES.get((current, target), _BOTH_ROLES)
    if role not in allowed:
        only = ", ".join(sorted(r.value for r in allowed))
        raise AuthorizationError(
            f"Only the {only} can move an order from {current.value} to {target.value}"
        )


def used_revisions(revision_requests: list[dict]) -> int:
    return sum(1 for r in revision_requests if r.get("status") == RevisionStatus.APPROVED)


def check_revision_quota(order) -> None:
    if used_revisions(order.revision_requests or []) >= order.revisions:
        raise StateConflict("No revisions remaining")


def stamp_timeline(timeline: dict | None, status: OrderStatus, now: datetime) -> dict:
    stamped = dict(timeline or {})
    key = TIMELINE_FIELDS[status]
    if not stamped.get(key):
        stamped[key] = now.isoformat()
    return stamped


def apply_transition(order, target: OrderStatus, now: datetime | None = None) -> None:
    """Move the order to ``target``, stamping the timeline and refunding on cancel.

    All attribute changes are made before the caller flushes, so status,
    timeline and payment land in a single UPDATE.
    """
    now = now or datetime.now(UTC)
    current = OrderStatus(order.status)
    check_transition(current, target)

    order.timeline = stamp_timeline(order.timeline, target, now)
    payment = dict(order.payment or {})
    if target == OrderStatus.CANCELLED and payment.get("status") == PaymentStatus.PAID:
        payment["status"] = PaymentStatus.REFUNDED.value
        payment["refundedAt"] = now.isoformat()
        order.payment = payment
    order.status = target.value
