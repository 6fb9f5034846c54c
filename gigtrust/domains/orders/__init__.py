"""Order lifecycle domain."""

from .models import OrderStatus, PaymentStatus, RevisionStatus
from .service import OrderService
from .state_machine import ORDER_TRANSITIONS, apply_transition, check_transition

__all__ = [
    "ORDER_TRANSITIONS",
    "OrderService",
    "OrderStatus",
    "PaymentStatus",
    "RevisionStatus",
    "apply_transition",
    "check_transition",
]
