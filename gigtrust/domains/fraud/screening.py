"""Order screening: pattern detection plus the AI risk signal.

High-risk verdicts auto-flag the buyer through the fraud case store.
"""

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from gigtrust.db.models import Order, UserAccount
from gigtrust.domains.accounts.service import account_age_days
from gigtrust.domains.orders.service import orders_for_buyer
from gigtrust.shared.errors import StateConflict

from .config import FraudConfig, default_config
from .models import AIAnalysis, FraudFlag, RiskResult, TriggeringEvent, TriggerType
from .signals import (
    BuyerHistory,
    OrderRiskContext,
    RiskSignalAdapter,
    assess_with_fallback,
)
from .store import FraudCaseStore

logger = structlog.get_logger()

RAPID_ORDER_WINDOW = timedelta(hours=1)
RAPID_ORDER_COUNT = 3
PRICE_SPIKE_FACTOR = 5
HIGH_CANCELLATION_RATE = 0.5
HIGH_CANCELLATION_MIN_ORDERS = 3


def detect_suspicious_patterns(orders: Sequence[Any], now: datetime | None = None) -> list[str]:
    """Spot simple buyer patterns. ``orders`` are oldest first."""
    if not orders:
        return []
    now = now or datetime.now(UTC)
    patterns = []

    recent = [o for o in orders if o.created_at > now - RAPID_ORDER_WINDOW]
    if len(recent) >= RAPID_ORDER_COUNT:
        patterns.append("Multiple orders in short timeframe")

    prices = [o.total_amount for o in orders]
    average = sum(prices) / len(prices)
    if prices[-1] > average * PRICE_SPIKE_FACTOR:
        patterns.append("Order value significantly higher than average")

    cancelled = sum(1 for o in orders if o.status == "cancelled")
    if len(orders) >= HIGH_CANCELLATION_MIN_ORDERS and cancelled / len(orders) > HIGH_CANCELLATION_RATE:
        patterns.append("High cancellation rate")

    return patterns


def build_order_context(
    order: Order,
    history: Sequence[Order],
    buyer: UserAccount | None,
    now: datetime | None = None,
) -> OrderRiskContext:
    """Assemble the risk context. ``history`` includes the order itself."""
    now = now or datetime.now(UTC)
    return OrderRiskContext(
        order_id=order.id,
        buyer_id=order.buyer_id,
        seller_id=order.seller_id,
        price=order.total_amount,
        delivery_time=order.delivery_time,
        requirements_count=len(order.requirements or []),
        buyer_history=BuyerHistory(
            total_orders=len(history),
            cancelled_orders=sum(1 for o in history if o.status == "cancelled"),
            average_order_value=(
                round(sum(o.total_amount for o in history) / len(history), 2) if history else 0.0
            ),
            account_age=account_age_days(buyer, now) if buyer else None,
        ),
        unusual_patterns=detect_suspicious_patterns(history, now),
    )


class OrderScreener:
    def __init__(
        self,
        session: AsyncSession,
        adapter: RiskSignalAdapter,
        config: FraudConfig | None = None,
        model_name: str = "risk-signal",
    ) -> None:
        self._session = session
        self._adapter = adapter
        self._config = config or default_config
        self._store = FraudCaseStore(session, self._config)
        self._model_name = model_name

    async def screen_order(self, order: Order) -> RiskResult:
        order_id, buyer_id = order.id, order.buyer_id
        buyer = await self._session.get(UserAccount, buyer_id)
        history = await orders_for_buyer(self._session, buyer_id)
        context = build_order_context(order, history, buyer)

        result = await assess_with_fallback(self._adapter, context, self._config.signals)
        logger.info(
            "order_screened",
            order_id=order_id,
            buyer_id=buyer_id,
            risk_score=result.risk_score,
            recommendation=result.recommendation.value,
            patterns=context.unusual_patterns,
        )

        if result.risk_score >= self._config.cases.auto_flag_min and buyer is not None:
            await self._flag_buyer(order_id, buyer_id, result)
        return result

    async def _flag_buyer(self, order_id: str, buyer_id: str, result: RiskResult) -> None:
        try:
            case = await self._store.upsert_case(
                user_id=buyer_id,
                fraud_score=result.risk_score,
                flags=[FraudFlag(**flag.model_dump()) for flag in result.flags],
                triggering_event=TriggeringEvent(
                    type=TriggerType.ORDER,
                    reference_id=order_id,
                    details={"reasons": result.reasons, "recommendation": result.recommendation.value},
                ),
                suspicious_patterns=result.suspicious_patterns,
                ai_analysis=AIAnalysis(
                    model=self._model_name,
                    confidence=result.risk_score / 100,
                ),
            )
        except StateConflict as exc:
            # The order is already committed; an admin can re-screen it
            logger.warning(
                "buyer_auto_flag_conflict", order_id=order_id, user_id=buyer_id, error=exc.message
            )
            return
        logger.warning(
            "buyer_auto_flagged",
            user_id=buyer_id,
            case_id=case.id,
            fraud_score=case.fraud_score,
        )
