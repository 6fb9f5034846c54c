"""AI risk signal adapters.

Core code depends only on the ``RiskSignalAdapter`` capability. The
production adapter calls an OpenAI-compatible chat completions endpoint;
the static adapter returns a fixed verdict for tests and offline runs.
Adapter failures raise UpstreamSignalError, and ``assess_with_fallback``
turns any failure into the neutral manual-review result.
"""

import asyncio
import json
import re
from typing import Protocol

import httpx
import structlog
from pydantic import Field
from pydantic import ValidationError as SchemaError

from gigtrust.shared.errors import UpstreamSignalError
from gigtrust.shared.models import CamelModel

from .config import SignalSettings, default_config
from .models import FlagCategory, Recommendation, RiskFlag, RiskResult, Severity

logger = structlog.get_logger()

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)

SYSTEM_PROMPT = (
    "You are a fraud detection expert. Always respond with valid JSON only, "
    "no markdown or extra text."
)


class BuyerHistory(CamelModel):
    total_orders: int = 0
    cancelled_orders: int = 0
    average_order_value: float = 0.0
    account_age: int | None = None


class OrderRiskContext(CamelModel):
    """What the risk signal sees about an order and its buyer."""

    order_id: str
    buyer_id: str
    seller_id: str
    price: float
    delivery_time: int
    requirements_count: int = 0
    buyer_history: BuyerHistory = Field(default_factory=BuyerHistory)
    unusual_patterns: list[str] = Field(default_factory=list)


def build_prompt(context: OrderRiskContext) -> str:
    history = context.buyer_history
    lines = [
        "You are a fraud detection AI analyzing an e-commerce order. Analyze the "
        "following order data and determine if it's potentially fraudulent:",
        "",
        "Order Details:",
        f"- Price: ${context.price:.2f}",
        f"- Delivery Time: {context.delivery_time} days",
        f"- Buyer Account Age: {history.account_age if history.account_age else 'New'} days",
        f"- Buyer Total Orders: {history.total_orders}",
        f"- Buyer Cancelled Orders: {history.cancelled_orders}",
        f"- Buyer Average Order Value: ${history.average_order_value:.2f}",
        f"- Requirements Provided: {context.requirements_count}",
    ]
    if context.unusual_patterns:
        lines.append(f"- Unusual Patterns: {', '.join(context.unusual_patterns)}")
    lines += [
        "",
        "Analyze for:",
        "1. Unusual price patterns (too high/low compared to history)",
        "2. New account with large order",
        "3. High cancellation rate",
        "4. Suspicious behavior patterns",
        "5. Delivery time mismatches",
        "6. Missing requirements for high-value orders",
        "",
        "Return ONLY a JSON object with these keys: riskScore (0-100), "
        "isFraudulent (boolean), reasons (list of strings), recommendation "
        "(approve|review|reject), flags (list of {category: "
        "transactional|behavioral|account|pattern|payment, severity: "
        "low|medium|high|critical, description, evidence}), suspiciousPatterns "
        "(list of {pattern, occurrences, severity: low|medium|high, examples}).",
    ]
    return "\n".join(lines)


def parse_risk_response(text: str) -> RiskResult:
    """Extract and validate the JSON verdict embedded in model output."""
    if not isinstance(text, str):
        raise UpstreamSignalError(
            "Risk signal response content was not text",
            details={"content_type": type(text).__name__},
        )
    match = _JSON_OBJECT.search(text)
    if match is None:
        raise UpstreamSignalError("Risk signal response contained no JSON object")
    try:
        payload = json.loads(match.group(0))
        return RiskResult.model_validate(payload)
    except json.JSONDecodeError as exc:
        raise UpstreamSignalError("Risk signal response was not valid JSON") from exc
    except SchemaError as exc:
        raise UpstreamSignalError(
            "Risk signal response did not match the expected schema",
            details={"errors": exc.error_count()},
        ) from exc


def neutral_result(reason: str = "", settings: SignalSettings | None = None) -> RiskResult:
    settings = settings or default_config.signals
    return RiskResult(
        risk_score=settings.neutral_risk_score,
        is_fraudulent=False,
        reasons=["Error in fraud detection, requires manual review"],
        recommendation=Recommendation.REVIEW,
        flags=[
            RiskFlag(
                category=FlagCategory.PATTERN,
                severity=Severity.MEDIUM,
                description="AI analysis error - manual review required",
                evidence={"error": reason},
            )
        ],
    )


class RiskSignalAdapter(Protocol):
    async def assess_risk(self, context: OrderRiskContext) -> RiskResult: ...


class LLMRiskSignalAdapter:
    """Chat-completions backed risk signal."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        model: str,
        settings: SignalSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_url = api_url
        self.api_key = api_key
        self.model = model
        self.settings = settings or default_config.signals
        self._client = client

    async def assess_risk(self, context: OrderRiskContext) -> RiskResult:
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(context)},
            ],
            "temperature": self.settings.temperature,
            "max_tokens": self.settings.max_tokens,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            if self._client is not None:
                response = await self._client.post(self.api_url, json=body, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.settings.timeout_seconds) as client:
                    response = await client.post(self.api_url, json=body, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise UpstreamSignalError(f"Risk signal request failed: {exc}") from exc
        except ValueError as exc:
            raise UpstreamSignalError("Risk signal endpoint returned non-JSON body") from exc

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise UpstreamSignalError("Risk signal response had no message content") from exc
        return parse_risk_response(content)


class StaticRiskSignalAdapter:
    """Returns the same verdict for every order."""

    def __init__(self, result: RiskResult | None = None) -> None:
        self.result = result or RiskResult(
            risk_score=10, recommendation=Recommendation.APPROVE
        )
        self.calls: list[OrderRiskContext] = []

    async def assess_risk(self, context: OrderRiskContext) -> RiskResult:
        self.calls.append(context)
        return self.result


async def assess_with_fallback(
    adapter: RiskSignalAdapter,
    context: OrderRiskContext,
    settings: SignalSettings | None = None,
) -> RiskResult:
    """Await the adapter under a timeout; any failure yields the neutral result."""
    settings = settings or default_config.signals
    try:
        return await asyncio.wait_for(adapter.assess_risk(context), settings.timeout_seconds)
    except TimeoutError:
        logger.warning("risk_signal_timeout", order_id=context.order_id)
        return neutral_result("timeout", settings)
    except UpstreamSignalError as exc:
        logger.warning("risk_signal_failed", order_id=context.order_id, error=exc.message)
        return neutral_result(exc.message, settings)
