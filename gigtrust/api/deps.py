"""Request dependencies: actor identity and collaborator wiring."""

from functools import lru_cache

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from gigtrust.config import settings
from gigtrust.db.database import get_session
from gigtrust.db.models import AdminAccount
from gigtrust.domains.accounts.service import (
    AccountService,
    AccountSuspender,
    DatabaseAccountSuspender,
)
from gigtrust.domains.fraud.config import FraudConfig, SignalSettings
from gigtrust.domains.fraud.signals import LLMRiskSignalAdapter, RiskSignalAdapter
from gigtrust.domains.reports.evidence import EvidenceStore, S3EvidenceStore
from gigtrust.shared.errors import AuthenticationRequired
from gigtrust.shared.models import parse_id


async def get_actor_id(x_user_id: str | None = Header(default=None)) -> str:
    """Marketplace user id forwarded by the gateway."""
    if not x_user_id:
        raise AuthenticationRequired("Authentication required")
    return parse_id(x_user_id, "user ID")


async def require_admin(
    x_admin_id: str | None = Header(default=None),
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> AdminAccount:
    return await AccountService(session).require_active_admin(x_admin_id)


@lru_cache
def get_fraud_config() -> FraudConfig:
    return FraudConfig(signals=SignalSettings(timeout_seconds=settings.llm_timeout_seconds))


@lru_cache
def get_risk_signal_adapter() -> RiskSignalAdapter:
    return LLMRiskSignalAdapter(
        api_url=settings.llm_api_url,
        api_key=settings.llm_api_key,
        model=settings.llm_model,
        settings=get_fraud_config().signals,
    )


@lru_cache
def get_evidence_store() -> EvidenceStore:
    return S3EvidenceStore(
        bucket=settings.evidence_bucket,
        endpoint_url=settings.evidence_endpoint,
        access_key=settings.evidence_access_key,
        secret_key=settings.evidence_secret_key,
        public_url=settings.evidence_public_url,
    )


async def get_account_suspender(
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> AccountSuspender:
    return DatabaseAccountSuspender(session)
