"""Account lookups, admin checks and account suspension."""

from datetime import UTC, datetime
from typing import Protocol

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gigtrust.db.models import AdminAccount, UserAccount
from gigtrust.shared.errors import (
    AuthenticationRequired,
    AuthorizationError,
    NotFoundError,
    StateConflict,
)
from gigtrust.shared.models import new_id, parse_id

from .models import AdminStatus, RegisterUserRequest

logger = structlog.get_logger()


def account_age_days(user: UserAccount, now: datetime | None = None) -> int:
    now = now or datetime.now(UTC)
    return max((now - user.created_at).days, 0)


class AccountSuspender(Protocol):
    """Collaborator that takes a user off the marketplace."""

    async def suspend(self, user_id: str, reason: str) -> None: ...


class DatabaseAccountSuspender:
    """Marks the account suspended on the users table.

    Suspending an already suspended account keeps the first reason and
    timestamp.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def suspend(self, user_id: str, reason: str) -> None:
        user = await self._session.get(UserAccount, user_id)
        if user is None:
            raise NotFoundError("User not found", details={"user_id": user_id})
        if user.suspended:
            return

        user.suspended = True
        user.suspended_at = datetime.now(UTC)
        user.suspension_reason = reason
        await self._session.commit()
        logger.warning("account_suspended", user_id=user_id, reason=reason)


class AccountService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def register_user(self, request: RegisterUserRequest) -> UserAccount:
        existing = await self._session.execute(
            select(UserAccount.id).where(UserAccount.email == request.email)
        )
        if existing.scalar_one_or_none():
            raise StateConflict("Email already registered")

        user = UserAccount(
            id=new_id(),
            name=request.name,
            email=request.email,
            username=request.username,
            verified_email=request.verified_email,
            verified_phone=request.verified_phone,
            verified_identity=request.verified_identity,
        )
        self._session.add(user)
        try:
            await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            raise StateConflict("Email already registered") from exc

        logger.info("user_registered", user_id=user.id)
        return user

    async def get_user(self, user_id: str) -> UserAccount:
        user = await self._session.get(UserAccount, parse_id(user_id, "user ID"))
        if user is None:
            raise NotFoundError("User not found", details={"user_id": user_id})
        return user

    async def require_active_admin(self, admin_id: str | None) -> AdminAccount:
        """Resolve the acting admin, rejecting unknown or inactive accounts."""
        if not admin_id:
            raise AuthenticationRequired("Admin authentication required")
        admin = await self._session.get(AdminAccount, parse_id(admin_id, "admin ID"))
        if admin is None:
            raise AuthenticationRequired("Admin not found")
        if admin.status != AdminStatus.ACTIVE:
            raise AuthorizationError("Admin account is not active")
        return admin
