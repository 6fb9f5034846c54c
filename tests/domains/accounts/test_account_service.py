"""Tests for account registration and admin checks."""

import pytest

from gigtrust.domains.accounts.models import RegisterUserRequest
from gigtrust.domains.accounts.service import AccountService
from gigtrust.shared.errors import (
    AuthenticationRequired,
    AuthorizationError,
    NotFoundError,
    StateConflict,
)


class TestAccountService:
    @pytest.mark.asyncio
    async def test_register_and_fetch(self, db_session):
        service = AccountService(db_session)
        user = await service.register_user(
            RegisterUserRequest(name="Ana", email="ana@example.com", verified_email=True)
        )
        fetched = await service.get_user(user.id)
        assert fetched.email == "ana@example.com"
        assert fetched.verified_email is True
        assert fetched.suspended is False

    @pytest.mark.asyncio
    async def test_duplicate_email(self, db_session):
        service = AccountService(db_session)
        await service.register_user(RegisterUserRequest(name="Ana", email="ana@example.com"))
        with pytest.raises(StateConflict, match="already registered"):
            await service.register_user(RegisterUserRequest(name="Other", email="ana@example.com"))

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            await AccountService(db_session).get_user("550e8400-e29b-41d4-a716-446655440000")

    @pytest.mark.asyncio
    async def test_admin_checks(self, db_session, make_admin):
        service = AccountService(db_session)
        active = await make_admin()
        inactive = await make_admin(status="inactive")

        assert (await service.require_active_admin(active.id)).id == active.id
        with pytest.raises(AuthorizationError):
            await service.require_active_admin(inactive.id)
        with pytest.raises(AuthenticationRequired):
            await service.require_active_admin(None)
        with pytest.raises(AuthenticationRequired):
            await service.require_active_admin("550e8400-e29b-41d4-a716-446655440000")
