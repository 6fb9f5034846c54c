"""Marketplace account registration."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from gigtrust.db.database import get_session
from gigtrust.domains.accounts.models import RegisterUserRequest, serialize_user
from gigtrust.domains.accounts.service import AccountService

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.post("", status_code=201)
async def register_user(
    request: RegisterUserRequest,
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    user = await AccountService(session).register_user(request)
    return {"message": "User registered successfully", "user": serialize_user(user)}
