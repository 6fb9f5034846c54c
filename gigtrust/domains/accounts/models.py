"""Request models for marketplace accounts."""

from datetime import datetime
from enum import StrEnum

from pydantic import Field

from gigtrust.db.models import UserAccount
from gigtrust.shared.models import CamelModel


class AdminRole(StrEnum):
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class AdminStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class RegisterUserRequest(CamelModel):
    name: str = Field(min_length=1, max_length=120)
    email: str = Field(max_length=254, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    username: str | None = Field(default=None, max_length=60)
    verified_email: bool = False
    verified_phone: bool = False
    verified_identity: bool = False


def serialize_user(user: UserAccount) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "username": user.username,
        "verifiedEmail": user.verified_email,
        "verifiedPhone": user.verified_phone,
        "verifiedIdentity": user.verified_identity,
        "suspended": user.suspended,
        "suspendedAt": _iso(user.suspended_at),
        "suspensionReason": user.suspension_reason,
        "createdAt": _iso(user.created_at),
    }


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
