"""SQLAlchemy ORM models for marketplace accounts, orders, reports and fraud cases.

Nested sub-records (flags, timeline, payment, review, ...) live in JSON
columns and are stored with their public camelCase field names. JSON columns
are always reassigned, never mutated in place, so the ORM sees every change.
Orders, reports and fraud cases carry a version column; every update is a
compare-and-set on that version.
"""

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

JSONDocument = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(UTC)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes, including on backends that drop tzinfo."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class Base(DeclarativeBase):
    pass


class UserAccount(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String)
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    username: Mapped[str | None] = mapped_column(String, nullable=True)
    verified_email: Mapped[bool] = mapped_column(Boolean, default=False)
    verified_phone: Mapped[bool] = mapped_column(Boolean, default=False)
    verified_identity: Mapped[bool] = mapped_column(Boolean, default=False)
    suspended: Mapped[bool] = mapped_column(Boolean, default=False)
    suspended_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    suspension_reason: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utcnow)


class AdminAccount(Base):
    __tablename__ = "admins"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    email: Mapped[str] = mapped_column(String, unique=True)
    name: Mapped[str] = mapped_column(String)
    role: Mapped[str] = mapped_column(String, default="admin")
    status: Mapped[str] = mapped_column(String, default="active")
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utcnow)


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    order_type: Mapped[str] = mapped_column(String, default="simple")
    gig_id: Mapped[str] = mapped_column(String, index=True)
    buyer_id: Mapped[str] = mapped_column(String(36), index=True)
    seller_id: Mapped[str] = mapped_column(String(36), index=True)
    package: Mapped[str | None] = mapped_column(String, nullable=True)
    price: Mapped[float] = mapped_column(Float)
    total_amount: Mapped[float] = mapped_column(Float)
    delivery_time: Mapped[int] = mapped_column(Integer)
    revisions: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String, default="pending", index=True)
    requirements: Mapped[list] = mapped_column(JSONDocument, default=list)
    extras: Mapped[list] = mapped_column(JSONDocument, default=list)
    deliverables: Mapped[list] = mapped_column(JSONDocument, default=list)
    revision_requests: Mapped[list] = mapped_column(JSONDocument, default=list)
    payment: Mapped[dict] = mapped_column(JSONDocument, default=dict)
    timeline: Mapped[dict] = mapped_column(JSONDocument, default=dict)
    review: Mapped[dict | None] = mapped_column(JSONDocument, nullable=True)
    expected_delivery: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utcnow, onupdate=_utcnow)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


class Report(Base):
    __tablename__ = "reports"
    __table_args__ = (
        UniqueConstraint("reporter_id", "order_id", name="uq_reports_reporter_order"),
        Index("ix_reports_seller_category_status", "reported_user_id", "category", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    reporter_id: Mapped[str] = mapped_column(String(36), index=True)
    reported_user_id: Mapped[str] = mapped_column(String(36), index=True)
    order_id: Mapped[str] = mapped_column(String(36), index=True)
    category: Mapped[str] = mapped_column(String)
    severity: Mapped[str] = mapped_column(String)
    description: Mapped[str] = mapped_column(Text)
    evidence: Mapped[dict] = mapped_column(JSONDocument, default=dict)
    reporter_credibility: Mapped[dict] = mapped_column(JSONDocument, default=dict)
    credibility_score: Mapped[int] = mapped_column(Integer, index=True)
    status: Mapped[str] = mapped_column(String, default="pending", index=True)
    priority: Mapped[str] = mapped_column(String, default="medium", index=True)
    review: Mapped[dict] = mapped_column(JSONDocument, default=dict)
    impact: Mapped[dict] = mapped_column(JSONDocument, default=dict)
    resolved: Mapped[bool] = mapped_column(Boolean, default=False)
    resolved_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    resolution: Mapped[dict | None] = mapped_column(JSONDocument, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utcnow, onupdate=_utcnow)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


class FraudCase(Base):
    __tablename__ = "fraud_cases"
    __table_args__ = (
        # At most one unresolved case per user
        Index(
            "uq_fraud_cases_open_user",
            "user_id",
            unique=True,
            postgresql_where=text("resolved = false"),
            sqlite_where=text("resolved = 0"),
        ),
        Index("ix_fraud_cases_score_status", "fraud_score", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    fraud_score: Mapped[int] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String, default="pending_review", index=True)
    ai_analysis: Mapped[dict] = mapped_column(JSONDocument, default=dict)
    flags: Mapped[list] = mapped_column(JSONDocument, default=list)
    triggering_event: Mapped[dict] = mapped_column(JSONDocument, default=dict)
    user_snapshot: Mapped[dict] = mapped_column(JSONDocument, default=dict)
    suspicious_patterns: Mapped[list] = mapped_column(JSONDocument, default=list)
    review: Mapped[dict] = mapped_column(JSONDocument, default=dict)
    prior_flags: Mapped[list] = mapped_column(JSONDocument, default=list)
    related_cases: Mapped[list] = mapped_column(JSONDocument, default=list)
    risk_assessment: Mapped[dict] = mapped_column(JSONDocument, default=dict)
    immediate_risk: Mapped[bool] = mapped_column(Boolean, default=False)
    resolved: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    resolved_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    resolution: Mapped[dict | None] = mapped_column(JSONDocument, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utcnow, onupdate=_utcnow)
    last_checked_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_utcnow)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
