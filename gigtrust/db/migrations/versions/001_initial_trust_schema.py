"""Create users, admins, orders, reports and fraud_cases tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _ts(name: str, nullable: bool = True) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False, unique=True),
        sa.Column("username", sa.String(), nullable=True),
        sa.Column("verified_email", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("verified_phone", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("verified_identity", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("suspended", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("suspended_at"),
        sa.Column("suspension_reason", sa.String(), nullable=True),
        _ts("created_at", nullable=False),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"])

    op.create_table(
        "admins",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(), nullable=False, unique=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False, server_default="admin"),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        _ts("created_at", nullable=False),
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("order_type", sa.String(), nullable=False, server_default="simple"),
        sa.Column("gig_id", sa.String(), nullable=False),
        sa.Column("buyer_id", sa.String(36), nullable=False),
        sa.Column("seller_id", sa.String(36), nullable=False),
        sa.Column("package", sa.String(), nullable=True),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("total_amount", sa.Float(), nullable=False),
        sa.Column("delivery_time", sa.Integer(), nullable=False),
        sa.Column("revisions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("requirements", postgresql.JSONB(), nullable=False),
        sa.Column("extras", postgresql.JSONB(), nullable=False),
        sa.Column("deliverables", postgresql.JSONB(), nullable=False),
        sa.Column("revision_requests", postgresql.JSONB(), nullable=False),
        sa.Column("payment", postgresql.JSONB(), nullable=False),
        sa.Column("timeline", postgresql.JSONB(), nullable=False),
        sa.Column("review", postgresql.JSONB(), nullable=True),
        _ts("expected_delivery"),
        sa.Column("cancellation_reason", sa.String(), nullable=True),
        _ts("created_at", nullable=False),
        _ts("updated_at", nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
    )
    op.create_index(op.f("ix_orders_gig_id"), "orders", ["gig_id"])
    op.create_index(op.f("ix_orders_buyer_id"), "orders", ["buyer_id"])
    op.create_index(op.f("ix_orders_seller_id"), "orders", ["seller_id"])
    op.create_index(op.f("ix_orders_status"), "orders", ["status"])

    op.create_table(
        "reports",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("reporter_id", sa.String(36), nullable=False),
        sa.Column("reported_user_id", sa.String(36), nullable=False),
        sa.Column("order_id", sa.String(36), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("severity", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("evidence", postgresql.JSONB(), nullable=False),
        sa.Column("reporter_credibility", postgresql.JSONB(), nullable=False),
        sa.Column("credibility_score", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("priority", sa.String(), nullable=False, server_default="medium"),
        sa.Column("review", postgresql.JSONB(), nullable=False),
        sa.Column("impact", postgresql.JSONB(), nullable=False),
        sa.Column("resolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("resolved_at"),
        sa.Column("resolution", postgresql.JSONB(), nullable=True),
        _ts("created_at", nullable=False),
        _ts("updated_at", nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.UniqueConstraint("reporter_id", "order_id", name="uq_reports_reporter_order"),
    )
    op.create_index(op.f("ix_reports_reporter_id"), "reports", ["reporter_id"])
    op.create_index(op.f("ix_reports_reported_user_id"), "reports", ["reported_user_id"])
    op.create_index(op.f("ix_reports_order_id"), "reports", ["order_id"])
    op.create_index(op.f("ix_reports_credibility_score"), "reports", ["credibility_score"])
    op.create_index(op.f("ix_reports_status"), "reports", ["status"])
    op.create_index(op.f("ix_reports_priority"), "reports", ["priority"])
    op.create_index(
        "ix_reports_seller_category_status",
        "reports",
        ["reported_user_id", "category", "status"],
    )

    op.create_table(
        "fraud_cases",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("fraud_score", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending_review"),
        sa.Column("ai_analysis", postgresql.JSONB(), nullable=False),
        sa.Column("flags", postgresql.JSONB(), nullable=False),
        sa.Column("triggering_event", postgresql.JSONB(), nullable=False),
        sa.Column("user_snapshot", postgresql.JSONB(), nullable=False),
        sa.Column("suspicious_patterns", postgresql.JSONB(), nullable=False),
        sa.Column("review", postgresql.JSONB(), nullable=False),
        sa.Column("prior_flags", postgresql.JSONB(), nullable=False),
        sa.Column("related_cases", postgresql.JSONB(), nullable=False),
        sa.Column("risk_assessment", postgresql.JSONB(), nullable=False),
        sa.Column("immediate_risk", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("resolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("resolved_at"),
        sa.Column("resolution", postgresql.JSONB(), nullable=True),
        _ts("created_at", nullable=False),
        _ts("updated_at", nullable=False),
        _ts("last_checked_at", nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
    )
    op.create_index(op.f("ix_fraud_cases_user_id"), "fraud_cases", ["user_id"])
    op.create_index(op.f("ix_fraud_cases_status"), "fraud_cases", ["status"])
    op.create_index(op.f("ix_fraud_cases_resolved"), "fraud_cases", ["resolved"])
    op.create_index("ix_fraud_cases_score_status", "fraud_cases", ["fraud_score", "status"])
    op.create_index(
        "uq_fraud_cases_open_user",
        "fraud_cases",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("resolved = false"),
    )


def downgrade() -> None:
    op.drop_table("fraud_cases")
    op.drop_table("reports")
    op.drop_table("orders")
    op.drop_table("admins")
    op.drop_table("users")
