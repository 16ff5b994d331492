"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2025-01-15

Creates all initial tables for Khairat Digital:
- Users and mosques
- Contribution programmes and contributions
- Khairat claims
- Legacy records
- Payment providers and callback logs
- Audit logs
"""

from typing import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all database tables."""

    # ==================== USERS ====================
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("phone", sa.String(20)),
        sa.Column("ic_passport_number", sa.String(30), index=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="member"),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== MOSQUES ====================
    op.create_table(
        "mosques",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("address", sa.Text),
        sa.Column("admin_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "contribution_programs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "mosque_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("mosques.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("program_type", sa.String(30), server_default="khairat"),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== CONTRIBUTIONS ====================
    op.create_table(
        "contributions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("mosque_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("mosques.id"), nullable=False, index=True),
        sa.Column("program_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("contribution_programs.id"), index=True),
        sa.Column("contributor_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), index=True),
        sa.Column("contributor_name", sa.String(200)),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("payment_method", sa.String(30)),
        sa.Column("payment_reference", sa.String(100)),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("notes", sa.Text),
        sa.Column("contributed_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_contributions_payment_reference", "contributions", ["payment_reference"])

    # ==================== CLAIMS ====================
    op.create_table(
        "khairat_claims",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("mosque_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("mosques.id"), nullable=False, index=True),
        sa.Column("program_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("contribution_programs.id")),
        sa.Column("claimant_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("priority", sa.String(10), server_default="medium"),
        sa.Column("requested_amount", sa.Integer, nullable=False),
        sa.Column("approved_amount", sa.Integer),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending", index=True),
        sa.Column("reviewed_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        sa.Column("reviewed_at", sa.DateTime(timezone=True)),
        sa.Column("approved_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        sa.Column("approved_at", sa.DateTime(timezone=True)),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        sa.Column("rejection_reason", sa.Text),
        sa.Column("notes", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("requested_amount > 0", name="ck_claim_requested_positive"),
        sa.CheckConstraint(
            "approved_amount IS NULL OR (approved_amount > 0 AND approved_amount <= requested_amount)",
            name="ck_claim_approved_within_requested",
        ),
    )

    # ==================== LEGACY RECORDS ====================
    op.create_table(
        "legacy_khairat_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("mosque_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("mosques.id"), nullable=False, index=True),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("ic_passport_number", sa.String(30), index=True),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("payment_date", sa.Date, nullable=False),
        sa.Column("invoice_number", sa.String(100)),
        sa.Column("matched_user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        sa.Column("contribution_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("contributions.id")),
        sa.Column("is_matched", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "(is_matched AND matched_user_id IS NOT NULL AND contribution_id IS NOT NULL) OR "
            "(NOT is_matched AND matched_user_id IS NULL AND contribution_id IS NULL)",
            name="ck_legacy_match_consistent",
        ),
    )

    # ==================== PAYMENT PROVIDERS ====================
    op.create_table(
        "mosque_payment_providers",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "mosque_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("mosques.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("provider_type", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean, server_default=sa.false()),
        sa.Column("is_sandbox", sa.Boolean, server_default=sa.true()),
        sa.Column("billplz_api_key_encrypted", sa.LargeBinary),
        sa.Column("billplz_x_signature_key_encrypted", sa.LargeBinary),
        sa.Column("billplz_collection_id", sa.String(50)),
        sa.Column("toyyibpay_secret_key_encrypted", sa.LargeBinary),
        sa.Column("toyyibpay_category_code", sa.String(50)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("mosque_id", "provider_type", name="uq_mosque_provider_type"),
    )

    op.create_table(
        "payment_callback_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("gateway", sa.String(20), nullable=False, index=True),
        sa.Column("reference", sa.String(100), index=True),
        sa.Column("mosque_id", postgresql.UUID(as_uuid=True)),
        sa.Column("contribution_id", postgresql.UUID(as_uuid=True)),
        sa.Column("payload", postgresql.JSONB),
        sa.Column("outcome", sa.String(20), nullable=False),
        sa.Column("detail", sa.Text),
        sa.Column("idempotency_key", sa.String(64), index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )

    # ==================== ADMIN ====================
    op.create_table(
        "audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), index=True),
        sa.Column("action", sa.String(100), nullable=False, index=True),
        sa.Column("resource_type", sa.String(50), nullable=False, index=True),
        sa.Column("resource_id", postgresql.UUID(as_uuid=True)),
        sa.Column("old_values", postgresql.JSONB),
        sa.Column("new_values", postgresql.JSONB),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )


def downgrade() -> None:
    """Drop all tables in reverse order."""
    op.drop_table("audit_logs")
    op.drop_table("payment_callback_logs")
    op.drop_table("mosque_payment_providers")
    op.drop_table("legacy_khairat_records")
    op.drop_table("khairat_claims")
    op.drop_index("ix_contributions_payment_reference", table_name="contributions")
    op.drop_table("contributions")
    op.drop_table("contribution_programs")
    op.drop_table("mosques")
    op.drop_table("users")
