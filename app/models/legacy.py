"""Legacy (pre-migration) khairat payment records."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.database import Base, utcnow


class LegacyRecord(Base):
    """A historical payment imported from a predecessor system."""

    __tablename__ = "legacy_khairat_records"
    __table_args__ = (
        CheckConstraint(
            "(is_matched AND matched_user_id IS NOT NULL AND contribution_id IS NOT NULL) OR "
            "(NOT is_matched AND matched_user_id IS NULL AND contribution_id IS NULL)",
            name="ck_legacy_match_consistent",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    mosque_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("mosques.id"), nullable=False, index=True
    )

    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    ic_passport_number: Mapped[str | None] = mapped_column(String(30), index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)  # in sen
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    invoice_number: Mapped[str | None] = mapped_column(String(100))

    # Reconciliation
    matched_user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id")
    )
    contribution_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("contributions.id")
    )
    is_matched: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )
