"""Payment gateway credential and callback log models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, LargeBinary, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.database import Base, JSONVariant, utcnow


class PaymentProvider(Base):
    """Per-mosque gateway credentials.

    Secret values are AES-256-GCM encrypted with the mosque id as
    associated data, so a ciphertext cannot be replayed onto another mosque.
    """

    __tablename__ = "mosque_payment_providers"
    __table_args__ = (
        UniqueConstraint("mosque_id", "provider_type", name="uq_mosque_provider_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    mosque_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("mosques.id", ondelete="CASCADE"), nullable=False
    )
    provider_type: Mapped[str] = mapped_column(String(20), nullable=False)  # billplz, toyyibpay
    is_active: Mapped[bool] = mapped_column(Boolean, default=False)
    is_sandbox: Mapped[bool] = mapped_column(Boolean, default=True)

    # Billplz
    billplz_api_key_encrypted: Mapped[bytes | None] = mapped_column(LargeBinary)
    billplz_x_signature_key_encrypted: Mapped[bytes | None] = mapped_column(LargeBinary)
    billplz_collection_id: Mapped[str | None] = mapped_column(String(50))

    # ToyyibPay
    toyyibpay_secret_key_encrypted: Mapped[bytes | None] = mapped_column(LargeBinary)
    toyyibpay_category_code: Mapped[str | None] = mapped_column(String(50))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )


class PaymentCallbackLog(Base):
    """Append-only record of every inbound gateway callback and its outcome."""

    __tablename__ = "payment_callback_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    gateway: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    reference: Mapped[str | None] = mapped_column(String(100), index=True)  # bill id / code
    mosque_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    contribution_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))

    payload: Mapped[dict | None] = mapped_column(JSONVariant)
    outcome: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # applied, duplicate, ignored, rejected
    detail: Mapped[str | None] = mapped_column(Text)
    idempotency_key: Mapped[str | None] = mapped_column(String(64), index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True
    )
