"""Legacy record reconciliation schemas.

These endpoints take snake_case bodies.
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class LegacyMatchRequest(BaseModel):
    legacy_record_id: UUID
    user_id: UUID
    mosque_id: UUID
    program_id: UUID | None = None


class LegacyUnmatchRequest(BaseModel):
    legacy_record_id: UUID


class LegacyBulkMatchRequest(BaseModel):
    legacy_record_ids: list[UUID] = Field(..., min_length=1)
    user_id: UUID
    program_id: UUID


class LegacyBulkUnmatchRequest(BaseModel):
    legacy_record_ids: list[UUID] = Field(..., min_length=1)


class LegacyRecordResponse(BaseModel):
    """Schema for legacy record response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    mosque_id: UUID
    full_name: str
    ic_passport_number: str | None
    amount: int
    payment_date: date
    invoice_number: str | None
    matched_user_id: UUID | None
    contribution_id: UUID | None
    is_matched: bool
    created_at: datetime
