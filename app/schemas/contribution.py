"""Contribution Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import CamelRequest


class ContributionCreate(CamelRequest):
    """Schema for starting a contribution (settled later by a gateway)."""

    mosque_id: UUID
    program_id: UUID | None = None
    contributor_id: UUID | None = None  # None = anonymous
    contributor_name: str | None = Field(None, max_length=200)
    amount: int = Field(..., gt=0)  # in sen
    notes: str | None = None


class ContributionResponse(BaseModel):
    """Schema for contribution response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    mosque_id: UUID
    program_id: UUID | None
    contributor_id: UUID | None
    contributor_name: str | None
    amount: int
    payment_method: str | None
    payment_reference: str | None
    status: str
    notes: str | None
    contributed_at: datetime
    created_at: datetime
