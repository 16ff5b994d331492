"""Khairat claim Pydantic schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import CamelRequest, Pagination

ClaimPriority = Literal["low", "medium", "high", "urgent"]


class ClaimCreate(CamelRequest):
    """Schema for submitting a claim."""

    claimant_id: UUID
    mosque_id: UUID
    program_id: UUID | None = None
    requested_amount: int = Field(..., gt=0)  # in sen
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    priority: ClaimPriority = "medium"


class ClaimApprove(CamelRequest):
    """Schema for approving a claim."""

    approved_by: UUID
    approved_amount: int | None = None  # defaults to requested amount
    notes: str | None = None


class ClaimReject(CamelRequest):
    """Schema for rejecting a claim."""

    rejected_by: UUID
    rejection_reason: str = ""
    notes: str | None = None


class ClaimMarkPaid(CamelRequest):
    """Schema for marking an approved claim as paid."""

    marked_by: UUID
    notes: str | None = None


class ClaimStatusUpdate(CamelRequest):
    """Schema for a generic status change through the transition gate."""

    status: str
    updated_by: UUID
    notes: str | None = None


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    full_name: str
    email: str
    phone: str | None = None


class ProgramSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    program_type: str


class ClaimResponse(BaseModel):
    """Schema for claim response, joined with actor summaries."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    mosque_id: UUID
    program_id: UUID | None
    claimant_id: UUID
    title: str
    description: str | None
    priority: str
    requested_amount: int
    approved_amount: int | None
    status: str
    reviewed_by: UUID | None
    reviewed_at: datetime | None
    approved_by: UUID | None
    approved_at: datetime | None
    paid_at: datetime | None
    rejection_reason: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime

    claimant: UserSummary | None = None
    program: ProgramSummary | None = None
    approver: UserSummary | None = None
    reviewer: UserSummary | None = None


class ClaimListResponse(BaseModel):
    """Schema for paginated claim list."""

    success: bool = True
    data: list[ClaimResponse]
    pagination: Pagination
