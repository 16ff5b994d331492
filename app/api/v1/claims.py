"""Khairat claim endpoints."""

from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import Page, get_db, get_page
from app.schemas.claim import (
    ClaimApprove,
    ClaimCreate,
    ClaimListResponse,
    ClaimMarkPaid,
    ClaimReject,
    ClaimResponse,
    ClaimStatusUpdate,
)
from app.schemas.common import ApiResponse, Pagination
from app.services.claim_service import claim_service

router = APIRouter()


@router.post("", response_model=ApiResponse[ClaimResponse], status_code=status.HTTP_201_CREATED)
async def create_claim(
    claim_data: ClaimCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[ClaimResponse]:
    """Submit a khairat claim."""
    claim = await claim_service.create_claim(db, claim_data)
    return ApiResponse(
        data=ClaimResponse.model_validate(claim),
        message="Claim created successfully",
    )


@router.get("", response_model=ClaimListResponse)
async def list_claims(
    db: Annotated[AsyncSession, Depends(get_db)],
    paging: Annotated[Page, Depends(get_page)],
    mosque_id: UUID | None = Query(default=None, alias="mosqueId"),
    claimant_id: UUID | None = Query(default=None, alias="claimantId"),
    status_filter: str | None = Query(default=None, alias="status"),
    priority: str | None = Query(default=None),
    sort_by: Literal["created_at", "requested_amount", "status", "priority"] = Query(
        default="created_at", alias="sortBy"
    ),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
) -> ClaimListResponse:
    """List claims with filters and pagination."""
    claims, total = await claim_service.list_claims(
        db,
        mosque_id=mosque_id,
        claimant_id=claimant_id,
        status=status_filter,
        priority=priority,
        page=paging.page,
        limit=paging.limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ClaimListResponse(
        data=[ClaimResponse.model_validate(claim) for claim in claims],
        pagination=Pagination.build(paging.page, paging.limit, total),
    )


@router.get("/{claim_id}", response_model=ApiResponse[ClaimResponse])
async def get_claim(
    claim_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[ClaimResponse]:
    """Get claim details."""
    claim = await claim_service.get_claim(db, claim_id)
    return ApiResponse(data=ClaimResponse.model_validate(claim))


@router.delete("/{claim_id}", response_model=ApiResponse[ClaimResponse])
async def cancel_claim(
    claim_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: UUID = Query(alias="userId"),
) -> ApiResponse[ClaimResponse]:
    """Cancel an undecided claim (claimant or admin)."""
    claim = await claim_service.cancel(db, claim_id, user_id)
    return ApiResponse(
        data=ClaimResponse.model_validate(claim),
        message="Claim cancelled successfully",
    )


@router.post("/{claim_id}/approve", response_model=ApiResponse[ClaimResponse])
async def approve_claim(
    claim_id: UUID,
    approve_data: ClaimApprove,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[ClaimResponse]:
    """Approve a claim (admin only)."""
    claim = await claim_service.approve(db, claim_id, approve_data)
    return ApiResponse(
        data=ClaimResponse.model_validate(claim),
        message="Claim approved successfully",
    )


@router.post("/{claim_id}/reject", response_model=ApiResponse[ClaimResponse])
async def reject_claim(
    claim_id: UUID,
    reject_data: ClaimReject,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[ClaimResponse]:
    """Reject a claim (admin only)."""
    claim = await claim_service.reject(db, claim_id, reject_data)
    return ApiResponse(
        data=ClaimResponse.model_validate(claim),
        message="Claim rejected successfully",
    )


@router.post("/{claim_id}/mark-paid", response_model=ApiResponse[ClaimResponse])
async def mark_claim_paid(
    claim_id: UUID,
    paid_data: ClaimMarkPaid,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[ClaimResponse]:
    """Mark an approved claim as paid (admin only)."""
    claim = await claim_service.mark_paid(db, claim_id, paid_data)
    return ApiResponse(
        data=ClaimResponse.model_validate(claim),
        message="Claim marked as paid successfully",
    )


@router.put("/{claim_id}/status", response_model=ApiResponse[ClaimResponse])
async def update_claim_status(
    claim_id: UUID,
    status_data: ClaimStatusUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[ClaimResponse]:
    """Change claim status through the transition gate (admin only)."""
    claim = await claim_service.update_status(db, claim_id, status_data)
    return ApiResponse(
        data=ClaimResponse.model_validate(claim),
        message=f"Claim status updated to {status_data.status} successfully",
    )
