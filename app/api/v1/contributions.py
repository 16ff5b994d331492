"""Contribution endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db
from app.schemas.common import ApiResponse
from app.schemas.contribution import ContributionCreate, ContributionResponse
from app.services.contribution_service import contribution_service

router = APIRouter()


@router.post(
    "", response_model=ApiResponse[ContributionResponse], status_code=status.HTTP_201_CREATED
)
async def create_contribution(
    contribution_data: ContributionCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[ContributionResponse]:
    """Start a contribution; pay it through /payments/create."""
    contribution = await contribution_service.create_contribution(db, contribution_data)
    return ApiResponse(
        data=ContributionResponse.model_validate(contribution),
        message="Contribution created successfully",
    )


@router.get("/{contribution_id}", response_model=ApiResponse[ContributionResponse])
async def get_contribution(
    contribution_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[ContributionResponse]:
    """Get contribution details."""
    contribution = await contribution_service.get_contribution(db, contribution_id)
    return ApiResponse(data=ContributionResponse.model_validate(contribution))
