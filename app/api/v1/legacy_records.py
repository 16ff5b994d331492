"""Legacy record reconciliation endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db
from app.schemas.common import ApiResponse
from app.schemas.contribution import ContributionResponse
from app.schemas.legacy import (
    LegacyBulkMatchRequest,
    LegacyBulkUnmatchRequest,
    LegacyMatchRequest,
    LegacyRecordResponse,
    LegacyUnmatchRequest,
)
from app.services.legacy_service import legacy_service

router = APIRouter()


@router.post("/match", response_model=ApiResponse[dict])
async def match_legacy_record(
    match_data: LegacyMatchRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[dict]:
    """Link a legacy record to a user by creating a completed contribution."""
    record, contribution = await legacy_service.match(db, match_data)
    return ApiResponse(
        data={
            "legacy_record": LegacyRecordResponse.model_validate(record).model_dump(mode="json"),
            "contribution": ContributionResponse.model_validate(contribution).model_dump(mode="json"),
        },
        message="Legacy record matched successfully",
    )


@router.post("/unmatch", response_model=ApiResponse[LegacyRecordResponse])
async def unmatch_legacy_record(
    unmatch_data: LegacyUnmatchRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[LegacyRecordResponse]:
    """Unlink a legacy record and delete its contribution."""
    record = await legacy_service.unmatch(db, unmatch_data)
    return ApiResponse(
        data=LegacyRecordResponse.model_validate(record),
        message="Legacy record unmatched successfully",
    )


@router.post("/bulk-match", response_model=ApiResponse[list[LegacyRecordResponse]])
async def bulk_match_legacy_records(
    match_data: LegacyBulkMatchRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[list[LegacyRecordResponse]]:
    """Link several legacy records to one user in a single transaction."""
    records = await legacy_service.bulk_match(db, match_data)
    return ApiResponse(
        data=[LegacyRecordResponse.model_validate(record) for record in records],
        message="Bulk match completed successfully",
    )


@router.post("/bulk-unmatch", response_model=ApiResponse[list[LegacyRecordResponse]])
async def bulk_unmatch_legacy_records(
    unmatch_data: LegacyBulkUnmatchRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[list[LegacyRecordResponse]]:
    """Unlink several legacy records in a single transaction."""
    records = await legacy_service.bulk_unmatch(db, unmatch_data)
    return ApiResponse(
        data=[LegacyRecordResponse.model_validate(record) for record in records],
        message=f"Successfully unmatched {len(records)} legacy records",
    )
