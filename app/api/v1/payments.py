"""Payment endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db
from app.schemas.common import ApiResponse
from app.schemas.payment import PaymentCreate, PaymentCreateResponse, PaymentStatusResponse
from app.services.payment_service import payment_service

router = APIRouter()


@router.post(
    "/create",
    response_model=ApiResponse[PaymentCreateResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_payment(
    payment_data: PaymentCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[PaymentCreateResponse]:
    """Create a gateway bill for a pending contribution."""
    _, result = await payment_service.create_payment(db, payment_data)
    return ApiResponse(
        data=PaymentCreateResponse(
            payment_id=result.transaction_id,
            payment_url=result.payment_url,
            provider_type=payment_data.provider_type,
        ),
        message="Payment created successfully",
    )


@router.get("/status", response_model=ApiResponse[PaymentStatusResponse])
async def get_payment_status(
    db: Annotated[AsyncSession, Depends(get_db)],
    contribution_id: UUID | None = Query(default=None, alias="contributionId"),
    payment_id: str | None = Query(default=None, alias="paymentId"),
) -> ApiResponse[PaymentStatusResponse]:
    """Check a contribution's payment status, asking the gateway when a bill exists."""
    contribution, gateway_result = await payment_service.get_status(
        db, contribution_id=contribution_id, payment_id=payment_id
    )

    provider_status = None
    message = None
    if gateway_result is not None:
        if gateway_result.success:
            provider_status = gateway_result.status
        else:
            message = gateway_result.error_message

    return ApiResponse(
        data=PaymentStatusResponse(
            contribution_id=contribution.id,
            status=contribution.status,
            payment_method=contribution.payment_method,
            payment_id=contribution.payment_reference,
            provider_status=provider_status,
            message=message,
        )
    )
