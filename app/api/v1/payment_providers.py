"""Mosque payment provider administration endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db
from app.core.exceptions import NotFoundError, ValidationError
from app.schemas.common import ApiResponse
from app.schemas.payment import (
    PaymentProviderResponse,
    PaymentProvidersOverview,
    PaymentProviderTest,
    PaymentProviderUpsert,
)
from app.services.gateway_service import gateway_service
from app.services.payment_provider_service import payment_provider_service, to_response

router = APIRouter()


@router.get("", response_model=PaymentProvidersOverview)
async def get_payment_providers(
    db: Annotated[AsyncSession, Depends(get_db)],
    mosque_id: UUID = Query(alias="mosqueId"),
    requested_by: UUID = Query(alias="requestedBy"),
) -> PaymentProvidersOverview:
    """List a mosque's payment providers (credentials masked)."""
    return await payment_provider_service.get_overview(db, mosque_id, requested_by)


async def _upsert(
    provider_data: PaymentProviderUpsert, db: AsyncSession
) -> ApiResponse[PaymentProviderResponse]:
    provider = await payment_provider_service.upsert(db, provider_data)
    return ApiResponse(data=to_response(provider), message="Payment provider saved successfully")


@router.post("", response_model=ApiResponse[PaymentProviderResponse])
async def create_payment_provider(
    provider_data: PaymentProviderUpsert,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[PaymentProviderResponse]:
    """Create or update a payment provider."""
    return await _upsert(provider_data, db)


@router.put("", response_model=ApiResponse[PaymentProviderResponse])
async def update_payment_provider(
    provider_data: PaymentProviderUpsert,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[PaymentProviderResponse]:
    """Create or update a payment provider."""
    return await _upsert(provider_data, db)


@router.post("/test", response_model=ApiResponse[dict])
async def test_payment_provider(
    test_data: PaymentProviderTest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApiResponse[dict]:
    """Check credentials against the gateway.

    Uses the credentials in the body when given, otherwise the mosque's
    stored ones.
    """
    if test_data.api_key or test_data.secret_key:
        gateway = gateway_service.build_unsaved_gateway(
            test_data.provider_type,
            is_sandbox=test_data.is_sandbox,
            api_key=test_data.api_key,
            collection_id=test_data.collection_id,
            secret_key=test_data.secret_key,
            category_code=test_data.category_code,
        )
    else:
        if not test_data.mosque_id:
            raise ValidationError("Mosque ID or credentials are required")
        provider = await gateway_service.get_provider(
            db, test_data.mosque_id, test_data.provider_type, active_only=False
        )
        if not provider:
            raise NotFoundError("Payment provider")
        gateway = gateway_service.build_gateway(provider)

    result = await gateway.check_credentials()
    if not result.success:
        raise ValidationError(result.error_message or "Connection test failed")

    info = result.raw_response if isinstance(result.raw_response, dict) else {}
    return ApiResponse(
        data={key: info[key] for key in ("id", "title", "status") if key in info},
        message="Connection successful",
    )
