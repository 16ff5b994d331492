"""Payment gateway service.

Builds gateway adapters from a mosque's stored credentials.
No business logic here - only gateway coordination.
"""

import logging
from uuid import UUID

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.encryption import decrypt_sensitive
from app.core.exceptions import ValidationError
from app.gateways.base import GatewayType, PaymentGateway
from app.gateways.billplz import BillplzGateway
from app.gateways.toyyibpay import ToyyibPayGateway
from app.models.payment import PaymentProvider

logger = logging.getLogger(__name__)


def _is_production() -> bool:
    """Check if running in production environment."""
    return settings.environment == "production"


class GatewayService:
    """Service for managing payment gateway operations."""

    def __init__(self) -> None:
        # Swapped for httpx.MockTransport in tests
        self.transport: httpx.AsyncBaseTransport | None = None

    async def get_provider(
        self,
        db: AsyncSession,
        mosque_id: UUID,
        gateway_type: str | GatewayType,
        active_only: bool = True,
    ) -> PaymentProvider | None:
        """Fetch the mosque's provider row for a gateway."""
        gateway_type = GatewayType(gateway_type)
        query = select(PaymentProvider).where(
            PaymentProvider.mosque_id == mosque_id,
            PaymentProvider.provider_type == gateway_type.value,
        )
        if active_only:
            query = query.where(PaymentProvider.is_active.is_(True))
        return (await db.execute(query)).scalar_one_or_none()

    def build_gateway(self, provider: PaymentProvider) -> PaymentGateway:
        """Decrypt a provider's credentials and build its adapter."""
        context = str(provider.mosque_id)
        is_sandbox = provider.is_sandbox
        # Environment safety: never hit a live gateway outside production
        if not _is_production() and not is_sandbox:
            logger.warning(
                f"Forcing sandbox for {provider.provider_type} in {settings.environment}"
            )
            is_sandbox = True

        gateway_type = GatewayType(provider.provider_type)
        if gateway_type == GatewayType.BILLPLZ:
            if not (
                provider.billplz_api_key_encrypted
                and provider.billplz_x_signature_key_encrypted
                and provider.billplz_collection_id
            ):
                raise ValidationError("Billplz credentials are incomplete")
            return BillplzGateway(
                api_key=decrypt_sensitive(provider.billplz_api_key_encrypted, context),
                x_signature_key=decrypt_sensitive(
                    provider.billplz_x_signature_key_encrypted, context
                ),
                collection_id=provider.billplz_collection_id,
                is_sandbox=is_sandbox,
                transport=self.transport,
            )

        if not (provider.toyyibpay_secret_key_encrypted and provider.toyyibpay_category_code):
            raise ValidationError("ToyyibPay credentials are incomplete")
        return ToyyibPayGateway(
            secret_key=decrypt_sensitive(provider.toyyibpay_secret_key_encrypted, context),
            category_code=provider.toyyibpay_category_code,
            is_sandbox=is_sandbox,
            transport=self.transport,
        )

    def build_unsaved_gateway(
        self,
        gateway_type: str | GatewayType,
        is_sandbox: bool = True,
        api_key: str | None = None,
        collection_id: str | None = None,
        secret_key: str | None = None,
        category_code: str | None = None,
    ) -> PaymentGateway:
        """Build an adapter from credentials that are not stored yet."""
        if GatewayType(gateway_type) == GatewayType.BILLPLZ:
            if not api_key or not collection_id:
                raise ValidationError("Provider type, API key, and collection ID are required")
            # The signature key plays no part in a collection lookup
            return BillplzGateway(
                api_key=api_key,
                x_signature_key="",
                collection_id=collection_id,
                is_sandbox=is_sandbox or not _is_production(),
                transport=self.transport,
            )

        if not secret_key or not category_code:
            raise ValidationError("Provider type, secret key, and category code are required")
        return ToyyibPayGateway(
            secret_key=secret_key,
            category_code=category_code,
            is_sandbox=is_sandbox or not _is_production(),
            transport=self.transport,
        )

    def callback_url(self, gateway_type: GatewayType, mosque_id: UUID) -> str:
        base = f"{settings.app_base_url}{settings.api_prefix}/webhooks/{gateway_type.value}/callback"
        if gateway_type == GatewayType.TOYYIBPAY:
            return f"{base}?mosque_id={mosque_id}"
        return base

    def redirect_url(self, gateway_type: GatewayType, contribution_id: UUID) -> str:
        base = f"{settings.app_base_url}{settings.api_prefix}/webhooks/{gateway_type.value}/redirect"
        if gateway_type == GatewayType.TOYYIBPAY:
            # ToyyibPay appends status_id, billcode and order_id only
            return f"{base}?contribution_id={contribution_id}"
        return base


gateway_service = GatewayService()
