"""Per-mosque payment provider credential management."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.encryption import encrypt_sensitive
from app.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from app.models.mosque import Mosque
from app.models.payment import PaymentProvider
from app.schemas.payment import (
    PaymentProviderResponse,
    PaymentProvidersOverview,
    PaymentProviderUpsert,
)
from app.services.audit_service import audit_service

logger = logging.getLogger(__name__)


def to_response(provider: PaymentProvider) -> PaymentProviderResponse:
    """Masked view of a provider row."""
    return PaymentProviderResponse(
        id=provider.id,
        mosque_id=provider.mosque_id,
        provider_type=provider.provider_type,
        is_active=provider.is_active,
        is_sandbox=provider.is_sandbox,
        billplz_collection_id=provider.billplz_collection_id,
        toyyibpay_category_code=provider.toyyibpay_category_code,
        has_billplz_api_key=provider.billplz_api_key_encrypted is not None,
        has_billplz_x_signature_key=provider.billplz_x_signature_key_encrypted is not None,
        has_toyyibpay_secret_key=provider.toyyibpay_secret_key_encrypted is not None,
        updated_at=provider.updated_at,
    )


class PaymentProviderService:
    """Stores gateway credentials encrypted and bound to their mosque."""

    async def _get_owned_mosque(self, db: AsyncSession, mosque_id: UUID, user_id: UUID) -> Mosque:
        mosque = await db.get(Mosque, mosque_id)
        if not mosque:
            raise NotFoundError("Mosque")
        if mosque.admin_id != user_id:
            raise AuthorizationError("Only the mosque admin can manage payment providers")
        return mosque

    async def get_overview(
        self, db: AsyncSession, mosque_id: UUID, requested_by: UUID
    ) -> PaymentProvidersOverview:
        """Summarise the providers configured for a mosque."""
        await self._get_owned_mosque(db, mosque_id, requested_by)
        result = await db.execute(
            select(PaymentProvider).where(PaymentProvider.mosque_id == mosque_id)
        )
        overview = PaymentProvidersOverview()
        for provider in result.scalars().all():
            if provider.provider_type == "billplz":
                overview.billplz = to_response(provider)
                overview.has_billplz = provider.is_active
            elif provider.provider_type == "toyyibpay":
                overview.toyyibpay = to_response(provider)
                overview.has_toyyibpay = provider.is_active
        return overview

    async def upsert(self, db: AsyncSession, data: PaymentProviderUpsert) -> PaymentProvider:
        """Create or update a provider; omitted secrets keep their stored value."""
        mosque = await self._get_owned_mosque(db, data.mosque_id, data.updated_by)
        context = str(mosque.id)

        provider = (
            await db.execute(
                select(PaymentProvider).where(
                    PaymentProvider.mosque_id == mosque.id,
                    PaymentProvider.provider_type == data.provider_type,
                )
            )
        ).scalar_one_or_none()
        created = provider is None
        if created:
            provider = PaymentProvider(mosque_id=mosque.id, provider_type=data.provider_type)
            db.add(provider)

        if data.provider_type == "billplz":
            if data.billplz_api_key:
                provider.billplz_api_key_encrypted = encrypt_sensitive(data.billplz_api_key, context)
            if data.billplz_x_signature_key:
                provider.billplz_x_signature_key_encrypted = encrypt_sensitive(
                    data.billplz_x_signature_key, context
                )
            if data.billplz_collection_id:
                provider.billplz_collection_id = data.billplz_collection_id
            complete = bool(
                provider.billplz_api_key_encrypted
                and provider.billplz_x_signature_key_encrypted
                and provider.billplz_collection_id
            )
            if data.is_active and not complete:
                raise ValidationError(
                    "API Key, X-Signature Key, and Collection ID are required for active Billplz provider"
                )
        else:
            if data.toyyibpay_secret_key:
                provider.toyyibpay_secret_key_encrypted = encrypt_sensitive(
                    data.toyyibpay_secret_key, context
                )
            if data.toyyibpay_category_code:
                provider.toyyibpay_category_code = data.toyyibpay_category_code
            complete = bool(
                provider.toyyibpay_secret_key_encrypted and provider.toyyibpay_category_code
            )
            if data.is_active and not complete:
                raise ValidationError(
                    "Secret Key and Category Code are required for active ToyyibPay provider"
                )

        provider.is_active = data.is_active
        provider.is_sandbox = data.is_sandbox
        await db.flush()
        await db.refresh(provider)

        await audit_service.log_action(
            db,
            user_id=data.updated_by,
            action="payment_provider_upsert",
            resource_type="payment_provider",
            resource_id=provider.id,
            new_values={
                "provider_type": provider.provider_type,
                "is_active": provider.is_active,
                "is_sandbox": provider.is_sandbox,
                "created": created,
            },
        )
        logger.info(
            f"Payment provider {provider.provider_type} saved for mosque {mosque.id} "
            f"(active={provider.is_active})"
        )
        return provider


payment_provider_service = PaymentProviderService()
