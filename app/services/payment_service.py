"""Contribution payment service: bill creation and status lookup."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ExternalServiceError, NotFoundError, ValidationError
from app.gateways.base import GatewayType, PaymentResult
from app.models.contribution import Contribution
from app.schemas.payment import PaymentCreate
from app.services.contribution_service import contribution_service
from app.services.gateway_service import gateway_service

logger = logging.getLogger(__name__)


class PaymentService:
    """Service for paying contributions through Billplz or ToyyibPay."""

    async def create_payment(
        self, db: AsyncSession, data: PaymentCreate
    ) -> tuple[Contribution, PaymentResult]:
        """Create a gateway bill for a pending contribution.

        Raises:
            NotFoundError: Contribution not found for this mosque
            ValidationError: Contribution not pending or provider not configured
            ExternalServiceError: Gateway rejected the bill or was unreachable
        """
        contribution = await contribution_service.get_contribution(
            db, data.contribution_id, data.mosque_id
        )
        if contribution.status != "pending":
            raise ValidationError("Contribution is not in pending status")

        gateway_type = GatewayType(data.provider_type)
        provider = await gateway_service.get_provider(db, data.mosque_id, gateway_type)
        if not provider:
            raise ValidationError(
                f"{gateway_type.value} payment provider not configured for this mosque"
            )

        gateway = gateway_service.build_gateway(provider)
        result = await gateway.create_payment(
            amount=contribution.amount,
            reference_id=str(contribution.id),
            description=data.description,
            payer_name=data.payer_name,
            callback_url=gateway_service.callback_url(gateway_type, data.mosque_id),
            redirect_url=gateway_service.redirect_url(gateway_type, contribution.id),
            payer_email=data.payer_email,
            payer_mobile=data.payer_mobile,
        )
        if not result.success:
            logger.error(
                f"Bill creation failed for contribution {contribution.id}: {result.error_message}"
            )
            raise ExternalServiceError(gateway_type.value, result.error_message)

        contribution.payment_method = gateway_type.value
        contribution.payment_reference = result.transaction_id
        logger.info(
            f"{gateway_type.value} bill {result.transaction_id} created for contribution {contribution.id}"
        )
        return contribution, result

    async def get_status(
        self,
        db: AsyncSession,
        contribution_id: UUID | None = None,
        payment_id: str | None = None,
    ) -> tuple[Contribution, PaymentResult | None]:
        """Return a contribution and, where it has a bill, the gateway's view of it."""
        if contribution_id:
            contribution = await contribution_service.get_contribution(db, contribution_id)
        elif payment_id:
            contribution = (
                await db.execute(
                    select(Contribution).where(
                        Contribution.payment_reference == payment_id,
                        Contribution.payment_method.in_(
                            [GatewayType.BILLPLZ.value, GatewayType.TOYYIBPAY.value]
                        ),
                    )
                )
            ).scalars().first()
            if not contribution:
                raise NotFoundError("Payment")
        else:
            raise ValidationError("Contribution ID or payment ID is required")

        if not contribution.payment_reference or contribution.payment_method not in (
            GatewayType.BILLPLZ.value,
            GatewayType.TOYYIBPAY.value,
        ):
            return contribution, None

        provider = await gateway_service.get_provider(
            db, contribution.mosque_id, contribution.payment_method, active_only=False
        )
        if not provider:
            return contribution, None

        gateway = gateway_service.build_gateway(provider)
        return contribution, await gateway.get_payment_status(contribution.payment_reference)


payment_service = PaymentService()
