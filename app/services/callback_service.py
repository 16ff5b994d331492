"""Payment callback reconciliation.

Gateways deliver callbacks at least once. A callback is applied with a
conditional UPDATE keyed on the contribution's current status, so any
number of deliveries of the same (bill, status) pair converge to the
same row state.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import WebhookRejected
from app.core.idempotency import callback_idempotency_key
from app.database import utcnow
from app.domain.contribution_state import can_transition
from app.gateways.base import CallbackResult, GatewayType
from app.gateways.toyyibpay import STATUS_MAP
from app.models.contribution import Contribution
from app.models.payment import PaymentCallbackLog
from app.services.gateway_service import gateway_service

logger = logging.getLogger(__name__)


@dataclass
class CallbackOutcome:
    """What a callback did to its contribution."""

    outcome: str  # applied, duplicate, ignored
    contribution_id: UUID
    status: str


RESULT_MESSAGES = {
    "success": "Payment completed successfully",
    "pending": "Payment is being processed",
    "failed": "Payment was unsuccessful",
}


def _result_status(contribution_status: str) -> str:
    if contribution_status == "completed":
        return "success"
    if contribution_status == "failed":
        return "failed"
    return "pending"


@dataclass
class PaymentReturn:
    """What the payer is shown after the gateway sends their browser back."""

    status: str  # success, pending, failed
    contribution: Contribution
    payment_id: str

    @property
    def message(self) -> str:
        return RESULT_MESSAGES[self.status]


class CallbackService:
    """Verifies gateway callbacks and settles contributions."""

    async def _find_contribution(
        self, db: AsyncSession, gateway: GatewayType, reference: str, *criteria
    ) -> Contribution | None:
        # Legacy rows reuse payment_reference for invoice numbers
        result = await db.execute(
            select(Contribution).where(
                Contribution.payment_reference == reference,
                Contribution.payment_method == gateway.value,
                *criteria,
            )
        )
        return result.scalar_one_or_none()

    async def handle_billplz(
        self,
        db: AsyncSession,
        data: dict[str, str],
        signature: str | None = None,
    ) -> CallbackOutcome:
        """Process a Billplz callback.

        Raises:
            WebhookRejected: Missing bill id, unknown bill, no provider or bad signature
        """
        bill_id = data.get("id")
        if not bill_id:
            raise WebhookRejected("Missing bill ID")

        contribution = await self._find_contribution(db, GatewayType.BILLPLZ, bill_id)
        if not contribution:
            raise WebhookRejected("Contribution not found for bill")

        provider = await gateway_service.get_provider(
            db, contribution.mosque_id, GatewayType.BILLPLZ
        )
        if not provider:
            raise WebhookRejected("Billplz provider not configured for this mosque")

        gateway = gateway_service.build_gateway(provider)
        if not gateway.verify_callback(data, signature):
            logger.warning(f"Billplz callback with invalid signature for bill {bill_id}")
            raise WebhookRejected("Invalid signature")

        return await self._apply(db, GatewayType.BILLPLZ, contribution, gateway.parse_callback(data), data)

    async def handle_toyyibpay(
        self,
        db: AsyncSession,
        data: dict[str, str],
        mosque_id: str | None,
    ) -> CallbackOutcome:
        """Process a ToyyibPay callback.

        Raises:
            WebhookRejected: Missing fields, no provider, bad hash or unknown bill
        """
        if not mosque_id:
            raise WebhookRejected("Missing mosque ID")
        try:
            mosque_uuid = UUID(mosque_id)
        except ValueError:
            raise WebhookRejected("Invalid mosque ID") from None

        bill_code = data.get("billcode")
        if not bill_code:
            raise WebhookRejected("Missing bill code")

        provider = await gateway_service.get_provider(db, mosque_uuid, GatewayType.TOYYIBPAY)
        if not provider:
            raise WebhookRejected("ToyyibPay provider not configured for this mosque")

        gateway = gateway_service.build_gateway(provider)
        if not gateway.verify_callback(data):
            logger.warning(f"ToyyibPay callback with invalid hash for bill {bill_code}")
            raise WebhookRejected("Invalid callback hash")

        if data.get("status") not in STATUS_MAP:
            raise WebhookRejected("Unknown payment status")

        contribution = await self._find_contribution(
            db, GatewayType.TOYYIBPAY, bill_code, Contribution.mosque_id == mosque_uuid
        )
        if not contribution:
            raise WebhookRejected("Contribution not found for bill")

        return await self._apply(
            db, GatewayType.TOYYIBPAY, contribution, gateway.parse_callback(data), data
        )

    async def handle_billplz_return(
        self, db: AsyncSession, data: dict[str, str]
    ) -> PaymentReturn:
        """Process the ``billplz[...]`` parameters of a Billplz redirect.

        The redirect backs up a missed callback: a correctly signed paid
        result is applied, anything else leaves the contribution to the
        callback.

        Raises:
            WebhookRejected: Missing bill id or unknown bill
        """
        bill_id = data.get("id")
        if not bill_id:
            raise WebhookRejected("Missing payment information")

        contribution = await self._find_contribution(db, GatewayType.BILLPLZ, bill_id)
        if not contribution:
            raise WebhookRejected("Contribution not found")

        current = contribution.status
        provider = await gateway_service.get_provider(
            db, contribution.mosque_id, GatewayType.BILLPLZ
        )
        if not provider:
            return PaymentReturn(_result_status(current), contribution, bill_id)

        gateway = gateway_service.build_gateway(provider)
        if not gateway.verify_callback(data):
            logger.warning(f"Billplz redirect for bill {bill_id} failed signature verification")
            return PaymentReturn(_result_status(current), contribution, bill_id)

        result = gateway.parse_callback(data)
        if result.status == "completed":
            outcome = await self._apply(db, GatewayType.BILLPLZ, contribution, result, data)
            if outcome.outcome != "ignored":
                current = outcome.status
        return PaymentReturn(_result_status(current), contribution, bill_id)

    async def handle_toyyibpay_return(
        self, db: AsyncSession, data: dict[str, str]
    ) -> PaymentReturn:
        """Process a ToyyibPay redirect.

        The redirect is unsigned, so ``status_id`` is never trusted: the
        bill's transactions are fetched from ToyyibPay and a settled result
        is applied from there.

        Raises:
            WebhookRejected: Missing bill code or contribution, or unknown bill
        """
        bill_code = data.get("billcode")
        if not bill_code:
            raise WebhookRejected("Missing payment information")
        if not data.get("contribution_id"):
            raise WebhookRejected("Missing contribution information")
        try:
            contribution_id = UUID(data["contribution_id"])
        except ValueError:
            raise WebhookRejected("Contribution not found") from None

        contribution = await self._find_contribution(
            db, GatewayType.TOYYIBPAY, bill_code, Contribution.id == contribution_id
        )
        if not contribution:
            raise WebhookRejected("Contribution not found")

        current = contribution.status
        provider = await gateway_service.get_provider(
            db, contribution.mosque_id, GatewayType.TOYYIBPAY
        )
        if not provider:
            return PaymentReturn(_result_status(current), contribution, bill_code)

        gateway = gateway_service.build_gateway(provider)
        confirmed = await gateway.get_payment_status(bill_code)
        if not confirmed.success:
            logger.warning(
                f"Could not confirm ToyyibPay bill {bill_code} on redirect: {confirmed.error_message}"
            )
            return PaymentReturn(_result_status(current), contribution, bill_code)

        claimed = STATUS_MAP.get(data.get("status_id", ""), "pending")
        if claimed != confirmed.status:
            logger.warning(
                f"ToyyibPay redirect for bill {bill_code} says {claimed}, "
                f"gateway reports {confirmed.status}"
            )

        if confirmed.status in ("completed", "failed"):
            result = CallbackResult(
                reference=bill_code,
                status=confirmed.status,
                transaction_id=data.get("order_id") or None,
            )
            outcome = await self._apply(db, GatewayType.TOYYIBPAY, contribution, result, data)
            if outcome.outcome != "ignored":
                current = outcome.status
        return PaymentReturn(_result_status(current), contribution, bill_code)

    async def _apply(
        self,
        db: AsyncSession,
        gateway: GatewayType,
        contribution: Contribution,
        result: CallbackResult,
        payload: dict[str, str],
    ) -> CallbackOutcome:
        previous = contribution.status
        target = result.status

        if previous == target:
            outcome = "duplicate"
        elif not can_transition(previous, target):
            logger.warning(
                f"Ignoring {gateway.value} callback: contribution {contribution.id} "
                f"cannot move {previous} -> {target}"
            )
            outcome = "ignored"
        else:
            values: dict = {"status": target, "updated_at": utcnow()}
            if target == "completed":
                values["contributed_at"] = utcnow()
                if result.amount:
                    values["amount"] = result.amount
            written = await db.execute(
                update(Contribution)
                .where(Contribution.id == contribution.id, Contribution.status == previous)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            # A concurrent delivery may have settled the row first
            outcome = "applied" if written.rowcount else "duplicate"

        db.add(
            PaymentCallbackLog(
                gateway=gateway.value,
                reference=result.reference,
                mosque_id=contribution.mosque_id,
                contribution_id=contribution.id,
                payload=payload,
                outcome=outcome,
                idempotency_key=callback_idempotency_key(gateway.value, result.reference, target),
            )
        )
        logger.info(
            f"{gateway.value} callback for bill {result.reference}: {outcome} "
            f"(contribution {contribution.id}, {previous} -> {target})"
        )
        return CallbackOutcome(outcome=outcome, contribution_id=contribution.id, status=target)

    async def record_rejection(
        self,
        db: AsyncSession,
        gateway: GatewayType,
        payload: dict[str, str],
        detail: str,
    ) -> None:
        """Persist a rejected callback in its own transaction."""
        db.add(
            PaymentCallbackLog(
                gateway=gateway.value,
                reference=payload.get("id") or payload.get("billcode"),
                payload=payload,
                outcome="rejected",
                detail=detail,
            )
        )
        await db.commit()
        logger.warning(f"{gateway.value} callback rejected: {detail}")


callback_service = CallbackService()
