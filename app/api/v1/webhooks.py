"""Webhook endpoints for payment gateways.

Permanent failures answer 400 so the gateway stops retrying; database
errors surface as 500 and the gateway retries the delivery. The redirect
endpoints always answer with a redirect to the payment result page.
"""

import logging
from datetime import UTC, datetime
from typing import Annotated
from urllib.parse import parse_qs, urlencode

from fastapi import APIRouter, Depends, Header, Query, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db
from app.config import settings
from app.core.exceptions import WebhookRejected
from app.gateways.base import GatewayType
from app.services.callback_service import PaymentReturn, callback_service
from app.utils.validators import mask_sensitive_data

logger = logging.getLogger(__name__)

router = APIRouter()

SIGNATURE_FIELDS = {"x_signature", "hash"}


async def _read_form(request: Request) -> dict[str, str]:
    """Decode an x-www-form-urlencoded body into single values."""
    try:
        body = (await request.body()).decode("utf-8")
    except UnicodeDecodeError:
        raise WebhookRejected("Malformed callback body") from None
    return {key: values[0] for key, values in parse_qs(body, keep_blank_values=True).items()}


def _loggable(data: dict[str, str]) -> dict[str, str]:
    return {
        key: mask_sensitive_data(value) if key in SIGNATURE_FIELDS else value
        for key, value in data.items()
    }


@router.post("/billplz/callback", status_code=status.HTTP_200_OK)
async def billplz_callback(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    x_signature: str | None = Header(default=None, alias="X-Signature"),
) -> dict:
    """Handle a Billplz payment callback."""
    data = await _read_form(request)
    logger.info(f"Billplz callback received: {_loggable(data)}")

    try:
        outcome = await callback_service.handle_billplz(db, data, x_signature)
    except WebhookRejected as e:
        await db.rollback()
        await callback_service.record_rejection(db, GatewayType.BILLPLZ, data, e.detail)
        raise

    return {
        "success": True,
        "message": "Callback processed successfully",
        "outcome": outcome.outcome,
    }


@router.get("/billplz/callback")
async def billplz_callback_probe() -> dict:
    """Liveness probe for the Billplz callback URL."""
    return {
        "message": "Billplz callback endpoint is active",
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.post("/toyyibpay/callback", status_code=status.HTTP_200_OK)
async def toyyibpay_callback(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    mosque_id: str | None = Query(default=None),
) -> dict:
    """Handle a ToyyibPay payment callback."""
    data = await _read_form(request)
    logger.info(f"ToyyibPay callback received for mosque {mosque_id}: {_loggable(data)}")

    try:
        outcome = await callback_service.handle_toyyibpay(db, data, mosque_id)
    except WebhookRejected as e:
        await db.rollback()
        await callback_service.record_rejection(db, GatewayType.TOYYIBPAY, data, e.detail)
        raise

    return {
        "success": True,
        "message": "Callback processed successfully",
        "outcome": outcome.outcome,
    }


@router.get("/toyyibpay/callback")
async def toyyibpay_callback_probe() -> dict:
    """Liveness probe for the ToyyibPay callback URL."""
    return {
        "message": "ToyyibPay callback endpoint is active",
        "timestamp": datetime.now(UTC).isoformat(),
    }


def _redirect_to_result(result: str, message: str, **params: str) -> RedirectResponse:
    query = urlencode({"status": result, "message": message, **params})
    return RedirectResponse(
        f"{settings.app_base_url}{settings.payment_result_path}?{query}",
        status_code=status.HTTP_303_SEE_OTHER,
    )


def _payment_result(landing: PaymentReturn) -> RedirectResponse:
    contribution = landing.contribution
    return _redirect_to_result(
        landing.status,
        landing.message,
        contributionId=str(contribution.id),
        paymentId=landing.payment_id,
        amount=str(contribution.amount),
        payerName=contribution.contributor_name or "",
    )


@router.get("/billplz/redirect")
async def billplz_redirect(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RedirectResponse:
    """Send the payer on to the result page after a Billplz payment."""
    data = {
        key[len("billplz[") : -1]: value
        for key, value in request.query_params.items()
        if key.startswith("billplz[") and key.endswith("]")
    }
    logger.info(f"Billplz redirect received: {_loggable(data)}")

    try:
        landing = await callback_service.handle_billplz_return(db, data)
    except WebhookRejected as e:
        logger.warning(f"Billplz redirect rejected: {e.detail}")
        return _redirect_to_result("error", e.detail)
    return _payment_result(landing)


@router.get("/toyyibpay/redirect")
async def toyyibpay_redirect(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RedirectResponse:
    """Send the payer on to the result page after a ToyyibPay payment."""
    data = dict(request.query_params)
    logger.info(f"ToyyibPay redirect received: {data}")

    try:
        landing = await callback_service.handle_toyyibpay_return(db, data)
    except WebhookRejected as e:
        logger.warning(f"ToyyibPay redirect rejected: {e.detail}")
        return _redirect_to_result("error", e.detail)
    return _payment_result(landing)
