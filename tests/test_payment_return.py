"""Payer return (gateway redirect) tests."""

from urllib.parse import parse_qs, urlsplit
from uuid import uuid4

import httpx
from sqlalchemy import select

from app.gateways.billplz import compute_x_signature
from app.models.contribution import Contribution
from app.models.payment import PaymentCallbackLog
from tests.conftest import BILLPLZ_X_SIGNATURE_KEY

BILLPLZ_RETURN = "/api/v1/webhooks/billplz/redirect"
TOYYIBPAY_RETURN = "/api/v1/webhooks/toyyibpay/redirect"
RESULT_PAGE = "https://khairat.test/khairat/payment-result"


def billplz_return_params(paid: bool = True, key: str = BILLPLZ_X_SIGNATURE_KEY) -> dict[str, str]:
    data = {
        "id": "8x4cgkbz",
        "paid": "true" if paid else "false",
        "paid_at": "2026-10-18 10:15:00 +0800",
    }
    data["x_signature"] = compute_x_signature(data, key, bracketed=True)
    return {f"billplz[{name}]": value for name, value in data.items()}


def toyyibpay_return_params(contribution_id, status_id: str = "1") -> dict[str, str]:
    return {
        "status_id": status_id,
        "billcode": "k2m9qx7p",
        "order_id": str(contribution_id),
        "contribution_id": str(contribution_id),
    }


def bill_transactions(status: str):
    return lambda request: httpx.Response(
        200, json=[{"billName": "Khairat", "billpaymentStatus": status, "billpaymentAmount": "50.00"}]
    )


def landing(response: httpx.Response) -> dict[str, str]:
    """Query parameters of the result page the payer is sent to."""
    assert response.status_code == 303
    location = urlsplit(response.headers["location"])
    assert f"{location.scheme}://{location.netloc}{location.path}" == RESULT_PAGE
    return {name: values[0] for name, values in parse_qs(location.query).items()}


async def _callback_outcomes(session_factory) -> list[str]:
    async with session_factory() as session:
        result = await session.execute(
            select(PaymentCallbackLog.outcome).order_by(PaymentCallbackLog.created_at)
        )
        return list(result.scalars().all())


async def test_billplz_signed_return_completes_contribution(
    client, session_factory, reload, billplz_provider, billplz_contribution
):
    response = await client.get(BILLPLZ_RETURN, params=billplz_return_params())

    assert landing(response) == {
        "status": "success",
        "message": "Payment completed successfully",
        "contributionId": str(billplz_contribution.id),
        "paymentId": "8x4cgkbz",
        "amount": "5000",
        "payerName": "Ahmad bin Ali",
    }
    stored = await reload(Contribution, billplz_contribution.id)
    assert stored.status == "completed"
    assert stored.amount == 5000
    assert await _callback_outcomes(session_factory) == ["applied"]


async def test_billplz_callback_after_return_is_duplicate(
    client, billplz_provider, billplz_contribution
):
    await client.get(BILLPLZ_RETURN, params=billplz_return_params())

    data = {"id": "8x4cgkbz", "paid": "true", "paid_amount": "5000"}
    response = await client.post(
        "/api/v1/webhooks/billplz/callback",
        data=data,
        headers={"X-Signature": compute_x_signature(data, BILLPLZ_X_SIGNATURE_KEY)},
    )

    assert response.json()["outcome"] == "duplicate"


async def test_billplz_return_with_bad_signature_changes_nothing(
    client, session_factory, reload, billplz_provider, billplz_contribution
):
    response = await client.get(
        BILLPLZ_RETURN, params=billplz_return_params(key="not-the-mosque-key")
    )

    params = landing(response)
    assert params["status"] == "pending"
    assert params["message"] == "Payment is being processed"
    assert (await reload(Contribution, billplz_contribution.id)).status == "pending"
    assert await _callback_outcomes(session_factory) == []


async def test_billplz_unpaid_return_leaves_contribution_to_callback(
    client, reload, billplz_provider, billplz_contribution
):
    response = await client.get(BILLPLZ_RETURN, params=billplz_return_params(paid=False))

    assert landing(response)["status"] == "pending"
    assert (await reload(Contribution, billplz_contribution.id)).status == "pending"


async def test_billplz_return_without_bill_id(client):
    response = await client.get(BILLPLZ_RETURN)

    assert landing(response) == {"status": "error", "message": "Missing payment information"}


async def test_billplz_return_for_unknown_bill(client, billplz_provider):
    response = await client.get(BILLPLZ_RETURN, params=billplz_return_params())

    assert landing(response) == {"status": "error", "message": "Contribution not found"}


async def test_toyyibpay_return_confirmed_with_gateway(
    client, mock_gateway, session_factory, reload, toyyibpay_provider, toyyibpay_contribution
):
    captured = mock_gateway(bill_transactions("1"))

    response = await client.get(
        TOYYIBPAY_RETURN, params=toyyibpay_return_params(toyyibpay_contribution.id)
    )

    params = landing(response)
    assert params["status"] == "success"
    assert params["paymentId"] == "k2m9qx7p"
    assert captured[0].url.path.endswith("getBillTransactions")
    assert (await reload(Contribution, toyyibpay_contribution.id)).status == "completed"
    assert await _callback_outcomes(session_factory) == ["applied"]


async def test_toyyibpay_return_status_is_not_trusted(
    client, mock_gateway, session_factory, reload, toyyibpay_provider, toyyibpay_contribution
):
    mock_gateway(bill_transactions("2"))

    response = await client.get(
        TOYYIBPAY_RETURN, params=toyyibpay_return_params(toyyibpay_contribution.id, status_id="1")
    )

    assert landing(response)["status"] == "pending"
    assert (await reload(Contribution, toyyibpay_contribution.id)).status == "pending"
    assert await _callback_outcomes(session_factory) == []


async def test_toyyibpay_return_failed_payment(
    client, mock_gateway, reload, toyyibpay_provider, toyyibpay_contribution
):
    mock_gateway(bill_transactions("3"))

    response = await client.get(
        TOYYIBPAY_RETURN, params=toyyibpay_return_params(toyyibpay_contribution.id, status_id="3")
    )

    params = landing(response)
    assert params["status"] == "failed"
    assert params["message"] == "Payment was unsuccessful"
    assert (await reload(Contribution, toyyibpay_contribution.id)).status == "failed"


async def test_toyyibpay_return_when_gateway_unreachable(
    client, mock_gateway, reload, toyyibpay_provider, toyyibpay_contribution
):
    mock_gateway(lambda request: httpx.Response(500, text="Internal Server Error"))

    response = await client.get(
        TOYYIBPAY_RETURN, params=toyyibpay_return_params(toyyibpay_contribution.id)
    )

    assert landing(response)["status"] == "pending"
    assert (await reload(Contribution, toyyibpay_contribution.id)).status == "pending"


async def test_toyyibpay_return_requires_contribution(client, toyyibpay_contribution):
    params = toyyibpay_return_params(toyyibpay_contribution.id)
    del params["contribution_id"]

    response = await client.get(TOYYIBPAY_RETURN, params=params)

    assert landing(response) == {
        "status": "error",
        "message": "Missing contribution information",
    }


async def test_toyyibpay_return_bill_must_belong_to_contribution(
    client, toyyibpay_provider, toyyibpay_contribution
):
    response = await client.get(TOYYIBPAY_RETURN, params=toyyibpay_return_params(uuid4()))

    assert landing(response) == {"status": "error", "message": "Contribution not found"}
