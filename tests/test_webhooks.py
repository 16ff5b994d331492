"""Gateway callback reconciliation tests."""

from uuid import uuid4

from sqlalchemy import select

from app.gateways.billplz import compute_x_signature
from app.gateways.toyyibpay import compute_callback_hash
from app.models.contribution import Contribution
from app.models.payment import PaymentCallbackLog
from tests.conftest import BILLPLZ_X_SIGNATURE_KEY, TOYYIBPAY_SECRET_KEY

BILLPLZ_URL = "/api/v1/webhooks/billplz/callback"
TOYYIBPAY_URL = "/api/v1/webhooks/toyyibpay/callback"


def billplz_payload(bill_id: str = "8x4cgkbz", paid: bool = True) -> dict[str, str]:
    return {
        "id": bill_id,
        "collection_id": "inbmmepb",
        "paid": "true" if paid else "false",
        "state": "paid" if paid else "due",
        "amount": "5000",
        "paid_amount": "5000" if paid else "0",
        "due_at": "2026-10-18",
        "email": "ahmad@example.my",
        "mobile": "+60123456789",
        "name": "AHMAD BIN ALI",
        "url": f"https://www.billplz-sandbox.com/bills/{bill_id}",
        "paid_at": "2026-10-18 10:15:00 +0800" if paid else "",
    }


def toyyibpay_payload(order_id: str, status: str = "1", refno: str = "TP2610184412") -> dict[str, str]:
    return {
        "refno": refno,
        "status": status,
        "reason": "Approved",
        "billcode": "k2m9qx7p",
        "order_id": order_id,
        "amount": "50.00",
        "transaction_time": "2026-10-18 10:15:00",
        "hash": compute_callback_hash(TOYYIBPAY_SECRET_KEY, status, order_id, refno),
    }


async def _callback_logs(session_factory) -> list[PaymentCallbackLog]:
    async with session_factory() as session:
        result = await session.execute(
            select(PaymentCallbackLog).order_by(PaymentCallbackLog.created_at)
        )
        return list(result.scalars().all())


async def test_billplz_paid_callback_completes_contribution(
    client, session_factory, reload, billplz_provider, billplz_contribution
):
    data = billplz_payload()

    response = await client.post(
        BILLPLZ_URL,
        data=data,
        headers={"X-Signature": compute_x_signature(data, BILLPLZ_X_SIGNATURE_KEY)},
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Callback processed successfully",
        "outcome": "applied",
    }
    stored = await reload(Contribution, billplz_contribution.id)
    assert stored.status == "completed"
    assert stored.amount == 5000

    logs = await _callback_logs(session_factory)
    assert [log.outcome for log in logs] == ["applied"]
    assert logs[0].contribution_id == billplz_contribution.id


async def test_billplz_redelivery_is_idempotent(
    client, session_factory, reload, billplz_provider, billplz_contribution
):
    data = billplz_payload()
    headers = {"X-Signature": compute_x_signature(data, BILLPLZ_X_SIGNATURE_KEY)}

    first = await client.post(BILLPLZ_URL, data=data, headers=headers)
    second = await client.post(BILLPLZ_URL, data=data, headers=headers)

    assert first.json()["outcome"] == "applied"
    assert second.status_code == 200
    assert second.json()["outcome"] == "duplicate"
    assert (await reload(Contribution, billplz_contribution.id)).status == "completed"

    logs = await _callback_logs(session_factory)
    assert [log.outcome for log in logs] == ["applied", "duplicate"]
    assert logs[0].idempotency_key == logs[1].idempotency_key


async def test_billplz_signature_in_body(client, reload, billplz_provider, billplz_contribution):
    data = billplz_payload()
    data["x_signature"] = compute_x_signature(data, BILLPLZ_X_SIGNATURE_KEY)

    response = await client.post(BILLPLZ_URL, data=data)

    assert response.status_code == 200
    assert (await reload(Contribution, billplz_contribution.id)).status == "completed"


async def test_billplz_bracketed_signature_accepted(
    client, reload, billplz_provider, billplz_contribution
):
    data = billplz_payload()
    signature = compute_x_signature(data, BILLPLZ_X_SIGNATURE_KEY, bracketed=True)

    response = await client.post(BILLPLZ_URL, data=data, headers={"X-Signature": signature})

    assert response.status_code == 200
    assert (await reload(Contribution, billplz_contribution.id)).status == "completed"


async def test_billplz_invalid_signature_rejected(
    client, session_factory, reload, billplz_provider, billplz_contribution
):
    data = billplz_payload()
    signature = compute_x_signature(data, "not-the-mosque-key")

    response = await client.post(BILLPLZ_URL, data=data, headers={"X-Signature": signature})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid signature"}
    assert (await reload(Contribution, billplz_contribution.id)).status == "pending"

    logs = await _callback_logs(session_factory)
    assert [log.outcome for log in logs] == ["rejected"]
    assert logs[0].detail == "Invalid signature"
    assert logs[0].reference == "8x4cgkbz"


async def test_billplz_tampered_amount_rejected(
    client, reload, billplz_provider, billplz_contribution
):
    data = billplz_payload()
    signature = compute_x_signature(data, BILLPLZ_X_SIGNATURE_KEY)
    data["paid_amount"] = "1"

    response = await client.post(BILLPLZ_URL, data=data, headers={"X-Signature": signature})

    assert response.status_code == 400
    assert (await reload(Contribution, billplz_contribution.id)).amount == 5000


async def test_billplz_missing_signature_rejected(client, billplz_provider, billplz_contribution):
    response = await client.post(BILLPLZ_URL, data=billplz_payload())

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid signature"


async def test_billplz_unknown_bill(client, billplz_provider, billplz_contribution):
    data = billplz_payload(bill_id="doesnotexist")
    headers = {"X-Signature": compute_x_signature(data, BILLPLZ_X_SIGNATURE_KEY)}

    response = await client.post(BILLPLZ_URL, data=data, headers=headers)

    assert response.status_code == 400
    assert response.json()["error"] == "Contribution not found for bill"


async def test_billplz_missing_bill_id(client):
    response = await client.post(BILLPLZ_URL, data={"paid": "true"})

    assert response.status_code == 400
    assert response.json()["error"] == "Missing bill ID"


async def test_billplz_failed_then_paid(client, reload, billplz_provider, billplz_contribution):
    unpaid = billplz_payload(paid=False)
    await client.post(
        BILLPLZ_URL,
        data=unpaid,
        headers={"X-Signature": compute_x_signature(unpaid, BILLPLZ_X_SIGNATURE_KEY)},
    )
    assert (await reload(Contribution, billplz_contribution.id)).status == "failed"

    paid = billplz_payload()
    response = await client.post(
        BILLPLZ_URL,
        data=paid,
        headers={"X-Signature": compute_x_signature(paid, BILLPLZ_X_SIGNATURE_KEY)},
    )

    assert response.json()["outcome"] == "applied"
    assert (await reload(Contribution, billplz_contribution.id)).status == "completed"


async def test_billplz_late_failure_does_not_undo_payment(
    client, reload, billplz_provider, billplz_contribution
):
    paid = billplz_payload()
    await client.post(
        BILLPLZ_URL,
        data=paid,
        headers={"X-Signature": compute_x_signature(paid, BILLPLZ_X_SIGNATURE_KEY)},
    )

    unpaid = billplz_payload(paid=False)
    response = await client.post(
        BILLPLZ_URL,
        data=unpaid,
        headers={"X-Signature": compute_x_signature(unpaid, BILLPLZ_X_SIGNATURE_KEY)},
    )

    assert response.status_code == 200
    assert response.json()["outcome"] == "ignored"
    assert (await reload(Contribution, billplz_contribution.id)).status == "completed"


async def test_toyyibpay_success_callback(
    client, session_factory, reload, mosque, toyyibpay_provider, toyyibpay_contribution
):
    data = toyyibpay_payload(str(toyyibpay_contribution.id))

    response = await client.post(TOYYIBPAY_URL, params={"mosque_id": str(mosque.id)}, data=data)

    assert response.status_code == 200
    assert response.json()["outcome"] == "applied"
    stored = await reload(Contribution, toyyibpay_contribution.id)
    assert stored.status == "completed"
    assert stored.amount == 5000

    logs = await _callback_logs(session_factory)
    assert logs[0].gateway == "toyyibpay"
    assert logs[0].reference == "k2m9qx7p"


async def test_toyyibpay_pending_status_is_recorded(
    client, reload, mosque, toyyibpay_provider, toyyibpay_contribution
):
    data = toyyibpay_payload(str(toyyibpay_contribution.id), status="2")

    response = await client.post(TOYYIBPAY_URL, params={"mosque_id": str(mosque.id)}, data=data)

    assert response.status_code == 200
    assert response.json()["outcome"] == "duplicate"
    assert (await reload(Contribution, toyyibpay_contribution.id)).status == "pending"


async def test_toyyibpay_invalid_hash(
    client, session_factory, reload, mosque, toyyibpay_provider, toyyibpay_contribution
):
    data = toyyibpay_payload(str(toyyibpay_contribution.id))
    data["hash"] = "0" * 32

    response = await client.post(TOYYIBPAY_URL, params={"mosque_id": str(mosque.id)}, data=data)

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid callback hash"}
    assert (await reload(Contribution, toyyibpay_contribution.id)).status == "pending"
    assert [log.outcome for log in await _callback_logs(session_factory)] == ["rejected"]


async def test_toyyibpay_unknown_status(client, mosque, toyyibpay_provider, toyyibpay_contribution):
    data = toyyibpay_payload(str(toyyibpay_contribution.id), status="9")

    response = await client.post(TOYYIBPAY_URL, params={"mosque_id": str(mosque.id)}, data=data)

    assert response.status_code == 400
    assert response.json()["error"] == "Unknown payment status"


async def test_toyyibpay_requires_mosque_id(client, toyyibpay_contribution):
    response = await client.post(TOYYIBPAY_URL, data=toyyibpay_payload(str(toyyibpay_contribution.id)))

    assert response.status_code == 400
    assert response.json()["error"] == "Missing mosque ID"


async def test_toyyibpay_unconfigured_mosque(client, toyyibpay_contribution):
    response = await client.post(
        TOYYIBPAY_URL,
        params={"mosque_id": str(uuid4())},
        data=toyyibpay_payload(str(toyyibpay_contribution.id)),
    )

    assert response.status_code == 400
    assert response.json()["error"] == "ToyyibPay provider not configured for this mosque"


async def test_toyyibpay_bill_code_shared_with_legacy_invoice(
    client, db, reload, mosque, program, member, toyyibpay_provider, toyyibpay_contribution
):
    legacy = Contribution(
        mosque_id=mosque.id,
        program_id=program.id,
        contributor_id=member.id,
        contributor_name=member.full_name,
        amount=2400,
        status="completed",
        payment_method="legacy_record",
        payment_reference="k2m9qx7p",
    )
    db.add(legacy)
    await db.commit()
    legacy_id = legacy.id
    data = toyyibpay_payload(str(toyyibpay_contribution.id))

    response = await client.post(TOYYIBPAY_URL, params={"mosque_id": str(mosque.id)}, data=data)

    assert response.status_code == 200
    assert response.json()["outcome"] == "applied"
    assert (await reload(Contribution, toyyibpay_contribution.id)).status == "completed"
    assert (await reload(Contribution, legacy_id)).amount == 2400


async def test_callback_body_must_be_utf8(client):
    response = await client.post(
        BILLPLZ_URL,
        content=b"id=8x4cgkbz&name=\xff\xfe",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Malformed callback body"}


async def test_callback_probes(client):
    billplz = await client.get(BILLPLZ_URL)
    toyyibpay = await client.get(TOYYIBPAY_URL)

    assert billplz.status_code == 200
    assert billplz.json()["message"] == "Billplz callback endpoint is active"
    assert toyyibpay.json()["message"] == "ToyyibPay callback endpoint is active"
