"""Gateway adapter tests against a mocked HTTP transport."""

import hashlib
import json
from urllib.parse import parse_qs

import httpx
import pytest

from app.gateways.billplz import (
    SANDBOX_URL as BILLPLZ_SANDBOX_URL,
    BillplzGateway,
    _source_string,
    compute_x_signature,
)
from app.gateways.toyyibpay import (
    SANDBOX_URL as TOYYIBPAY_SANDBOX_URL,
    ToyyibPayGateway,
    compute_callback_hash,
)


def _form(request: httpx.Request) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def _billplz(handler) -> BillplzGateway:
    return BillplzGateway(
        api_key="api-key",
        x_signature_key="sig-key",
        collection_id="inbmmepb",
        transport=httpx.MockTransport(handler),
    )


def _toyyibpay(handler) -> ToyyibPayGateway:
    return ToyyibPayGateway(
        secret_key="secret",
        category_code="gcbhict9",
        transport=httpx.MockTransport(handler),
    )


class TestBillplzSignature:
    def test_source_string_sorted_by_key(self):
        assert _source_string({"paid": "true", "id": "abc", "amount": "100"}) == "amount100|idabc|paidtrue"

    def test_bracketed_source_string(self):
        assert _source_string({"id": "abc", "paid": "true"}, bracketed=True) == (
            "billplz[id]abc|billplz[paid]true"
        )

    def test_encoded_source_string(self):
        assert _source_string({"name": "Ahmad Ali"}, encoded=True) == "nameAhmad%20Ali"

    def test_signature_ignores_x_signature_field(self):
        data = {"id": "abc", "paid": "true"}
        with_field = {**data, "x_signature": "whatever"}

        assert compute_x_signature(data, "key") == compute_x_signature(with_field, "key")

    def test_verify_accepts_all_variants(self):
        gateway = _billplz(lambda request: httpx.Response(200))
        data = {"id": "abc", "name": "Ahmad Ali", "paid": "true"}

        plain = compute_x_signature(data, "sig-key")
        bracketed = compute_x_signature(data, "sig-key", bracketed=True)

        assert gateway.verify_callback(data, plain)
        assert gateway.verify_callback(data, bracketed)
        assert gateway.verify_callback({**data, "x_signature": plain})

    def test_verify_rejects_wrong_key_and_tampering(self):
        gateway = _billplz(lambda request: httpx.Response(200))
        data = {"id": "abc", "paid": "true", "paid_amount": "5000"}
        signature = compute_x_signature(data, "sig-key")

        assert not gateway.verify_callback(data, compute_x_signature(data, "other-key"))
        assert not gateway.verify_callback({**data, "paid_amount": "1"}, signature)
        assert not gateway.verify_callback(data, None)


class TestBillplzApi:
    async def test_create_bill(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            assert str(request.url) == f"{BILLPLZ_SANDBOX_URL}/bills"
            assert request.headers["Authorization"].startswith("Basic ")
            form = _form(request)
            assert form["amount"] == "5000"
            assert form["collection_id"] == "inbmmepb"
            assert form["reference_1"] == "contribution-1"
            assert form["mobile"] == "60123456789"
            return httpx.Response(
                200,
                json={"id": "8x4cgkbz", "url": "https://www.billplz-sandbox.com/bills/8x4cgkbz", "paid": False, "state": "due"},
            )

        result = await _billplz(handler).create_payment(
            amount=5000,
            reference_id="contribution-1",
            description="Khairat contribution",
            payer_name="Ahmad bin Ali",
            callback_url="https://khairat.test/cb",
            redirect_url="https://khairat.test/return",
            payer_mobile="60123456789",
        )

        assert result.success
        assert result.transaction_id == "8x4cgkbz"
        assert result.payment_url == "https://www.billplz-sandbox.com/bills/8x4cgkbz"
        assert result.status == "pending"

    async def test_create_bill_api_error(self):
        gateway = _billplz(lambda request: httpx.Response(422, json={"error": {"type": "RecordInvalid"}}))

        result = await gateway.create_payment(
            amount=5000,
            reference_id="c",
            description="d",
            payer_name="n",
            callback_url="cb",
            redirect_url="rd",
        )

        assert not result.success
        assert result.error_message.startswith("Billplz API error: 422")

    async def test_create_bill_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        result = await _billplz(handler).create_payment(
            amount=5000,
            reference_id="c",
            description="d",
            payer_name="n",
            callback_url="cb",
            redirect_url="rd",
        )

        assert not result.success
        assert "connection refused" in result.error_message

    @pytest.mark.parametrize(
        ("bill", "status"),
        [
            ({"paid": True, "state": "paid"}, "completed"),
            ({"paid": False, "state": "due"}, "pending"),
            ({"paid": False, "state": "overdue"}, "failed"),
        ],
    )
    async def test_bill_status(self, bill, status):
        gateway = _billplz(lambda request: httpx.Response(200, json={"id": "abc", **bill}))

        result = await gateway.get_payment_status("abc")

        assert result.status == status

    def test_parse_callback(self):
        gateway = _billplz(lambda request: httpx.Response(200))

        paid = gateway.parse_callback({"id": "abc", "paid": "true", "paid_amount": "5000"})
        unpaid = gateway.parse_callback({"id": "abc", "paid": "false", "paid_amount": "0"})

        assert (paid.reference, paid.status, paid.amount) == ("abc", "completed", 5000)
        assert (unpaid.status, unpaid.amount) == ("failed", None)


class TestToyyibPay:
    def test_callback_hash(self):
        expected = hashlib.md5(b"secret1ORDER-1TP123ok").hexdigest()

        assert compute_callback_hash("secret", "1", "ORDER-1", "TP123") == expected

    def test_verify_callback(self):
        gateway = _toyyibpay(lambda request: httpx.Response(200))
        data = {"status": "1", "order_id": "ORDER-1", "refno": "TP123", "billcode": "k2m9qx7p"}
        data["hash"] = compute_callback_hash("secret", "1", "ORDER-1", "TP123")

        assert gateway.verify_callback(data)
        assert not gateway.verify_callback({**data, "status": "3"})

    def test_parse_callback_converts_ringgit(self):
        gateway = _toyyibpay(lambda request: httpx.Response(200))

        result = gateway.parse_callback({"billcode": "k2m9qx7p", "status": "1", "amount": "50.00", "refno": "TP123"})

        assert result.status == "completed"
        assert result.amount == 5000
        assert result.transaction_id == "TP123"

    async def test_create_bill(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == f"{TOYYIBPAY_SANDBOX_URL}/index.php/api/createBill"
            form = _form(request)
            assert form["userSecretKey"] == "secret"
            assert form["billAmount"] == "5000"
            assert form["billExternalReferenceNo"] == "contribution-1"
            return httpx.Response(200, content=json.dumps([{"BillCode": "k2m9qx7p"}]))

        result = await _toyyibpay(handler).create_payment(
            amount=5000,
            reference_id="contribution-1",
            description="Khairat contribution",
            payer_name="Ahmad bin Ali",
            callback_url="cb",
            redirect_url="rd",
        )

        assert result.success
        assert result.transaction_id == "k2m9qx7p"
        assert result.payment_url == f"{TOYYIBPAY_SANDBOX_URL}/k2m9qx7p"

    async def test_create_bill_without_code(self):
        gateway = _toyyibpay(lambda request: httpx.Response(200, json=[{"msg": "[KEY-DID-NOT-EXIST]"}]))

        result = await gateway.create_payment(
            amount=5000,
            reference_id="c",
            description="d",
            payer_name="n",
            callback_url="cb",
            redirect_url="rd",
        )

        assert not result.success
        assert result.error_message == "ToyyibPay did not return a bill code"

    async def test_bill_transactions_status(self):
        gateway = _toyyibpay(
            lambda request: httpx.Response(200, json=[{"billpaymentStatus": "1", "billpaymentAmount": "50.00"}])
        )

        result = await gateway.get_payment_status("k2m9qx7p")

        assert result.status == "completed"

    async def test_check_credentials_empty_body(self):
        gateway = _toyyibpay(lambda request: httpx.Response(200, content=b""))

        result = await gateway.check_credentials()

        assert not result.success
        assert result.error_message == "ToyyibPay API returned empty response"
