"""ToyyibPay payment gateway adapter.

ToyyibPay integration (Malaysia, FPX).
Documentation: https://toyyibpay.com/apireference/
"""

import hashlib
import hmac
import logging

import httpx

from app.gateways.base import (
    CallbackResult,
    GatewayType,
    PaymentGateway,
    PaymentResult,
)
from app.utils.money import ringgit_to_sen

logger = logging.getLogger(__name__)

SANDBOX_URL = "https://dev.toyyibpay.com"
PRODUCTION_URL = "https://toyyibpay.com"

# Callback status codes
STATUS_MAP = {
    "1": "completed",
    "2": "pending",
    "3": "failed",
}


def compute_callback_hash(secret_key: str, status: str, order_id: str, refno: str) -> str:
    """ToyyibPay callback hash: md5(secret + status + order_id + refno + "ok")."""
    source = f"{secret_key}{status}{order_id}{refno}ok"
    return hashlib.md5(source.encode()).hexdigest()


class ToyyibPayGateway(PaymentGateway):
    """ToyyibPay payment gateway implementation."""

    def __init__(
        self,
        secret_key: str,
        category_code: str,
        is_sandbox: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(is_sandbox=is_sandbox, transport=transport)
        self.secret_key = secret_key
        self.category_code = category_code
        self.base_url = SANDBOX_URL if is_sandbox else PRODUCTION_URL

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.TOYYIBPAY

    def payment_url(self, bill_code: str) -> str:
        return f"{self.base_url}/{bill_code}"

    async def _post(self, endpoint: str, data: dict[str, str]) -> httpx.Response:
        async with self._client() as client:
            return await client.post(f"{self.base_url}/index.php/api/{endpoint}", data=data)

    async def create_payment(
        self,
        amount: int,
        reference_id: str,
        description: str,
        payer_name: str,
        callback_url: str,
        redirect_url: str,
        payer_email: str | None = None,
        payer_mobile: str | None = None,
    ) -> PaymentResult:
        """Create a ToyyibPay bill."""
        data = {
            "userSecretKey": self.secret_key,
            "categoryCode": self.category_code,
            "billName": description[:30],
            "billDescription": description[:100],
            "billPriceSetting": "1",  # Fixed price
            "billPayorInfo": "1",  # Payer info required
            "billAmount": str(amount),
            "billReturnUrl": redirect_url,
            "billCallbackUrl": callback_url,
            "billExternalReferenceNo": reference_id,
            "billTo": payer_name,
            "billEmail": payer_email or "",
            "billPhone": payer_mobile or "",
            "billSplitPayment": "0",
            "billSplitPaymentArgs": "",
            "billPaymentChannel": "0",  # FPX
            "billChargeToCustomer": "1",
        }

        try:
            response = await self._post("createBill", data)
        except httpx.HTTPError as e:
            logger.error(f"ToyyibPay create bill failed: {e}")
            return PaymentResult(success=False, error_message=str(e))

        if response.status_code != 200:
            return PaymentResult(
                success=False,
                error_message=f"ToyyibPay API error: {response.status_code} - {response.text}",
            )

        body = response.json()
        # The API answers with a one-element list on success
        first = body[0] if isinstance(body, list) and body else body
        if not isinstance(first, dict) or not first.get("BillCode"):
            return PaymentResult(
                success=False,
                error_message="ToyyibPay did not return a bill code",
                raw_response=body,
            )

        bill_code = first["BillCode"]
        return PaymentResult(
            success=True,
            transaction_id=bill_code,
            payment_url=self.payment_url(bill_code),
            status="pending",
            raw_response=body,
        )

    async def get_payment_status(self, transaction_id: str) -> PaymentResult:
        """Fetch transactions for a bill code."""
        try:
            response = await self._post("getBillTransactions", {"billCode": transaction_id})
        except httpx.HTTPError as e:
            return PaymentResult(success=False, error_message=str(e))

        if response.status_code != 200:
            return PaymentResult(
                success=False,
                error_message=f"ToyyibPay API error: {response.status_code} - {response.text}",
            )

        transactions = response.json()
        status = "pending"
        if isinstance(transactions, list) and transactions:
            status = STATUS_MAP.get(str(transactions[0].get("billpaymentStatus")), "pending")
        return PaymentResult(
            success=True,
            transaction_id=transaction_id,
            payment_url=self.payment_url(transaction_id),
            status=status,
            raw_response=transactions,
        )

    async def check_credentials(self) -> PaymentResult:
        """Fetch the configured category."""
        try:
            response = await self._post(
                "getCategoryDetails",
                {"userSecretKey": self.secret_key, "categoryCode": self.category_code},
            )
        except httpx.HTTPError as e:
            return PaymentResult(success=False, error_message=str(e))

        if response.status_code != 200:
            return PaymentResult(
                success=False,
                error_message=f"ToyyibPay API error: {response.status_code} - {response.text}",
            )
        if not response.text.strip():
            return PaymentResult(success=False, error_message="ToyyibPay API returned empty response")

        try:
            body = response.json()
        except ValueError:
            return PaymentResult(
                success=False,
                error_message=f"ToyyibPay API returned invalid JSON: {response.text}",
            )
        return PaymentResult(success=True, raw_response=body)

    def verify_callback(self, data: dict[str, str], signature: str | None = None) -> bool:
        """Verify the ``hash`` field of a callback."""
        received = signature or data.get("hash")
        if not received:
            return False
        expected = compute_callback_hash(
            self.secret_key,
            data.get("status", ""),
            data.get("order_id", ""),
            data.get("refno", ""),
        )
        return hmac.compare_digest(expected, received)

    def parse_callback(self, data: dict[str, str]) -> CallbackResult:
        status = STATUS_MAP.get(data.get("status", ""), "failed")
        amount = ringgit_to_sen(data["amount"]) if status == "completed" and data.get("amount") else None
        return CallbackResult(
            reference=data.get("billcode", ""),
            status=status,
            amount=amount,
            transaction_id=data.get("transaction_id") or data.get("refno"),
        )
