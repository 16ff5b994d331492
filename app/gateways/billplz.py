"""Billplz payment gateway adapter.

Billplz API v3 integration (Malaysia, FPX).
Documentation: https://www.billplz.com/api
"""

import hashlib
import hmac
import logging
from urllib.parse import quote

import httpx

from app.gateways.base import (
    CallbackResult,
    GatewayType,
    PaymentGateway,
    PaymentResult,
)

logger = logging.getLogger(__name__)

SANDBOX_URL = "https://www.billplz-sandbox.com/api/v3"
PRODUCTION_URL = "https://www.billplz.com/api/v3"


def _encode_component(value: str) -> str:
    # Same character set as JavaScript's encodeURIComponent
    return quote(value, safe="-_.!~*'()")


def _source_string(data: dict[str, str], bracketed: bool = False, encoded: bool = False) -> str:
    items = []
    for key, value in data.items():
        if bracketed:
            key = f"billplz[{key}]"
        if encoded:
            value = _encode_component(value)
        items.append((key, value))
    return "|".join(f"{key}{value}" for key, value in sorted(items))


def compute_x_signature(data: dict[str, str], x_signature_key: str, bracketed: bool = False) -> str:
    """Compute the Billplz X-Signature for a payload.

    The source string is every ``key + value`` pair, sorted by key and
    joined with ``|``. The redirect flavour prefixes keys as ``billplz[key]``.
    """
    payload = {k: v for k, v in data.items() if k != "x_signature"}
    source = _source_string(payload, bracketed=bracketed)
    return hmac.new(x_signature_key.encode(), source.encode(), hashlib.sha256).hexdigest()


class BillplzGateway(PaymentGateway):
    """Billplz payment gateway implementation."""

    def __init__(
        self,
        api_key: str,
        x_signature_key: str,
        collection_id: str,
        is_sandbox: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(is_sandbox=is_sandbox, transport=transport)
        self.api_key = api_key
        self.x_signature_key = x_signature_key
        self.collection_id = collection_id
        self.base_url = SANDBOX_URL if is_sandbox else PRODUCTION_URL

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.BILLPLZ

    def _auth(self) -> httpx.BasicAuth:
        # API key as username, empty password
        return httpx.BasicAuth(self.api_key, "")

    @staticmethod
    def _normalise_state(bill: dict) -> str:
        if bill.get("paid") in (True, "true"):
            return "completed"
        if bill.get("state") in ("overdue", "deleted"):
            return "failed"
        return "pending"

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
        """Create a Billplz bill."""
        data = {
            "collection_id": self.collection_id,
            "name": payer_name,
            "amount": str(amount),
            "description": description[:200],
            "callback_url": callback_url,
            "redirect_url": redirect_url,
            "reference_1_label": "Contribution ID",
            "reference_1": reference_id,
        }
        if payer_email:
            data["email"] = payer_email
        if payer_mobile:
            data["mobile"] = payer_mobile

        try:
            async with self._client(auth=self._auth()) as client:
                response = await client.post(f"{self.base_url}/bills", data=data)
        except httpx.HTTPError as e:
            logger.error(f"Billplz create bill failed: {e}")
            return PaymentResult(success=False, error_message=str(e))

        if response.status_code not in (200, 201):
            return PaymentResult(
                success=False,
                error_message=f"Billplz API error: {response.status_code} - {response.text}",
                raw_response={"status_code": response.status_code},
            )

        bill = response.json()
        return PaymentResult(
            success=True,
            transaction_id=bill["id"],
            payment_url=bill.get("url"),
            status=self._normalise_state(bill),
            raw_response=bill,
        )

    async def get_payment_status(self, transaction_id: str) -> PaymentResult:
        """Fetch a bill by id."""
        try:
            async with self._client(auth=self._auth()) as client:
                response = await client.get(f"{self.base_url}/bills/{transaction_id}")
        except httpx.HTTPError as e:
            return PaymentResult(success=False, error_message=str(e))

        if response.status_code != 200:
            return PaymentResult(
                success=False,
                error_message=f"Billplz API error: {response.status_code} - {response.text}",
            )

        bill = response.json()
        return PaymentResult(
            success=True,
            transaction_id=transaction_id,
            payment_url=bill.get("url"),
            status=self._normalise_state(bill),
            raw_response=bill,
        )

    async def check_credentials(self) -> PaymentResult:
        """Fetch the configured collection."""
        try:
            async with self._client(auth=self._auth()) as client:
                response = await client.get(f"{self.base_url}/collections/{self.collection_id}")
        except httpx.HTTPError as e:
            return PaymentResult(success=False, error_message=str(e))

        if response.status_code != 200:
            return PaymentResult(
                success=False,
                error_message=f"Billplz API error: {response.status_code} - {response.text}",
            )
        return PaymentResult(success=True, raw_response=response.json())

    def verify_callback(self, data: dict[str, str], signature: str | None = None) -> bool:
        """Verify the X-Signature of a callback or redirect payload."""
        received = signature or data.get("x_signature")
        if not received:
            return False

        payload = {k: v for k, v in data.items() if k != "x_signature"}
        for bracketed in (False, True):
            for encoded in (False, True):
                source = _source_string(payload, bracketed=bracketed, encoded=encoded)
                expected = hmac.new(
                    self.x_signature_key.encode(), source.encode(), hashlib.sha256
                ).hexdigest()
                if hmac.compare_digest(expected, received):
                    return True
        return False

    def parse_callback(self, data: dict[str, str]) -> CallbackResult:
        paid = data.get("paid", "").lower() == "true"
        amount = None
        if paid and data.get("paid_amount", "").isdigit():
            amount = int(data["paid_amount"])
        return CallbackResult(
            reference=data.get("id", ""),
            status="completed" if paid else "failed",
            amount=amount,
            transaction_id=data.get("transaction_id"),
        )
