"""Base payment gateway interface.

All gateway adapters must implement this interface.
Business logic should NOT live in adapters - only gateway communication.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

import httpx

from app.config import settings


class GatewayType(str, Enum):
    """Supported payment gateways."""

    BILLPLZ = "billplz"
    TOYYIBPAY = "toyyibpay"


@dataclass
class PaymentResult:
    """Result of a payment operation."""

    success: bool
    transaction_id: str | None = None
    payment_url: str | None = None
    status: str | None = None  # completed, pending, failed (normalised)
    error_message: str | None = None
    raw_response: dict | list | None = None


@dataclass
class CallbackResult:
    """Normalised view of an inbound gateway callback."""

    reference: str
    status: str  # completed, pending, failed
    amount: int | None = None  # in sen, when the gateway reports it
    transaction_id: str | None = None


class PaymentGateway(ABC):
    """Abstract base class for payment gateways."""

    def __init__(
        self,
        is_sandbox: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.sandbox = is_sandbox
        self._transport = transport

    @property
    def is_sandbox(self) -> bool:
        """Explicit sandbox flag for external checks."""
        return self.sandbox

    @property
    @abstractmethod
    def gateway_type(self) -> GatewayType:
        """Return the gateway type."""
        pass

    def _client(self, **kwargs) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport,
            timeout=settings.gateway_timeout_seconds,
            **kwargs,
        )

    @abstractmethod
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
        """Create a bill with the gateway.

        Args:
            amount: Amount in sen
            reference_id: Internal reference (contribution id)
            description: Bill description shown to the payer
            payer_name: Name printed on the bill
            callback_url: Server-to-server notification URL
            redirect_url: Where the payer's browser returns to
            payer_email: Optional payer e-mail
            payer_mobile: Optional payer phone number

        Returns:
            PaymentResult carrying the gateway bill id and payment URL
        """
        pass

    @abstractmethod
    async def get_payment_status(self, transaction_id: str) -> PaymentResult:
        """Look up a bill and normalise its status."""
        pass

    @abstractmethod
    async def check_credentials(self) -> PaymentResult:
        """Make a cheap authenticated call to confirm the credentials work."""
        pass

    @abstractmethod
    def verify_callback(self, data: dict[str, str], signature: str | None = None) -> bool:
        """Verify the authenticity of a callback payload.

        Args:
            data: Decoded form fields of the callback
            signature: Signature sent out-of-band (e.g. a header), if any

        Returns:
            True when the payload was produced by the gateway
        """
        pass

    @abstractmethod
    def parse_callback(self, data: dict[str, str]) -> CallbackResult:
        """Map gateway callback fields to a normalised result."""
        pass
