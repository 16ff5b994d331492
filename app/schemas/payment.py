"""Payment-related Pydantic schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.common import CamelRequest
from app.utils.validators import normalize_phone, validate_malaysian_phone

ProviderType = Literal["billplz", "toyyibpay"]


class PaymentCreate(CamelRequest):
    """Schema for creating a gateway bill for a pending contribution."""

    mosque_id: UUID
    contribution_id: UUID
    provider_type: ProviderType = "billplz"
    payer_name: str = Field(..., min_length=1, max_length=200)
    payer_email: str | None = None
    payer_mobile: str | None = None
    description: str = Field("Khairat contribution", max_length=200)

    @field_validator("payer_mobile")
    @classmethod
    def validate_mobile(cls, v: str | None) -> str | None:
        if not v:
            return None
        if not validate_malaysian_phone(v):
            raise ValueError("Invalid Malaysian mobile number")
        return normalize_phone(v)


class PaymentCreateResponse(BaseModel):
    """Schema for a created gateway bill."""

    model_config = ConfigDict(populate_by_name=True)

    payment_id: str = Field(alias="paymentId")
    payment_url: str | None = Field(alias="paymentUrl")
    provider_type: str = Field(alias="providerType")


class PaymentStatusResponse(BaseModel):
    """Schema for payment status check."""

    model_config = ConfigDict(populate_by_name=True)

    contribution_id: UUID = Field(alias="contributionId")
    status: str
    payment_method: str | None = Field(alias="paymentMethod")
    payment_id: str | None = Field(alias="paymentId")
    provider_status: str | None = Field(None, alias="providerStatus")
    message: str | None = None


class PaymentProviderUpsert(CamelRequest):
    """Schema for creating or updating a mosque's gateway credentials.

    Secret fields left out keep their stored value.
    """

    mosque_id: UUID
    provider_type: ProviderType
    updated_by: UUID
    is_active: bool = False
    is_sandbox: bool = True
    billplz_api_key: str | None = None
    billplz_x_signature_key: str | None = None
    billplz_collection_id: str | None = None
    toyyibpay_secret_key: str | None = None
    toyyibpay_category_code: str | None = None


class PaymentProviderTest(CamelRequest):
    """Schema for checking gateway credentials.

    Without explicit credentials the stored ones for the mosque are used.
    """

    mosque_id: UUID | None = None
    provider_type: ProviderType
    is_sandbox: bool = True
    api_key: str | None = None
    collection_id: str | None = None
    secret_key: str | None = None
    category_code: str | None = None


class PaymentProviderResponse(BaseModel):
    """Masked provider summary; secrets are never returned."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    mosque_id: UUID
    provider_type: str
    is_active: bool
    is_sandbox: bool
    billplz_collection_id: str | None
    toyyibpay_category_code: str | None
    has_billplz_api_key: bool = False
    has_billplz_x_signature_key: bool = False
    has_toyyibpay_secret_key: bool = False
    updated_at: datetime


class PaymentProvidersOverview(BaseModel):
    """All providers configured for a mosque."""

    model_config = ConfigDict(populate_by_name=True)

    has_billplz: bool = Field(False, alias="hasBillplz")
    has_toyyibpay: bool = Field(False, alias="hasToyyibpay")
    billplz: PaymentProviderResponse | None = None
    toyyibpay: PaymentProviderResponse | None = None
