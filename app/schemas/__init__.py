"""Pydantic schemas for API validation."""

from app.schemas.claim import (
    ClaimApprove,
    ClaimCreate,
    ClaimListResponse,
    ClaimMarkPaid,
    ClaimReject,
    ClaimResponse,
    ClaimStatusUpdate,
)
from app.schemas.common import ApiResponse, CamelRequest, Pagination
from app.schemas.contribution import ContributionCreate, ContributionResponse
from app.schemas.legacy import (
    LegacyBulkMatchRequest,
    LegacyBulkUnmatchRequest,
    LegacyMatchRequest,
    LegacyRecordResponse,
    LegacyUnmatchRequest,
)
from app.schemas.payment import (
    PaymentCreate,
    PaymentCreateResponse,
    PaymentProviderResponse,
    PaymentProvidersOverview,
    PaymentProviderTest,
    PaymentProviderUpsert,
    PaymentStatusResponse,
)

__all__ = [
    # Common
    "ApiResponse",
    "CamelRequest",
    "Pagination",
    # Claim
    "ClaimCreate",
    "ClaimApprove",
    "ClaimReject",
    "ClaimMarkPaid",
    "ClaimStatusUpdate",
    "ClaimResponse",
    "ClaimListResponse",
    # Contribution
    "ContributionCreate",
    "ContributionResponse",
    # Legacy
    "LegacyMatchRequest",
    "LegacyUnmatchRequest",
    "LegacyBulkMatchRequest",
    "LegacyBulkUnmatchRequest",
    "LegacyRecordResponse",
    # Payment
    "PaymentCreate",
    "PaymentCreateResponse",
    "PaymentStatusResponse",
    "PaymentProviderUpsert",
    "PaymentProviderTest",
    "PaymentProviderResponse",
    "PaymentProvidersOverview",
]
