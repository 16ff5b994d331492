"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from app.api.v1 import (
    claims,
    contributions,
    legacy_records,
    payment_providers,
    payments,
    webhooks,
)

api_router = APIRouter()

# Claims
api_router.include_router(claims.router, prefix="/claims", tags=["Claims"])

# Contributions
api_router.include_router(contributions.router, prefix="/contributions", tags=["Contributions"])

# Payments
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])

# Admin
api_router.include_router(
    payment_providers.router, prefix="/admin/payment-providers", tags=["Admin"]
)

# Legacy records
api_router.include_router(legacy_records.router, prefix="/legacy-records", tags=["Legacy Records"])

# Webhooks
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])
