"""Database models."""

from app.models.admin import AuditLog
from app.models.claim import Claim
from app.models.contribution import Contribution
from app.models.legacy import LegacyRecord
from app.models.mosque import ContributionProgram, Mosque
from app.models.payment import PaymentCallbackLog, PaymentProvider
from app.models.user import User

__all__ = [
    # User
    "User",
    # Mosque
    "Mosque",
    "ContributionProgram",
    # Khairat
    "Claim",
    "Contribution",
    "LegacyRecord",
    # Payment
    "PaymentProvider",
    "PaymentCallbackLog",
    # Admin
    "AuditLog",
]
