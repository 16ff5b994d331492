"""Append-only enforcement for audit records using SQLAlchemy events."""

import logging
from datetime import UTC, datetime

from sqlalchemy import event

from app.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

_registered = False


class ImmutabilityViolationError(ValidationError):
    """Raised when attempting to modify an append-only record."""

    def __init__(self, model_name: str, operation: str, record_id: str):
        self.model_name = model_name
        self.operation = operation
        self.record_id = record_id
        super().__init__(
            f"Immutability violation: Cannot {operation} {model_name} record {record_id}. "
            "Audit records are append-only."
        )


def _log_immutability_violation(model_name: str, operation: str, record_id: str) -> None:
    logger.error(
        f"IMMUTABILITY_VIOLATION: Attempted to {operation} {model_name} "
        f"record_id={record_id} at {datetime.now(UTC).isoformat()}"
    )


def _make_guard(model_name: str, operation: str):
    def guard(mapper, connection, target):
        _log_immutability_violation(model_name, operation, str(target.id))
        raise ImmutabilityViolationError(model_name, operation, str(target.id))

    return guard


def register_immutability_enforcement() -> None:
    """Register before_update/before_delete guards on append-only models.

    Safe to call more than once; listeners are attached a single time.
    """
    global _registered
    if _registered:
        return

    from app.models.admin import AuditLog
    from app.models.payment import PaymentCallbackLog

    for model in (AuditLog, PaymentCallbackLog):
        name = model.__name__
        event.listen(model, "before_update", _make_guard(name, "UPDATE"))
        event.listen(model, "before_delete", _make_guard(name, "DELETE"))

    _registered = True
    logger.info("Immutability enforcement registered for audit records")
