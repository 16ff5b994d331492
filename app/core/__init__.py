"""Core utilities: exceptions, encryption, idempotency keys, middleware."""

from app.core.encryption import EncryptionService, decrypt_sensitive, encrypt_sensitive
from app.core.exceptions import (
    AppException,
    AuthorizationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
    WebhookRejected,
)
from app.core.idempotency import callback_idempotency_key, generate_idempotency_key

__all__ = [
    "EncryptionService",
    "decrypt_sensitive",
    "encrypt_sensitive",
    "AppException",
    "AuthorizationError",
    "ConflictError",
    "ExternalServiceError",
    "NotFoundError",
    "ValidationError",
    "WebhookRejected",
    "callback_idempotency_key",
    "generate_idempotency_key",
]
