"""AES-256-GCM encryption for payment gateway credentials at rest."""

import hashlib
import os
from functools import lru_cache

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from app.config import settings

NONCE_SIZE = 12


class EncryptionService:
    """Encrypts gateway API keys, signature keys and secret keys."""

    def __init__(self, key: bytes) -> None:
        if len(key) != 32:
            raise ValueError("Encryption key must be 32 bytes for AES-256")
        self._aesgcm = AESGCM(key)

    def encrypt(self, plaintext: str, associated_data: bytes | None = None) -> bytes:
        """Encrypt a string and return nonce + ciphertext.

        Args:
            plaintext: The secret to encrypt
            associated_data: Optional context bound to the ciphertext
                (e.g. the owning mosque id); the same value must be
                supplied to ``decrypt``.

        Returns:
            bytes: 12-byte nonce prepended to the ciphertext
        """
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), associated_data)
        return nonce + ciphertext

    def decrypt(self, ciphertext: bytes, associated_data: bytes | None = None) -> str:
        """Decrypt nonce + ciphertext back to the original string.

        Raises:
            ValueError: If the payload is truncated or fails authentication
        """
        if len(ciphertext) <= NONCE_SIZE:
            raise ValueError("Ciphertext too short")
        nonce, encrypted = ciphertext[:NONCE_SIZE], ciphertext[NONCE_SIZE:]
        try:
            plaintext = self._aesgcm.decrypt(nonce, encrypted, associated_data)
        except InvalidTag as e:
            raise ValueError("Ciphertext failed authentication") from e
        return plaintext.decode("utf-8")


@lru_cache
def get_encryption_service() -> EncryptionService:
    """Get cached encryption service keyed from settings."""
    key = hashlib.sha256(settings.encryption_key.encode("utf-8")).digest()
    return EncryptionService(key)


def encrypt_sensitive(plaintext: str, context: str | None = None) -> bytes:
    """Encrypt a secret, optionally bound to a context string."""
    aad = context.encode("utf-8") if context else None
    return get_encryption_service().encrypt(plaintext, aad)


def decrypt_sensitive(ciphertext: bytes, context: str | None = None) -> str:
    """Decrypt a secret produced by ``encrypt_sensitive``."""
    aad = context.encode("utf-8") if context else None
    return get_encryption_service().decrypt(ciphertext, aad)
