"""Symmetric encryption utilities for protecting stored tokens."""

from __future__ import annotations

import base64
import hashlib
import hmac

from cryptography.fernet import Fernet, InvalidToken

from edm_sync.core.errors import DecryptionError, MissingKeyError


class TokenCipherService:
    """Encrypt, decrypt and hash token strings using a derived Fernet key.

    Fernet draws a fresh IV for every call and authenticates the ciphertext,
    so equal plaintexts never share a ciphertext and tampering is detected.
    """

    def __init__(self, *, secret: str | None) -> None:
        if not secret or not secret.strip():
            raise MissingKeyError("Token encryption secret must be provided.")
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        key = base64.urlsafe_b64encode(digest)
        self._fernet = Fernet(key)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a plaintext string and return the ciphertext."""
        token = self._fernet.encrypt(plaintext.encode("utf-8"))
        return token.decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a ciphertext string and return the plaintext."""
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except (InvalidToken, UnicodeEncodeError) as exc:
            raise DecryptionError(
                "Failed to decrypt token; invalid ciphertext provided."
            ) from exc
        return plaintext.decode("utf-8")

    @staticmethod
    def hash(plaintext: str) -> str:
        """Return a one-way SHA-256 digest usable for equality checks only."""
        return hashlib.sha256(plaintext.encode("utf-8")).hexdigest()

    def matches(self, plaintext: str, digest: str | None) -> bool:
        """Check whether ``plaintext`` is the token behind ``digest``."""
        if not digest:
            return False
        return hmac.compare_digest(self.hash(plaintext), digest)


__all__ = ["TokenCipherService"]
