"""
Domain models for EDM credential persistence.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CredentialEntry(BaseModel):
    """One stored OAuth2 credential; token fields only ever hold ciphertext."""

    id: str
    encrypted_access_token: Optional[str] = None
    access_token_expires_at: Optional[datetime] = None
    encrypted_refresh_token: str
    refresh_token_hash: str
    last_refreshed_at: Optional[datetime] = None
    next_refresh_at: datetime
    refresh_failure_count: int = 0
    revoked: bool = False
    created_at: Optional[datetime] = None

    def access_token_valid_at(self, moment: datetime) -> bool:
        """Whether the stored access token can still be used at ``moment``."""
        if not self.encrypted_access_token or self.access_token_expires_at is None:
            return False
        return self.access_token_expires_at > moment


class RefreshOutcome(BaseModel):
    """
    Result of a single refresh attempt.

    ``access_token`` is the plaintext token for the immediate caller and is
    excluded from serialization so it never reaches a response body or log.
    """

    id: str
    ok: bool
    next_refresh_at: Optional[datetime] = None
    error: Optional[str] = Field(
        None, description="Failure class name (DecryptionError, UpstreamRejected...)."
    )
    details: Optional[str] = Field(
        None, description="Operator-facing diagnostics such as the upstream body."
    )
    access_token: Optional[str] = Field(None, exclude=True, repr=False)


__all__ = ["CredentialEntry", "RefreshOutcome"]
