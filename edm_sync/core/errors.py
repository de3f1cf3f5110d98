"""
Error taxonomy for the EDM credential lifecycle.

Refresh failures are normally absorbed into rescheduled store state; only
``AccessTokenUnavailable`` is meant to reach request handlers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from edm_sync.models.credential import RefreshOutcome


class CredentialError(Exception):
    """Base class for every credential lifecycle failure."""


class ConfigurationError(CredentialError):
    """Required configuration (cipher key, OAuth client) is missing or invalid."""


class CryptoError(CredentialError):
    """The token cipher could not complete an operation."""


class MissingKeyError(ConfigurationError, CryptoError):
    """Cipher key material is absent or blank."""


class DecryptionError(CryptoError):
    """Stored ciphertext is tampered with or malformed."""


class RefreshFailed(CredentialError):
    """The upstream refresh-token grant did not yield a usable access token."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class UpstreamRejected(RefreshFailed):
    """Token endpoint answered with a non-success status or did not answer."""


class MalformedResponse(RefreshFailed):
    """Token endpoint answered 2xx but the payload is unusable."""


class AccessTokenUnavailable(CredentialError):
    """No valid access token could be produced for a live request."""

    def __init__(self, message: str, *, outcome: "RefreshOutcome | None" = None) -> None:
        super().__init__(message)
        self.outcome = outcome


class CredentialNotFoundError(CredentialError):
    """No matching, non-revoked credential entry exists."""


__all__ = [
    "AccessTokenUnavailable",
    "ConfigurationError",
    "CredentialError",
    "CredentialNotFoundError",
    "CryptoError",
    "DecryptionError",
    "MalformedResponse",
    "MissingKeyError",
    "RefreshFailed",
    "UpstreamRejected",
]
