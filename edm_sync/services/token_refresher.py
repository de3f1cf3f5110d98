"""
Refresh-token grant execution for stored EDM credentials.

Every attempt, successful or not, moves ``next_refresh_at`` forward so a
broken entry is retried on the backoff schedule rather than in a tight loop.
Failures are returned as outcomes instead of raised.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional, TYPE_CHECKING

from edm_sync.clients.credential_store import CredentialStore, utcnow
from edm_sync.core.errors import DecryptionError, RefreshFailed
from edm_sync.models.credential import CredentialEntry, RefreshOutcome
from edm_sync.services.token_cipher import TokenCipherService

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from edm_sync.clients.edm_oauth import EDMOAuthClient

logger = logging.getLogger(__name__)


class TokenRefresher:
    """Run the OAuth2 refresh-token grant and record its result in the store."""

    def __init__(
        self,
        store: CredentialStore,
        oauth_client: "EDMOAuthClient",
        token_cipher: TokenCipherService,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._cipher = token_cipher
        self._clock = clock

    async def refresh(self, entry: CredentialEntry) -> RefreshOutcome:
        """Refresh ``entry`` once; never raises for decrypt or upstream failures."""
        try:
            refresh_token = self._cipher.decrypt(entry.encrypted_refresh_token)
        except DecryptionError as exc:
            logger.error(
                "Stored refresh token for credential %s cannot be decrypted; "
                "the entry needs operator attention.",
                entry.id,
            )
            return self._record_failure(entry, exc, details=str(exc))

        requested_at = self._clock()
        try:
            access_token, new_refresh_token, expires_in = await self._oauth.refresh_token(
                refresh_token
            )
        except RefreshFailed as exc:
            logger.warning(
                "EDM refresh failed for credential %s (%s, status=%s): %s",
                entry.id,
                exc.__class__.__name__,
                exc.status_code,
                exc.detail or exc,
            )
            return self._record_failure(entry, exc, details=exc.detail or str(exc))

        encrypted_refresh_token: Optional[str] = None
        refresh_token_hash: Optional[str] = None
        if new_refresh_token:
            encrypted_refresh_token = self._cipher.encrypt(new_refresh_token)
            refresh_token_hash = self._cipher.hash(new_refresh_token)

        expires_at = (
            requested_at + timedelta(seconds=expires_in) if expires_in else None
        )
        next_refresh_at = self._store.apply_success(
            entry.id,
            encrypted_access_token=self._cipher.encrypt(access_token),
            access_token_expires_at=expires_at,
            encrypted_refresh_token=encrypted_refresh_token,
            refresh_token_hash=refresh_token_hash,
        )
        logger.info(
            "Refreshed EDM credential %s (rotated=%s, next refresh at %s).",
            entry.id,
            bool(new_refresh_token),
            next_refresh_at.isoformat(),
        )
        return RefreshOutcome(
            id=entry.id,
            ok=True,
            next_refresh_at=next_refresh_at,
            access_token=access_token,
        )

    def _record_failure(
        self, entry: CredentialEntry, exc: Exception, *, details: str
    ) -> RefreshOutcome:
        next_refresh_at = self._store.apply_failure(entry.id)
        return RefreshOutcome(
            id=entry.id,
            ok=False,
            next_refresh_at=next_refresh_at,
            error=exc.__class__.__name__,
            details=details,
        )


__all__ = ["TokenRefresher"]
