"""
Interactive EDM login: exchange account credentials for the first token pair.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, TYPE_CHECKING

from edm_sync.clients.credential_store import CredentialStore, utcnow
from edm_sync.core.errors import MalformedResponse
from edm_sync.models.credential import CredentialEntry
from edm_sync.services.token_cipher import TokenCipherService

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from edm_sync.clients.edm_oauth import EDMOAuthClient

logger = logging.getLogger(__name__)


class CredentialLoginService:
    """Create a new credential entry from an EDM username/password login."""

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

    async def login(self, *, username: str, password: str) -> CredentialEntry:
        """Run the password grant and persist only the encrypted tokens."""
        requested_at = self._clock()
        access_token, refresh_token, expires_in = await self._oauth.password_grant(
            username, password
        )
        if not refresh_token:
            raise MalformedResponse("No refresh_token in token response.")
        expires_at = (
            requested_at + timedelta(seconds=expires_in) if expires_in else None
        )
        entry = self._store.create_entry(
            encrypted_refresh_token=self._cipher.encrypt(refresh_token),
            refresh_token_hash=self._cipher.hash(refresh_token),
            encrypted_access_token=self._cipher.encrypt(access_token),
            access_token_expires_at=expires_at,
        )
        logger.info("Stored new EDM credential %s.", entry.id)
        return entry


__all__ = ["CredentialLoginService"]
