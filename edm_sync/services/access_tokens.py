"""
Helpers for handing out valid EDM access tokens to request handlers.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from edm_sync.clients.credential_store import CredentialStore, utcnow
from edm_sync.core.errors import (
    AccessTokenUnavailable,
    CredentialNotFoundError,
    DecryptionError,
)
from edm_sync.models.credential import CredentialEntry
from edm_sync.services.token_cipher import TokenCipherService
from edm_sync.services.token_refresher import TokenRefresher

logger = logging.getLogger(__name__)


class AccessTokenProvider:
    """Return a usable access token, refreshing synchronously when it expired.

    The durable record is the only source of truth: nothing is cached between
    calls, so every request re-checks expiry against the stored entry.
    """

    def __init__(
        self,
        store: CredentialStore,
        refresher: TokenRefresher,
        token_cipher: TokenCipherService,
        *,
        safety_margin: timedelta = timedelta(seconds=60),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._refresher = refresher
        self._cipher = token_cipher
        self._safety_margin = safety_margin
        self._clock = clock

    async def get_valid_access_token(self, entry: CredentialEntry) -> str:
        """Retrieve a bearer token for ``entry``.

        Raises ``AccessTokenUnavailable`` when the token is expired and the
        refresh attempt fails.
        """
        if entry.access_token_valid_at(self._clock() + self._safety_margin):
            try:
                return self._cipher.decrypt(entry.encrypted_access_token or "")
            except DecryptionError:
                logger.warning(
                    "Cached access token for credential %s is unreadable; refreshing.",
                    entry.id,
                )

        outcome = await self._refresher.refresh(entry)
        if not outcome.ok or not outcome.access_token:
            raise AccessTokenUnavailable(
                f"EDM access token unavailable for credential {entry.id}.",
                outcome=outcome,
            )
        return outcome.access_token

    async def get_active_access_token(self) -> str:
        """Resolve the active credential and return a valid token for it."""
        entry = self._store.find_active_most_recent()
        if entry is None:
            raise CredentialNotFoundError("No EDM credentials configured.")
        return await self.get_valid_access_token(entry)


__all__ = ["AccessTokenProvider"]
