"""
Batch refresh of stored EDM credentials.

Triggered externally (timer service, cron, admin endpoint); there is no
in-process scheduler thread.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional

from edm_sync.clients.credential_store import CredentialStore, utcnow
from edm_sync.core.errors import CredentialNotFoundError
from edm_sync.models.credential import CredentialEntry, RefreshOutcome
from edm_sync.services.token_refresher import TokenRefresher

logger = logging.getLogger(__name__)


class BatchRefreshScheduler:
    """Sweep credential entries page by page, refreshing them one at a time.

    Entries are processed strictly sequentially, within and across pages, so
    a sweep never has two refresh-token grants in flight at once. This does
    not protect against a request-triggered refresh of the same entry running
    in parallel with the sweep.
    """

    def __init__(
        self,
        store: CredentialStore,
        refresher: TokenRefresher,
        *,
        batch_size: int = 100,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self._store = store
        self._refresher = refresher
        self._batch_size = batch_size
        self._clock = clock

    async def refresh_all(self) -> List[RefreshOutcome]:
        """Refresh every non-revoked entry regardless of its schedule."""
        return await self.sweep(due_only=False)

    async def refresh_due(self) -> List[RefreshOutcome]:
        """Refresh only entries whose ``next_refresh_at`` has passed."""
        return await self.sweep(due_only=True)

    async def sweep(self, *, due_only: bool = False) -> List[RefreshOutcome]:
        due_before: Optional[datetime] = self._clock() if due_only else None
        outcomes: List[RefreshOutcome] = []
        after_id: Optional[str] = None
        pages = 0

        while True:
            page = self._store.find_due_for_refresh(
                self._batch_size, after_id=after_id, due_before=due_before
            )
            pages += 1
            if not page:
                break

            for entry in page:
                outcomes.append(await self._refresh_isolated(entry))

            after_id = page[-1].id
            if len(page) < self._batch_size:
                break

        failed = sum(1 for outcome in outcomes if not outcome.ok)
        logger.info(
            "EDM refresh sweep finished (due_only=%s): processed=%d failed=%d pages=%d",
            due_only,
            len(outcomes),
            failed,
            pages,
        )
        return outcomes

    async def refresh_one(self, entry_id: str) -> RefreshOutcome:
        """Refresh a single entry by id, e.g. from the admin "refresh now" action."""
        entry = self._store.get_entry(entry_id)
        if entry is None or entry.revoked:
            raise CredentialNotFoundError(f"No active EDM credential {entry_id}.")
        return await self._refresher.refresh(entry)

    async def _refresh_isolated(self, entry: CredentialEntry) -> RefreshOutcome:
        try:
            return await self._refresher.refresh(entry)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unexpected error refreshing credential %s", entry.id)
            next_refresh_at: Optional[datetime] = None
            try:
                next_refresh_at = self._store.apply_failure(entry.id)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Could not reschedule credential %s", entry.id)
            return RefreshOutcome(
                id=entry.id,
                ok=False,
                next_refresh_at=next_refresh_at,
                error=exc.__class__.__name__,
                details=str(exc),
            )


__all__ = ["BatchRefreshScheduler"]
