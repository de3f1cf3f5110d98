"""SQLite-backed store for EDM credential entries."""

from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from edm_sync.models.credential import CredentialEntry

Clock = Callable[[], datetime]

_COLUMNS = (
    "id",
    "encrypted_access_token",
    "access_token_expires_at",
    "encrypted_refresh_token",
    "refresh_token_hash",
    "last_refreshed_at",
    "next_refresh_at",
    "refresh_failure_count",
    "revoked",
    "created_at",
)
_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM edm_credentials"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_db(value: Optional[datetime]) -> Optional[str]:
    # Fixed-width UTC strings keep lexicographic order equal to time order.
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_db(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


class CredentialStore:
    """
    Durable record of credential entries.

    Every mutation is a single-row, single-statement ``UPDATE`` keyed by id,
    so concurrent writers never interleave partial updates of one entry.
    Entries are never deleted; revocation is a terminal flag.
    """

    def __init__(
        self,
        db_path: str,
        *,
        success_interval: timedelta = timedelta(hours=8),
        failure_backoff: timedelta = timedelta(hours=1),
        clock: Clock = utcnow,
    ) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._success_interval = success_interval
        self._failure_backoff = failure_backoff
        self._clock = clock
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS edm_credentials (
                    id TEXT PRIMARY KEY,
                    encrypted_access_token TEXT,
                    access_token_expires_at TEXT,
                    encrypted_refresh_token TEXT NOT NULL,
                    refresh_token_hash TEXT NOT NULL,
                    last_refreshed_at TEXT,
                    next_refresh_at TEXT NOT NULL,
                    refresh_failure_count INTEGER NOT NULL DEFAULT 0,
                    revoked INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS ix_edm_credentials_due
                ON edm_credentials (revoked, next_refresh_at)
                """
            )

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> CredentialEntry:
        data: Dict[str, Any] = dict(row)
        for column in (
            "access_token_expires_at",
            "last_refreshed_at",
            "next_refresh_at",
            "created_at",
        ):
            data[column] = _from_db(data[column])
        data["revoked"] = bool(data["revoked"])
        return CredentialEntry(**data)

    def create_entry(
        self,
        *,
        encrypted_refresh_token: str,
        refresh_token_hash: str,
        encrypted_access_token: Optional[str] = None,
        access_token_expires_at: Optional[datetime] = None,
    ) -> CredentialEntry:
        """Insert a freshly authorized credential and schedule its first refresh."""
        if not encrypted_refresh_token or not refresh_token_hash:
            raise ValueError("A credential entry requires refresh token material.")
        now = self._clock()
        entry_id = uuid.uuid4().hex
        last_refreshed_at = now if encrypted_access_token else None
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO edm_credentials (
                    id, encrypted_access_token, access_token_expires_at,
                    encrypted_refresh_token, refresh_token_hash, last_refreshed_at,
                    next_refresh_at, refresh_failure_count, revoked, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, 0, 0, ?)
                """,
                (
                    entry_id,
                    encrypted_access_token,
                    _to_db(access_token_expires_at),
                    encrypted_refresh_token,
                    refresh_token_hash,
                    _to_db(last_refreshed_at),
                    _to_db(now + self._success_interval),
                    _to_db(now),
                ),
            )
        entry = self.get_entry(entry_id)
        assert entry is not None
        return entry

    def get_entry(self, entry_id: str) -> Optional[CredentialEntry]:
        with self._connect() as conn:
            row = conn.execute(f"{_SELECT} WHERE id = ?", (entry_id,)).fetchone()
        if not row:
            return None
        return self._row_to_entry(row)

    def find_active_most_recent(self) -> Optional[CredentialEntry]:
        """Return the non-revoked entry refreshed most recently, if any."""
        with self._connect() as conn:
            row = conn.execute(
                f"""
                {_SELECT}
                WHERE revoked = 0
                ORDER BY last_refreshed_at IS NULL, last_refreshed_at DESC,
                         created_at DESC
                LIMIT 1
                """
            ).fetchone()
        if not row:
            return None
        return self._row_to_entry(row)

    def find_due_for_refresh(
        self,
        limit: int,
        *,
        after_id: Optional[str] = None,
        due_before: Optional[datetime] = None,
    ) -> List[CredentialEntry]:
        """
        Return up to ``limit`` non-revoked entries ordered by id.

        Pass the last id of the previous page as ``after_id`` to continue
        paging. ``due_before`` restricts the page to entries whose
        ``next_refresh_at`` is at or before that moment.
        """
        if limit <= 0:
            raise ValueError("limit must be positive")
        clauses = ["revoked = 0"]
        params: List[Any] = []
        if after_id is not None:
            clauses.append("id > ?")
            params.append(after_id)
        if due_before is not None:
            clauses.append("next_refresh_at <= ?")
            params.append(_to_db(due_before))
        params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(
                f"{_SELECT} WHERE {' AND '.join(clauses)} ORDER BY id LIMIT ?",
                params,
            ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def apply_success(
        self,
        entry_id: str,
        *,
        encrypted_access_token: Optional[str] = None,
        access_token_expires_at: Optional[datetime] = None,
        encrypted_refresh_token: Optional[str] = None,
        refresh_token_hash: Optional[str] = None,
    ) -> datetime:
        """
        Record a successful refresh and return the new ``next_refresh_at``.

        Token columns left as ``None`` keep their stored value, except the
        access token expiry which is always overwritten: a new token with an
        unknown lifetime must not inherit the previous deadline.
        """
        now = self._clock()
        next_refresh_at = now + self._success_interval
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE edm_credentials
                SET encrypted_access_token = COALESCE(?, encrypted_access_token),
                    access_token_expires_at = ?,
                    encrypted_refresh_token = COALESCE(?, encrypted_refresh_token),
                    refresh_token_hash = COALESCE(?, refresh_token_hash),
                    last_refreshed_at = ?,
                    next_refresh_at = ?,
                    refresh_failure_count = 0
                WHERE id = ?
                """,
                (
                    encrypted_access_token,
                    _to_db(access_token_expires_at),
                    encrypted_refresh_token,
                    refresh_token_hash,
                    _to_db(now),
                    _to_db(next_refresh_at),
                    entry_id,
                ),
            )
        return next_refresh_at

    def apply_failure(self, entry_id: str) -> datetime:
        """Count a failed attempt and push the next attempt out by the backoff."""
        next_refresh_at = self._clock() + self._failure_backoff
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE edm_credentials
                SET refresh_failure_count = refresh_failure_count + 1,
                    next_refresh_at = ?
                WHERE id = ?
                """,
                (_to_db(next_refresh_at), entry_id),
            )
        return next_refresh_at

    def revoke(self, entry_id: str) -> bool:
        """Permanently exclude an entry from refresh. Returns False if unknown."""
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE edm_credentials SET revoked = 1 WHERE id = ?",
                (entry_id,),
            )
        return cursor.rowcount > 0


__all__ = ["CredentialStore", "utcnow"]
