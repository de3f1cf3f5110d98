"""Pytest configuration shared across the suite."""

from __future__ import annotations

from datetime import datetime

import pytest

try:
    from . import _bootstrap  # noqa: F401
    from ._fakes import FakeClock, RecordingStore
except ImportError:  # pragma: no cover - tests directory is not a package
    import _bootstrap  # type: ignore # noqa: F401
    from _fakes import FakeClock, RecordingStore  # type: ignore

from edm_sync.core.config import EDMSettings
from edm_sync.services.token_cipher import TokenCipherService


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cipher() -> TokenCipherService:
    return TokenCipherService(secret="unit-test-secret")


@pytest.fixture
def store(tmp_path, clock) -> RecordingStore:
    return RecordingStore(str(tmp_path / "credentials.db"), clock=clock)


@pytest.fixture
def edm_settings() -> EDMSettings:
    return EDMSettings(
        EDM_URL="https://edm.example.com/ext_api",
        EDM_CLIENT_ID="client",
        EDM_CLIENT_SECRET="client-secret",
        EDM_HTTP_TIMEOUT=5.0,
    )


@pytest.fixture
def seed_entry(store, cipher):
    """Factory creating a stored credential from plaintext tokens."""

    def _seed(
        refresh_token: str = "refresh-1",
        *,
        access_token: str | None = None,
        expires_at: datetime | None = None,
    ):
        return store.create_entry(
            encrypted_refresh_token=cipher.encrypt(refresh_token),
            refresh_token_hash=cipher.hash(refresh_token),
            encrypted_access_token=cipher.encrypt(access_token) if access_token else None,
            access_token_expires_at=expires_at,
        )

    return _seed
