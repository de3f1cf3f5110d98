"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from datetime import timedelta
from functools import lru_cache

from edm_sync.clients import CredentialStore, EDMApiClient, EDMOAuthClient
from edm_sync.core.config import get_settings
from edm_sync.services import (
    AccessTokenProvider,
    BatchRefreshScheduler,
    CredentialLoginService,
    TokenCipherService,
    TokenRefresher,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = _settings()
    return TokenCipherService(secret=settings.security.token_encryption_secret)


@lru_cache()
def get_credential_store() -> CredentialStore:
    """Provide shared SQLite credential store."""
    settings = _settings()
    return CredentialStore(
        settings.storage.credential_db_path,
        success_interval=timedelta(seconds=settings.refresh.success_interval_seconds),
        failure_backoff=timedelta(seconds=settings.refresh.failure_backoff_seconds),
    )


@lru_cache()
def get_edm_oauth_client() -> EDMOAuthClient:
    """Create a singleton EDM OAuth client."""
    return EDMOAuthClient(_settings().edm)


@lru_cache()
def get_token_refresher() -> TokenRefresher:
    return TokenRefresher(
        store=get_credential_store(),
        oauth_client=get_edm_oauth_client(),
        token_cipher=get_token_cipher_service(),
    )


@lru_cache()
def get_access_token_provider() -> AccessTokenProvider:
    """Provide the read path for valid EDM access tokens."""
    settings = _settings()
    return AccessTokenProvider(
        store=get_credential_store(),
        refresher=get_token_refresher(),
        token_cipher=get_token_cipher_service(),
        safety_margin=timedelta(seconds=settings.refresh.safety_margin_seconds),
    )


@lru_cache()
def get_refresh_scheduler() -> BatchRefreshScheduler:
    settings = _settings()
    return BatchRefreshScheduler(
        store=get_credential_store(),
        refresher=get_token_refresher(),
        batch_size=settings.refresh.batch_size,
    )


def get_credential_login_service() -> CredentialLoginService:
    """Build a login service using configured clients."""
    return CredentialLoginService(
        store=get_credential_store(),
        oauth_client=get_edm_oauth_client(),
        token_cipher=get_token_cipher_service(),
    )


@lru_cache()
def get_edm_api_client() -> EDMApiClient:
    """Provide EDM API client instance."""
    return EDMApiClient(_settings().edm, get_access_token_provider())


__all__ = [
    "get_access_token_provider",
    "get_credential_login_service",
    "get_credential_store",
    "get_edm_api_client",
    "get_edm_oauth_client",
    "get_refresh_scheduler",
    "get_token_cipher_service",
    "get_token_refresher",
]
