"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_access_token_provider,
    get_credential_login_service,
    get_credential_store,
    get_edm_api_client,
    get_edm_oauth_client,
    get_refresh_scheduler,
    get_token_cipher_service,
    get_token_refresher,
)
from .settings import (
    AdminDependency,
    SettingsDependency,
    get_app_settings,
    require_admin_key,
)

__all__ = [
    "AdminDependency",
    "SettingsDependency",
    "get_access_token_provider",
    "get_app_settings",
    "get_credential_login_service",
    "get_credential_store",
    "get_edm_api_client",
    "get_edm_oauth_client",
    "get_refresh_scheduler",
    "get_token_cipher_service",
    "get_token_refresher",
    "require_admin_key",
]
