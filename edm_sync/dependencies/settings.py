"""
FastAPI dependencies for configuration and administrative authentication.
"""

import hmac
from functools import lru_cache
from http import HTTPStatus
from typing import Optional

from fastapi import Depends, Header, HTTPException

from edm_sync.core.config import AppSettings, get_settings


@lru_cache()
def _settings_singleton() -> AppSettings:
    """Ensure configuration is created once per process."""
    return get_settings()


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return _settings_singleton()


def _matches(candidate: Optional[str], expected: str) -> bool:
    if not candidate:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def require_admin_key(
    settings: AppSettings = Depends(get_app_settings),
    authorization: Optional[str] = Header(default=None),
    x_admin_key: Optional[str] = Header(default=None),
) -> None:
    """Accept ``Authorization: Bearer <key>`` or ``X-Admin-Key: <key>``.

    With no key configured every request is refused.
    """
    expected = settings.security.admin_refresh_key
    if expected:
        bearer = None
        if authorization and authorization.startswith("Bearer "):
            bearer = authorization[len("Bearer "):]
        if _matches(bearer, expected) or _matches(x_admin_key, expected):
            return
    raise HTTPException(status_code=HTTPStatus.UNAUTHORIZED, detail="unauthorized")


SettingsDependency = Depends(get_app_settings)
AdminDependency = Depends(require_admin_key)

__all__ = [
    "AdminDependency",
    "SettingsDependency",
    "get_app_settings",
    "require_admin_key",
]
