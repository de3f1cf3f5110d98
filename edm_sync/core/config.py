"""
Application configuration models and helpers.

Centralizes settings management so both the FastAPI app and the token
refresh scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class EDMSettings(BaseSettings):
    """Configuration required for talking to the EDM API."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    base_url: str = Field(
        "https://api.edm.mydr.pl/secure/ext_api", validation_alias="EDM_URL"
    )
    token_path: str = Field("/o/token/", validation_alias="EDM_TOKEN_PATH")
    client_id: Optional[str] = Field(None, validation_alias="EDM_CLIENT_ID")
    client_secret: Optional[str] = Field(None, validation_alias="EDM_CLIENT_SECRET")
    http_timeout: float = Field(
        10.0,
        validation_alias="EDM_HTTP_TIMEOUT",
        description="Timeout in seconds applied to every upstream request.",
    )

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("http_timeout")
    @classmethod
    def _require_finite_timeout(cls, value: float) -> float:
        if value <= 0 or value == float("inf"):
            raise ValueError("EDM_HTTP_TIMEOUT must be a finite positive number.")
        return value

    @property
    def token_url(self) -> str:
        return f"{self.base_url}{self.token_path}"


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )
    admin_refresh_key: Optional[str] = Field(
        None,
        validation_alias="ADMIN_REFRESH_KEY",
        description="Shared secret required by administrative endpoints.",
    )


class StorageSettings(BaseSettings):
    """Where credential entries are persisted."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    credential_db_path: str = Field(
        "data/edm_credentials.db", validation_alias="CREDENTIAL_DB_PATH"
    )


class RefreshSettings(BaseSettings):
    """Timing knobs for the token refresh lifecycle."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    batch_size: int = Field(100, gt=0, validation_alias="REFRESH_BATCH_SIZE")
    safety_margin_seconds: int = Field(
        60, ge=0, validation_alias="ACCESS_TOKEN_SAFETY_MARGIN"
    )
    success_interval_seconds: int = Field(
        8 * 60 * 60, gt=0, validation_alias="REFRESH_SUCCESS_INTERVAL"
    )
    failure_backoff_seconds: int = Field(
        60 * 60, gt=0, validation_alias="REFRESH_FAILURE_BACKOFF"
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    edm: EDMSettings = Field(default_factory=EDMSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    refresh: RefreshSettings = Field(default_factory=RefreshSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "EDMSettings",
    "RefreshSettings",
    "SecuritySettings",
    "StorageSettings",
    "get_settings",
]
