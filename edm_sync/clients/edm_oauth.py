"""
EDM OAuth utilities.

Talks to the EDM token endpoint for the password and refresh-token grants.
Every failure is raised as a ``RefreshFailed`` subclass; callers decide
whether to reschedule or surface it.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Optional, Tuple

import httpx

from edm_sync.core.config import EDMSettings
from edm_sync.core.errors import ConfigurationError, MalformedResponse, UpstreamRejected

logger = logging.getLogger(__name__)

# (access_token, refresh_token or None, expires_in seconds or None)
TokenGrant = Tuple[str, Optional[str], Optional[int]]

_MAX_DETAIL_CHARS = 2000


class EDMOAuthClient:
    """Issue OAuth2 grants against the configured EDM token endpoint."""

    def __init__(
        self,
        settings: EDMSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not settings.client_id or not settings.client_secret:
            raise ConfigurationError(
                "EDM_CLIENT_ID and EDM_CLIENT_SECRET must be configured."
            )
        self._settings = settings
        self._transport = transport

    @property
    def token_url(self) -> str:
        return self._settings.token_url

    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        """Exchange a refresh token for a new access token."""
        return await self._request_grant(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
            require_refresh_token=False,
        )

    async def password_grant(self, username: str, password: str) -> TokenGrant:
        """
        Log in with EDM account credentials.

        The response must include a refresh token, otherwise there is nothing
        to keep the integration alive with.
        """
        return await self._request_grant(
            {
                "grant_type": "password",
                "username": username,
                "password": password,
            },
            require_refresh_token=True,
        )

    async def _request_grant(
        self, params: Dict[str, str], *, require_refresh_token: bool
    ) -> TokenGrant:
        payload = {
            **params,
            "client_id": self._settings.client_id or "",
            "client_secret": self._settings.client_secret or "",
        }
        grant_type = params["grant_type"]

        try:
            async with httpx.AsyncClient(
                timeout=self._settings.http_timeout, transport=self._transport
            ) as client:
                response = await client.post(self.token_url, data=payload)
        except httpx.TimeoutException as exc:
            raise UpstreamRejected(
                f"EDM token endpoint timed out during {grant_type} grant.",
                detail=str(exc) or exc.__class__.__name__,
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamRejected(
                f"EDM token endpoint unreachable during {grant_type} grant.",
                detail=str(exc) or exc.__class__.__name__,
            ) from exc

        if not response.is_success:
            raise UpstreamRejected(
                f"EDM token endpoint rejected {grant_type} grant.",
                status_code=response.status_code,
                detail=response.text[:_MAX_DETAIL_CHARS],
            )

        try:
            token_payload: Any = response.json()
        except ValueError as exc:
            raise MalformedResponse(
                "EDM token endpoint returned a non-JSON body.",
                status_code=response.status_code,
                detail=response.text[:_MAX_DETAIL_CHARS],
            ) from exc

        if not isinstance(token_payload, dict):
            raise MalformedResponse(
                "EDM token endpoint returned an unexpected payload.",
                status_code=response.status_code,
            )

        access_token = token_payload.get("access_token")
        refresh_token = token_payload.get("refresh_token") or None
        expires_in = token_payload.get("expires_in")

        if not access_token or not isinstance(access_token, str):
            raise MalformedResponse(
                "No access_token in token response.",
                status_code=response.status_code,
            )
        if require_refresh_token and not refresh_token:
            raise MalformedResponse(
                "No refresh_token in token response.",
                status_code=response.status_code,
            )

        return access_token, refresh_token, self._parse_expires_in(expires_in)

    @staticmethod
    def _parse_expires_in(value: Any) -> Optional[int]:
        """Seconds until expiry, or ``None`` when the server gave no usable value.

        An unreadable value only loses the expiry; the grant is still returned.
        """
        if value is None or value == "":
            return None
        try:
            seconds = float(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring unparseable expires_in value %r.", value)
            return None
        if not math.isfinite(seconds) or seconds <= 0:
            return None
        return int(seconds)


__all__ = ["EDMOAuthClient", "TokenGrant"]
