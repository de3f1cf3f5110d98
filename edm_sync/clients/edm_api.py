"""EDM API client wrapper for bearer-authenticated calls."""

from __future__ import annotations

from typing import Any, Tuple, TYPE_CHECKING

import httpx

from edm_sync.core.config import EDMSettings

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from edm_sync.services.access_tokens import AccessTokenProvider


class EDMApiClient:
    """Forward read requests to the EDM API using the active credential."""

    def __init__(
        self,
        settings: EDMSettings,
        token_provider: "AccessTokenProvider",
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._token_provider = token_provider
        self._transport = transport

    async def get(self, path: str) -> Tuple[int, Any]:
        """
        GET ``path`` relative to the EDM base URL.

        Returns the upstream status and decoded JSON body; bodies that are
        not JSON are wrapped as ``{"raw": text}``. The access token is fetched
        per call and never kept beyond it.
        """
        access_token = await self._token_provider.get_active_access_token()
        url = f"{self._settings.base_url}/{path.lstrip('/')}"
        async with httpx.AsyncClient(
            timeout=self._settings.http_timeout, transport=self._transport
        ) as client:
            response = await client.get(
                url,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/json",
                },
            )

        try:
            body = response.json()
        except ValueError:
            body = {"raw": response.text}
        return response.status_code, body

    async def list_departments(self) -> Tuple[int, Any]:
        return await self.get("/departments/")


__all__ = ["EDMApiClient"]
