"""
FastAPI application entrypoint for the EDM integration.
"""

from __future__ import annotations

from fastapi import FastAPI

from edm_sync.api.routes import router as api_router
from edm_sync.core.config import get_settings
from edm_sync.core.logging import configure_logging
from edm_sync.dependencies import get_edm_oauth_client, get_token_cipher_service


def create_app() -> FastAPI:
    """Factory for the FastAPI application.

    Building the cipher and the OAuth client up front makes missing key
    material or client credentials fail here with ``ConfigurationError``
    instead of on the first request.
    """
    settings = get_settings()
    configure_logging(settings.log_level)
    get_token_cipher_service()
    get_edm_oauth_client()

    app = FastAPI(
        title="EDM Sync",
        version="0.1.0",
        description="Credential lifecycle and proxy layer for the EDM clinical records API.",
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
