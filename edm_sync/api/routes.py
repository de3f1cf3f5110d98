"""
FastAPI routes for the EDM integration.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any

import httpx
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from edm_sync.core.errors import (
    AccessTokenUnavailable,
    CredentialNotFoundError,
    RefreshFailed,
)
from edm_sync.dependencies import (
    AdminDependency,
    get_credential_login_service,
    get_credential_store,
    get_edm_api_client,
    get_refresh_scheduler,
)
from edm_sync.schemas import (
    CredentialStatus,
    EDMLoginPayload,
    RefreshOnePayload,
    RefreshResultItem,
    SweepResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/edm/status", response_model=CredentialStatus)
async def get_edm_status(
    store: Annotated[Any, Depends(get_credential_store)],
) -> CredentialStatus:
    """Report whether an active EDM credential exists, without token material."""
    return CredentialStatus.from_entry(store.find_active_most_recent())


@router.post(
    "/edm/login",
    response_model=CredentialStatus,
    status_code=HTTPStatus.CREATED,
    dependencies=[AdminDependency],
)
async def login_to_edm(
    payload: EDMLoginPayload,
    login_service: Annotated[Any, Depends(get_credential_login_service)],
) -> CredentialStatus:
    """Exchange EDM account credentials for tokens and store them encrypted."""
    try:
        entry = await login_service.login(
            username=payload.username, password=payload.password
        )
    except RefreshFailed as exc:
        logger.warning(
            "EDM login failed (%s, status=%s): %s",
            exc.__class__.__name__,
            exc.status_code,
            exc.detail or exc,
        )
        raise HTTPException(
            status_code=HTTPStatus.BAD_GATEWAY,
            detail="edm_login_failed",
        ) from exc
    return CredentialStatus.from_entry(entry)


@router.post(
    "/edm/refresh-all",
    response_model=SweepResponse,
    dependencies=[AdminDependency],
)
async def refresh_all_credentials(
    scheduler: Annotated[Any, Depends(get_refresh_scheduler)],
) -> SweepResponse:
    """Refresh every non-revoked credential regardless of its schedule."""
    outcomes = await scheduler.refresh_all()
    return SweepResponse.from_outcomes(outcomes)


@router.post(
    "/edm/refresh-due",
    response_model=SweepResponse,
    dependencies=[AdminDependency],
)
async def refresh_due_credentials(
    scheduler: Annotated[Any, Depends(get_refresh_scheduler)],
) -> SweepResponse:
    """Refresh credentials whose next refresh time has passed."""
    outcomes = await scheduler.refresh_due()
    return SweepResponse.from_outcomes(outcomes)


@router.post(
    "/edm/refresh-one",
    response_model=RefreshResultItem,
    dependencies=[AdminDependency],
)
async def refresh_one_credential(
    payload: RefreshOnePayload,
    scheduler: Annotated[Any, Depends(get_refresh_scheduler)],
) -> RefreshResultItem:
    try:
        outcome = await scheduler.refresh_one(payload.id)
    except CredentialNotFoundError as exc:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND, detail="credential_not_found"
        ) from exc
    return RefreshResultItem.from_outcome(outcome)


@router.post(
    "/edm/credentials/{entry_id}/revoke",
    dependencies=[AdminDependency],
)
async def revoke_credential(
    entry_id: str,
    store: Annotated[Any, Depends(get_credential_store)],
) -> dict:
    """Permanently exclude a credential from refresh and use."""
    if not store.revoke(entry_id):
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND, detail="credential_not_found"
        )
    logger.info("Revoked EDM credential %s.", entry_id)
    return {"id": entry_id, "revoked": True}


@router.get("/edm/departments")
async def list_edm_departments(
    api_client: Annotated[Any, Depends(get_edm_api_client)],
) -> JSONResponse:
    """Proxy the EDM departments listing using the active credential."""
    try:
        status_code, body = await api_client.list_departments()
    except CredentialNotFoundError as exc:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail="No EDM credentials configured",
        ) from exc
    except AccessTokenUnavailable as exc:
        outcome = exc.outcome
        logger.error(
            "EDM access token unavailable: %s (%s)",
            outcome.error if outcome else exc,
            outcome.details if outcome else "no outcome",
        )
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            detail="edm_unavailable",
        ) from exc
    except httpx.HTTPError as exc:
        logger.error("EDM departments request failed: %s", exc)
        raise HTTPException(
            status_code=HTTPStatus.BAD_GATEWAY,
            detail="edm_request_failed",
        ) from exc

    return JSONResponse(content=body, status_code=status_code)


__all__ = ["router"]
