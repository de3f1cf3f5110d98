"""Schemas related to EDM credential administration."""

from __future__ import annotations

from pydantic import BaseModel, Field


class EDMLoginPayload(BaseModel):
    """Account credentials used once to obtain the first EDM token pair."""

    username: str = Field(..., min_length=1, description="EDM account login.")
    password: str = Field(..., min_length=1, description="EDM account password.")


class RefreshOnePayload(BaseModel):
    """Identifies a single credential entry to refresh immediately."""

    id: str = Field(..., min_length=1, description="Credential entry identifier.")


__all__ = ["EDMLoginPayload", "RefreshOnePayload"]
