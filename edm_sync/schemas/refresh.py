"""Schemas describing credential state and refresh results."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from edm_sync.models.credential import CredentialEntry, RefreshOutcome


class RefreshResultItem(BaseModel):
    """Per-entry sweep result; diagnostics are meant for operators."""

    id: str
    ok: bool
    next_refresh_at: Optional[datetime] = None
    error: Optional[str] = None
    details: Optional[str] = None

    @classmethod
    def from_outcome(cls, outcome: RefreshOutcome) -> "RefreshResultItem":
        return cls(**outcome.model_dump())


class SweepResponse(BaseModel):
    processed: int
    results: List[RefreshResultItem] = Field(default_factory=list)

    @classmethod
    def from_outcomes(cls, outcomes: List[RefreshOutcome]) -> "SweepResponse":
        return cls(
            processed=len(outcomes),
            results=[RefreshResultItem.from_outcome(outcome) for outcome in outcomes],
        )


class CredentialStatus(BaseModel):
    """Token-free view of the active credential."""

    logged_in: bool
    id: Optional[str] = None
    last_refreshed_at: Optional[datetime] = None
    next_refresh_at: Optional[datetime] = None
    access_token_expires_at: Optional[datetime] = None
    refresh_failure_count: Optional[int] = None

    @classmethod
    def from_entry(cls, entry: Optional[CredentialEntry]) -> "CredentialStatus":
        if entry is None:
            return cls(logged_in=False)
        return cls(
            logged_in=True,
            id=entry.id,
            last_refreshed_at=entry.last_refreshed_at,
            next_refresh_at=entry.next_refresh_at,
            access_token_expires_at=entry.access_token_expires_at,
            refresh_failure_count=entry.refresh_failure_count,
        )


__all__ = ["CredentialStatus", "RefreshResultItem", "SweepResponse"]
