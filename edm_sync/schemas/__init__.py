"""Public schema exports."""

from .auth import EDMLoginPayload, RefreshOnePayload
from .refresh import CredentialStatus, RefreshResultItem, SweepResponse

__all__ = [
    "CredentialStatus",
    "EDMLoginPayload",
    "RefreshOnePayload",
    "RefreshResultItem",
    "SweepResponse",
]
