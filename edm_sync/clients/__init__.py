"""Expose constructed client wrappers."""

from .credential_store import CredentialStore
from .edm_api import EDMApiClient
from .edm_oauth import EDMOAuthClient

__all__ = [
    "CredentialStore",
    "EDMApiClient",
    "EDMOAuthClient",
]
