"""Service layer exports."""

from .access_tokens import AccessTokenProvider
from .credential_login import CredentialLoginService
from .refresh_scheduler import BatchRefreshScheduler
from .token_cipher import TokenCipherService
from .token_refresher import TokenRefresher

__all__ = [
    "AccessTokenProvider",
    "BatchRefreshScheduler",
    "CredentialLoginService",
    "TokenCipherService",
    "TokenRefresher",
]
