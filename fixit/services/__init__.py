"""Service layer exports."""

from .credentials import CredentialExchangeService, CredentialSession
from .entities import EntityRepository
from .identity import (
    AuthenticationResult,
    IdentityProviderService,
    RegistrationResult,
    UserIdentity,
)
from .marketplace import MarketplaceService
from .pending_login import PendingLogin, PendingLoginCipher
from .profiles import ProfileService
from .uploads import UploadKind, UploadService

__all__ = [
    "AuthenticationResult",
    "CredentialExchangeService",
    "CredentialSession",
    "EntityRepository",
    "IdentityProviderService",
    "MarketplaceService",
    "PendingLogin",
    "PendingLoginCipher",
    "ProfileService",
    "RegistrationResult",
    "UploadKind",
    "UploadService",
    "UserIdentity",
]
