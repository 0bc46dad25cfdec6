"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

import logging
import secrets
from functools import lru_cache

from fixit.clients import (
    CognitoIdentityPoolClient,
    CognitoUserPoolClient,
    DynamoDBClient,
    S3Client,
)
from fixit.core.config import get_settings
from fixit.services import (
    CredentialExchangeService,
    EntityRepository,
    IdentityProviderService,
    MarketplaceService,
    PendingLoginCipher,
    ProfileService,
    UploadService,
)

logger = logging.getLogger(__name__)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_user_pool_client() -> CognitoUserPoolClient:
    """Create a singleton Cognito user pool client."""
    return CognitoUserPoolClient(_settings().aws)


@lru_cache()
def get_identity_pool_client() -> CognitoIdentityPoolClient:
    """Create a singleton Cognito identity pool client."""
    return CognitoIdentityPoolClient(_settings().aws)


@lru_cache()
def get_dynamodb_client() -> DynamoDBClient:
    """Provide the shared single-table client."""
    return DynamoDBClient(_settings().aws)


@lru_cache()
def get_s3_client() -> S3Client:
    """Provide the photo bucket client."""
    return S3Client(_settings().aws)


def get_identity_service() -> IdentityProviderService:
    """Build the identity provider service."""
    return IdentityProviderService(get_user_pool_client())


def get_credential_exchange_service() -> CredentialExchangeService:
    """Build the credential exchange service."""
    return CredentialExchangeService(get_identity_pool_client())


def get_entity_repository() -> EntityRepository:
    """Build the single-table repository."""
    return EntityRepository(get_dynamodb_client(), _settings().aws)


def get_upload_service() -> UploadService:
    """Build the upload service."""
    return UploadService(get_s3_client(), _settings().upload)


def get_marketplace_service() -> MarketplaceService:
    """Build the marketplace service."""
    return MarketplaceService(get_entity_repository())


def get_profile_service() -> ProfileService:
    """Build the profile service."""
    return ProfileService(get_identity_service(), get_entity_repository())


@lru_cache()
def get_pending_login_cipher() -> PendingLoginCipher:
    """Provide the cipher sealing pending-login tokens."""
    security = _settings().security
    secret = security.pending_login_secret
    if not secret:
        # Tokens issued before a restart stop working; users then log in manually.
        logger.warning("PENDING_LOGIN_SECRET not set; using a per-process key")
        secret = secrets.token_urlsafe(32)
    return PendingLoginCipher(secret=secret, ttl_seconds=security.pending_login_ttl_seconds)


__all__ = [
    "get_credential_exchange_service",
    "get_dynamodb_client",
    "get_entity_repository",
    "get_identity_pool_client",
    "get_identity_service",
    "get_marketplace_service",
    "get_pending_login_cipher",
    "get_profile_service",
    "get_s3_client",
    "get_upload_service",
    "get_user_pool_client",
]
