"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_credential_exchange_service,
    get_dynamodb_client,
    get_entity_repository,
    get_identity_pool_client,
    get_identity_service,
    get_marketplace_service,
    get_pending_login_cipher,
    get_profile_service,
    get_s3_client,
    get_upload_service,
    get_user_pool_client,
)
from .config import get_app_settings

__all__ = [
    "get_app_settings",
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
