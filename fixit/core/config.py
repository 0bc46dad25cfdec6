"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the browser-session client
and the maintenance scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class AWSSettings(BaseSettings):
    """Settings for the managed AWS services brokered by the backend."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    region_name: str = Field("us-east-1", alias="AWS_REGION")
    user_pool_id: str = Field(..., alias="COGNITO_USER_POOL_ID")
    client_id: str = Field(..., alias="COGNITO_CLIENT_ID")
    identity_pool_id: str = Field(..., alias="COGNITO_IDENTITY_POOL_ID")
    dynamodb_table_name: str = Field("FixIt", alias="DYNAMODB_USERS_TABLE")
    dynamodb_use_sort_key: bool = Field(
        True,
        alias="DYNAMODB_USE_SORT_KEY",
        description="Whether the table is keyed by (PK, SK) rather than PK alone.",
    )
    dynamodb_entity_type_index: Optional[str] = Field(
        None,
        alias="DYNAMODB_ENTITY_TYPE_INDEX",
        description=(
            "Optional GSI keyed by entityType. When set, listing an entity type "
            "queries the index instead of scanning the table."
        ),
    )
    s3_bucket: str = Field("fixit-profile-images", alias="S3_BUCKET")
    endpoint_url: Optional[str] = Field(
        None,
        alias="AWS_ENDPOINT_URL",
        description="Override endpoint, e.g. for a local stack.",
    )

    @property
    def identity_provider_name(self) -> str:
        """Logins map key used to federate user pool ID tokens."""
        return f"cognito-idp.{self.region_name}.amazonaws.com/{self.user_pool_id}"


class UploadSettings(BaseSettings):
    """Limits applied to image uploads."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    max_bytes: int = Field(5 * 1024 * 1024, alias="UPLOAD_MAX_BYTES")
    signed_url_ttl_seconds: int = Field(3600, alias="SIGNED_URL_TTL")


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    pending_login_secret: Optional[str] = Field(
        None,
        alias="PENDING_LOGIN_SECRET",
        description=(
            "Secret used to derive the key sealing pending-login tokens handed "
            "to unconfirmed users."
        ),
    )
    pending_login_ttl_seconds: int = Field(900, alias="PENDING_LOGIN_TTL")


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    environment: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="APP_LOG_LEVEL")
    aws: AWSSettings = Field(default_factory=AWSSettings)
    upload: UploadSettings = Field(default_factory=UploadSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)

    @field_validator("environment")
    @classmethod
    def _normalize_environment(cls, value: str) -> str:
        return value.strip().lower()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "AWSSettings",
    "SecuritySettings",
    "UploadSettings",
    "get_settings",
]
