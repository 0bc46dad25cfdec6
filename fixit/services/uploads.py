"""
Object keys and storage for profile and job photos.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Optional

from fixit.clients import AWSServiceError, S3Client
from fixit.core.config import UploadSettings
from fixit.core.errors import (
    InvalidKey,
    PayloadTooLarge,
    UnsupportedType,
    UploadFailed,
    ValidationFailed,
)

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "jpg"


class UploadKind(str, Enum):
    PROFILE = "profile"
    JOB = "job"


def _extension(filename: Optional[str]) -> str:
    if not filename or "." not in filename:
        return DEFAULT_EXTENSION
    ext = filename.rsplit(".", 1)[-1].strip().lower()
    return ext if ext.isalnum() else DEFAULT_EXTENSION


class UploadService:
    """Build storage keys, store public images and sign private URLs."""

    def __init__(
        self,
        s3_client: S3Client,
        settings: UploadSettings,
        *,
        clock_millis: Callable[[], int] = lambda: int(time.time() * 1000),
    ) -> None:
        self._s3 = s3_client
        self._settings = settings
        self._clock_millis = clock_millis

    def build_object_key(
        self, owner_id: str, kind: UploadKind | str, filename: Optional[str] = None
    ) -> str:
        """Profile photos overwrite one fixed key; job photos are append-only."""
        if not owner_id or not owner_id.strip():
            raise InvalidKey("userId is required")
        try:
            upload_kind = UploadKind(kind)
        except ValueError as exc:
            raise ValidationFailed(
                'fileType must be "profile" or "job"', code="INVALID_FILE_TYPE"
            ) from exc

        if upload_kind is UploadKind.PROFILE:
            return f"profilePhotos/{owner_id}/profile.jpg"
        return f"jobPhotos/{owner_id}/{self._clock_millis()}.{_extension(filename)}"

    def validate(self, data: bytes, content_type: Optional[str]) -> None:
        if not (content_type or "").lower().startswith("image/"):
            raise UnsupportedType()
        if len(data) > self._settings.max_bytes:
            raise PayloadTooLarge(
                f"File size must be less than {self._settings.max_bytes // (1024 * 1024)}MB"
            )

    async def store(self, data: bytes, key: str, content_type: str) -> str:
        """Upload ``data`` under ``key`` as a publicly readable object."""
        self.validate(data, content_type)
        try:
            url = await self._s3.put_public_object(
                key=key, body=data, content_type=content_type
            )
        except AWSServiceError as exc:
            raise UploadFailed(details=exc.message) from exc
        logger.info("Uploaded %s (%d bytes)", key, len(data))
        return url

    async def signed_url(self, key: str, ttl_seconds: Optional[int] = None) -> str:
        if not key:
            raise InvalidKey("Object key is required")
        expires_in = ttl_seconds or self._settings.signed_url_ttl_seconds
        try:
            return await self._s3.presigned_get_url(key=key, expires_in=expires_in)
        except AWSServiceError as exc:
            raise UploadFailed(
                "Failed to generate signed URL", details=exc.message
            ) from exc


__all__ = ["UploadKind", "UploadService"]
