"""
Amazon S3 client wrapper for profile and job photos.
"""

from __future__ import annotations

from typing import Any, Callable, Optional
from urllib.parse import quote

import boto3

from fixit.clients.aws_common import client_kwargs, run_aws_call
from fixit.core.config import AWSSettings


class S3Client:
    """Store public objects and issue presigned download URLs."""

    def __init__(
        self,
        settings: AWSSettings,
        *,
        client_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        self._settings = settings
        self._client_factory = client_factory
        self._default_client: Any = None

    @property
    def bucket(self) -> str:
        return self._settings.s3_bucket

    def _client(self) -> Any:
        if self._client_factory is not None:
            return self._client_factory()
        if self._default_client is None:
            self._default_client = boto3.client("s3", **client_kwargs(self._settings))
        return self._default_client

    def public_url(self, key: str) -> str:
        if self._settings.endpoint_url:
            base = self._settings.endpoint_url.rstrip("/")
            return f"{base}/{self.bucket}/{quote(key)}"
        return (
            f"https://{self.bucket}.s3.{self._settings.region_name}.amazonaws.com/"
            f"{quote(key)}"
        )

    async def put_public_object(self, *, key: str, body: bytes, content_type: str) -> str:
        """Upload ``body`` as a publicly readable object and return its URL."""
        client = self._client()
        await run_aws_call(
            "s3:PutObject",
            lambda: client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
                ACL="public-read",
            ),
        )
        return self.public_url(key)

    async def presigned_get_url(self, *, key: str, expires_in: int) -> str:
        client = self._client()
        return await run_aws_call(
            "s3:GeneratePresignedUrl",
            lambda: client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires_in,
            ),
        )


__all__ = ["S3Client"]
