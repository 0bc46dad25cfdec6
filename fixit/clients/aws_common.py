"""
Shared plumbing for the boto3-backed client wrappers.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, TypeVar

from botocore.exceptions import BotoCoreError, ClientError

from fixit.core.config import AWSSettings

T = TypeVar("T")

logger = logging.getLogger(__name__)


class AWSServiceError(Exception):
    """Raised when an AWS API call fails; carries the provider error code."""

    def __init__(self, code: str, message: str, *, operation: str) -> None:
        super().__init__(f"{operation} failed with {code}: {message}")
        self.code = code
        self.message = message
        self.operation = operation


def client_kwargs(settings: AWSSettings) -> Dict[str, Any]:
    """Keyword arguments shared by every boto3 client and resource."""
    kwargs: Dict[str, Any] = {"region_name": settings.region_name}
    if settings.endpoint_url:
        kwargs["endpoint_url"] = settings.endpoint_url
    return kwargs


async def run_aws_call(operation: str, func: Callable[[], T]) -> T:
    """Run a blocking boto3 call off the event loop and normalize its errors."""

    def _invoke() -> T:
        try:
            return func()
        except ClientError as exc:
            error = exc.response.get("Error", {})
            code = error.get("Code") or "ClientError"
            message = error.get("Message") or str(exc)
            logger.warning("%s failed: %s (%s)", operation, code, message)
            raise AWSServiceError(code, message, operation=operation) from exc
        except BotoCoreError as exc:
            logger.error("%s could not reach AWS: %s", operation, exc)
            raise AWSServiceError(
                "ServiceUnavailable", str(exc), operation=operation
            ) from exc

    return await asyncio.to_thread(_invoke)


__all__ = ["AWSServiceError", "client_kwargs", "run_aws_call"]
