"""
Application error taxonomy.

Provider-specific failures are translated into these kinds at the service
boundary; the HTTP layer renders any of them as the JSON error envelope.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Dict, Optional


class FixItError(Exception):
    """Base class for every failure surfaced to API callers."""

    kind = "InternalError"
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    code: Optional[str] = None
    retryable = False
    default_message = "Unexpected server error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        if code is not None:
            self.code = code
        self.details = details

    def to_envelope(self, *, include_details: bool = False) -> Dict[str, Any]:
        """Render the stable error envelope."""
        body: Dict[str, Any] = {
            "success": False,
            "error": self.kind,
            "message": self.message,
        }
        if self.code:
            body["code"] = self.code
        if include_details and self.details:
            body["details"] = self.details
        return body


# Validation ---------------------------------------------------------------


class ValidationFailed(FixItError):
    kind = "ValidationError"
    status_code = HTTPStatus.BAD_REQUEST
    code = "VALIDATION_ERROR"
    default_message = "Request validation failed"


class InvalidAttribute(ValidationFailed):
    kind = "InvalidAttribute"
    code = "INVALID_PARAMETER"
    default_message = "One or more attributes are invalid"


class WeakCredential(ValidationFailed):
    kind = "WeakCredential"
    code = "INVALID_PASSWORD"
    default_message = "Password does not meet requirements"


class CodeMismatch(ValidationFailed):
    kind = "CodeMismatch"
    code = "INVALID_CODE"
    default_message = "Invalid verification code. Please check the code and try again."


class CodeExpired(ValidationFailed):
    kind = "CodeExpired"
    code = "EXPIRED_CODE"
    default_message = "Verification code has expired. Please request a new code."


class AlreadyConfirmed(ValidationFailed):
    kind = "AlreadyConfirmed"
    code = "ALREADY_CONFIRMED"
    default_message = "User is already confirmed."


class InvalidKey(ValidationFailed):
    kind = "InvalidKey"
    code = "INVALID_KEY"
    default_message = "Entity key must not be empty"


class PayloadTooLarge(ValidationFailed):
    kind = "PayloadTooLarge"
    code = "FILE_TOO_LARGE"
    default_message = "File size must be less than 5MB"


class UnsupportedType(ValidationFailed):
    kind = "UnsupportedType"
    code = "UNSUPPORTED_TYPE"
    default_message = "Only image files are allowed"


# Authentication -----------------------------------------------------------


class AuthenticationFailed(FixItError):
    kind = "AuthenticationError"
    status_code = HTTPStatus.UNAUTHORIZED
    code = "UNAUTHORIZED"
    default_message = "Authentication required"


class InvalidCredential(AuthenticationFailed):
    kind = "InvalidCredential"
    code = "INVALID_CREDENTIALS"
    default_message = "Incorrect email or password"


class InvalidAccessToken(AuthenticationFailed):
    kind = "Unauthorized"
    code = "INVALID_ACCESS_TOKEN"
    default_message = "Invalid access token"


class FederationDenied(AuthenticationFailed):
    kind = "FederationDenied"
    code = "FEDERATION_DENIED"
    default_message = "Identity token was rejected by the identity pool"


class NotInitialized(AuthenticationFailed):
    kind = "NotInitialized"
    code = "CREDENTIALS_NOT_INITIALIZED"
    default_message = "No scoped credentials have been exchanged for this session"


class CredentialsExpired(AuthenticationFailed):
    kind = "CredentialsExpired"
    code = "CREDENTIALS_EXPIRED"
    default_message = "Scoped credentials have expired"


class NotConfirmed(FixItError):
    kind = "UserNotConfirmedException"
    status_code = HTTPStatus.FORBIDDEN
    code = "USER_NOT_CONFIRMED"
    default_message = "Verification is required. Check your email for the code."


# Lookup -------------------------------------------------------------------


class NotFound(FixItError):
    kind = "NotFound"
    status_code = HTTPStatus.NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Resource not found"


class IdentityNotFound(NotFound):
    kind = "IdentityNotFound"
    code = "USER_NOT_FOUND"
    default_message = "User not found"


class DuplicateIdentity(FixItError):
    kind = "DuplicateIdentity"
    status_code = HTTPStatus.CONFLICT
    code = "USER_EXISTS"
    default_message = "User with this email already exists"


class ConditionFailed(FixItError):
    kind = "ConditionFailed"
    status_code = HTTPStatus.CONFLICT
    code = "CONDITION_FAILED"
    default_message = "The stored record changed since it was read"


# Provider / transient -----------------------------------------------------


class ProviderFailure(FixItError):
    kind = "ProviderError"
    code = "PROVIDER_ERROR"
    retryable = True
    default_message = "Upstream service failed"


class IdentityProviderUnavailable(ProviderFailure):
    kind = "IdentityProviderUnavailable"
    code = "IDENTITY_PROVIDER_ERROR"
    default_message = "Identity provider request failed"


class ExchangeUnavailable(ProviderFailure):
    kind = "ExchangeUnavailable"
    code = "CREDENTIAL_EXCHANGE_ERROR"
    default_message = "Failed to obtain temporary credentials"


class StoreUnavailable(ProviderFailure):
    kind = "StoreUnavailable"
    code = "STORE_UNAVAILABLE"
    default_message = "Data store request failed"


class InvalidTableName(FixItError):
    kind = "InvalidTableName"
    code = "INVALID_TABLE"
    default_message = "Configured table does not exist"


class UploadFailed(ProviderFailure):
    kind = "UploadFailed"
    code = "UPLOAD_FAILED"
    default_message = "Failed to upload file to S3"


# Client side --------------------------------------------------------------


class ContractViolation(FixItError):
    """A downstream response was not JSON, so the boundary itself is broken."""

    kind = "ContractViolation"
    code = "NON_JSON_RESPONSE"
    default_message = "Server sent an invalid response format"

    def __init__(self, message: Optional[str] = None, *, status: int = 0, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.status = status


class RemoteError(FixItError):
    """A JSON error envelope returned by the backend."""

    def __init__(self, payload: Dict[str, Any], *, status: int) -> None:
        super().__init__(
            payload.get("message") or payload.get("error") or "Request failed",
            code=payload.get("code"),
            details=payload.get("details"),
        )
        self.kind = payload.get("error") or self.kind
        self.status = status
        self.payload = payload


__all__ = [
    "AlreadyConfirmed",
    "AuthenticationFailed",
    "CodeExpired",
    "CodeMismatch",
    "ConditionFailed",
    "ContractViolation",
    "CredentialsExpired",
    "DuplicateIdentity",
    "ExchangeUnavailable",
    "FederationDenied",
    "FixItError",
    "IdentityNotFound",
    "IdentityProviderUnavailable",
    "InvalidAccessToken",
    "InvalidAttribute",
    "InvalidCredential",
    "InvalidKey",
    "InvalidTableName",
    "NotConfirmed",
    "NotFound",
    "NotInitialized",
    "PayloadTooLarge",
    "ProviderFailure",
    "RemoteError",
    "StoreUnavailable",
    "UnsupportedType",
    "UploadFailed",
    "ValidationFailed",
    "WeakCredential",
]
