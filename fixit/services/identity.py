"""
Identity provider service backed by a Cognito user pool.

Validates sign-up input before any remote call and translates user pool error
codes into the application's error kinds, per operation.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Type

from fixit.clients import AWSServiceError, CognitoUserPoolClient
from fixit.core.errors import (
    AlreadyConfirmed,
    CodeExpired,
    CodeMismatch,
    DuplicateIdentity,
    FixItError,
    IdentityNotFound,
    IdentityProviderUnavailable,
    InvalidAccessToken,
    InvalidAttribute,
    InvalidCredential,
    NotConfirmed,
    ValidationFailed,
    WeakCredential,
)
from fixit.models.credentials import SessionTokens
from fixit.models.roles import Provider, Role, parse_role, role_from_attributes, service_category

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
CONFIRMATION_CODE_PATTERN = re.compile(r"^[0-9]{6}$")
MIN_PASSWORD_LENGTH = 8

_ErrorMap = Dict[str, Type[FixItError]]

_SIGN_UP_ERRORS: _ErrorMap = {
    "UsernameExistsException": DuplicateIdentity,
    "InvalidPasswordException": WeakCredential,
    "InvalidParameterException": InvalidAttribute,
}

_AUTH_ERRORS: _ErrorMap = {
    "UserNotConfirmedException": NotConfirmed,
    "NotAuthorizedException": InvalidCredential,
    "UserNotFoundException": IdentityNotFound,
    "InvalidParameterException": InvalidAttribute,
}

_CONFIRM_ERRORS: _ErrorMap = {
    "CodeMismatchException": CodeMismatch,
    "ExpiredCodeException": CodeExpired,
    "NotAuthorizedException": AlreadyConfirmed,
    "UserNotFoundException": IdentityNotFound,
}

_GET_USER_ERRORS: _ErrorMap = {
    "NotAuthorizedException": InvalidAccessToken,
    "UserNotFoundException": InvalidAccessToken,
}

# Messages the provider returns for these codes are safe to show verbatim.
_PASS_THROUGH_MESSAGES = {"InvalidParameterException"}


def _translate(exc: AWSServiceError, mapping: _ErrorMap) -> FixItError:
    error_cls = mapping.get(exc.code, IdentityProviderUnavailable)
    message = exc.message if exc.code in _PASS_THROUGH_MESSAGES else None
    return error_cls(message, details=exc.message)


@dataclass(slots=True)
class RegistrationResult:
    subject_id: str
    confirmed: bool


@dataclass(slots=True)
class UserIdentity:
    """Identity resolved from an access token."""

    subject_id: str
    email: str
    name: str
    role: Role
    attributes: Dict[str, str] = field(default_factory=dict)

    def to_wire(self) -> Dict[str, Optional[str]]:
        return {
            "userId": self.subject_id,
            "email": self.email,
            "name": self.name,
            "role": self.role.name,
            "serviceType": service_category(self.role) or None,
        }


@dataclass(slots=True)
class AuthenticationResult:
    tokens: SessionTokens
    user: UserIdentity


def validate_confirmation_code(code: Optional[str]) -> str:
    """Reject anything that is not exactly six digits without a round trip."""
    candidate = (code or "").strip()
    if not CONFIRMATION_CODE_PATTERN.fullmatch(candidate):
        raise ValidationFailed(
            "Verification code must be exactly 6 digits",
            code="INVALID_CODE_FORMAT",
        )
    return candidate


class IdentityProviderService:
    """Register, authenticate and confirm users against the user pool."""

    def __init__(self, user_pool: CognitoUserPoolClient) -> None:
        self._user_pool = user_pool

    async def register(
        self,
        *,
        email: Optional[str],
        password: Optional[str],
        display_name: Optional[str],
        role: Optional[str],
        address: Optional[str],
        service_category: Optional[str] = None,
    ) -> RegistrationResult:
        """Validate sign-up input and create the identity."""
        if not email or not password or not display_name or not role:
            raise ValidationFailed(
                "email, password, fullName, and role are required",
                code="MISSING_FIELDS",
            )
        if not address or not address.strip():
            raise ValidationFailed(
                "Address is required for sign-up", code="MISSING_ADDRESS"
            )
        if not EMAIL_PATTERN.match(email):
            raise ValidationFailed(
                "Please provide a valid email address", code="INVALID_EMAIL"
            )
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationFailed(
                "Password must be at least 8 characters long",
                code="PASSWORD_TOO_SHORT",
            )
        try:
            parsed_role = parse_role(role, service_category)
        except ValueError as exc:
            code = "MISSING_SERVICE_TYPE" if role.strip().lower() == "provider" else "INVALID_ROLE"
            message = (
                "Service type is required for providers"
                if code == "MISSING_SERVICE_TYPE"
                else 'Role must be one of "seeker", "provider" or "owner"'
            )
            raise ValidationFailed(message, code=code) from exc

        attributes = {
            "email": email,
            "name": display_name,
            "address": address,
            "custom:role": parsed_role.name,
        }
        if isinstance(parsed_role, Provider):
            attributes["custom:serviceType"] = parsed_role.service_category

        logger.info("Signing up user %s with role %s", email, parsed_role.name)
        try:
            response = await self._user_pool.sign_up(
                username=email, password=password, attributes=attributes
            )
        except AWSServiceError as exc:
            raise _translate(exc, _SIGN_UP_ERRORS) from exc

        return RegistrationResult(
            subject_id=response["UserSub"],
            confirmed=bool(response.get("UserConfirmed", False)),
        )

    async def authenticate(self, *, email: Optional[str], password: Optional[str]) -> AuthenticationResult:
        """Password login followed by an attribute lookup."""
        if not email or not password:
            raise ValidationFailed(
                "Email and password are required", code="MISSING_CREDENTIALS"
            )

        try:
            response = await self._user_pool.initiate_password_auth(
                username=email, password=password
            )
        except AWSServiceError as exc:
            raise _translate(exc, _AUTH_ERRORS) from exc

        result = response.get("AuthenticationResult")
        if not result:
            # A challenge (e.g. NEW_PASSWORD_REQUIRED) is not supported by this flow.
            raise IdentityProviderUnavailable(
                "Authentication failed - no tokens returned",
                details=response.get("ChallengeName"),
            )

        tokens = SessionTokens(
            access_token=result["AccessToken"],
            id_token=result["IdToken"],
            refresh_token=result.get("RefreshToken"),
        )
        user = await self.describe_user(tokens.access_token, fallback_email=email)
        logger.info("Authenticated user %s (%s)", user.subject_id, user.role.name)
        return AuthenticationResult(tokens=tokens, user=user)

    async def confirm_registration(self, *, email: Optional[str], code: Optional[str]) -> None:
        if not email or not code:
            raise ValidationFailed(
                "Email and verification code are required", code="MISSING_FIELDS"
            )
        confirmation_code = validate_confirmation_code(code)
        try:
            await self._user_pool.confirm_sign_up(username=email, code=confirmation_code)
        except AWSServiceError as exc:
            raise _translate(exc, _CONFIRM_ERRORS) from exc
        logger.info("Confirmed registration for %s", email)

    async def describe_user(
        self, access_token: str, *, fallback_email: str = ""
    ) -> UserIdentity:
        """Resolve the identity behind an access token."""
        try:
            response = await self._user_pool.get_user(access_token=access_token)
        except AWSServiceError as exc:
            raise _translate(exc, _GET_USER_ERRORS) from exc

        attributes = {
            attr["Name"]: attr["Value"] for attr in response.get("UserAttributes", [])
        }
        return UserIdentity(
            subject_id=response["Username"],
            email=attributes.get("email") or fallback_email,
            name=attributes.get("name", ""),
            role=role_from_attributes(attributes),
            attributes=attributes,
        )


__all__ = [
    "AuthenticationResult",
    "IdentityProviderService",
    "RegistrationResult",
    "UserIdentity",
    "validate_confirmation_code",
]
