"""
Domain models for identity tokens and federated AWS credentials.
"""

from __future__ import annotations

import base64
import binascii
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class SessionTokens(BaseModel):
    """Tokens issued by the user pool after a password login."""

    access_token: str
    id_token: str
    refresh_token: Optional[str] = None


class ScopedCredentialSet(BaseModel):
    """Temporary AWS credentials federated from a user pool ID token."""

    identity_id: str = Field(..., description="Federated identity handle.")
    access_key_id: str
    secret_key: str
    session_token: str
    expiration: datetime

    def expires_in(self, now: Optional[datetime] = None) -> float:
        """Seconds until expiration (negative once expired)."""
        current = now or datetime.now(timezone.utc)
        return (_aware(self.expiration) - current).total_seconds()

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        current = now or datetime.now(timezone.utc)
        return current >= _aware(self.expiration)

    def to_wire(self) -> Dict[str, Any]:
        """Shape used by the ``awsCredentials`` response field."""
        return {
            "accessKeyId": self.access_key_id,
            "secretAccessKey": self.secret_key,
            "sessionToken": self.session_token,
            "expiration": _aware(self.expiration).isoformat(),
        }

    @classmethod
    def from_wire(cls, payload: Dict[str, Any], *, identity_id: str) -> "ScopedCredentialSet":
        return cls(
            identity_id=identity_id,
            access_key_id=payload["accessKeyId"],
            secret_key=payload["secretAccessKey"],
            session_token=payload["sessionToken"],
            expiration=payload["expiration"],
        )


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def token_claims(token: str) -> Dict[str, Any]:
    """Decode the payload segment of a JWT without verifying it.

    Used only to read the ``exp`` claim of tokens the client already holds;
    the identity pool verifies signatures on every exchange.
    """
    try:
        payload = token.split(".")[1]
        padded = payload + "=" * (-len(payload) % 4)
        return json.loads(base64.urlsafe_b64decode(padded.encode("utf-8")))
    except (IndexError, ValueError, binascii.Error):
        return {}


def token_expiry(token: Optional[str]) -> Optional[datetime]:
    """Return the ``exp`` claim of a JWT as an aware datetime, if present."""
    if not token:
        return None
    exp = token_claims(token).get("exp")
    if not isinstance(exp, (int, float)):
        return None
    return datetime.fromtimestamp(exp, tz=timezone.utc)


__all__ = ["ScopedCredentialSet", "SessionTokens", "token_claims", "token_expiry"]
