"""Sealed pending-login tokens used to log users in right after confirmation."""

from __future__ import annotations

import base64
import hashlib
import json
from dataclasses import dataclass
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken


@dataclass(frozen=True, slots=True)
class PendingLogin:
    email: str
    password: str


class PendingLoginCipher:
    """Seal credentials into an opaque, time-limited token using a derived Fernet key.

    The client only ever holds the sealed token, never the clear-text password.
    """

    def __init__(self, *, secret: str, ttl_seconds: int = 900) -> None:
        if not secret:
            raise ValueError("Pending login secret must be provided.")
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        key = base64.urlsafe_b64encode(digest)
        self._fernet = Fernet(key)
        self._ttl = ttl_seconds

    def seal(self, *, email: str, password: str) -> str:
        """Encrypt the credentials and return the token."""
        payload = json.dumps({"email": email, "password": password}).encode("utf-8")
        return self._fernet.encrypt(payload).decode("utf-8")

    def unseal(self, token: str, *, email: str) -> Optional[PendingLogin]:
        """Return the sealed credentials, or ``None`` if the token is unusable.

        Expired, tampered or foreign tokens, and tokens issued for another
        email address, are all treated as absent.
        """
        try:
            raw = self._fernet.decrypt(token.encode("utf-8"), ttl=self._ttl)
        except InvalidToken:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            return None
        if data.get("email", "").lower() != email.strip().lower():
            return None
        return PendingLogin(email=data["email"], password=data.get("password", ""))


__all__ = ["PendingLogin", "PendingLoginCipher"]
