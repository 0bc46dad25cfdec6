"""
Credential exchange: federate user pool ID tokens into scoped AWS credentials
and keep a session's credentials fresh.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional

from fixit.clients import AWSServiceError, CognitoIdentityPoolClient
from fixit.core.errors import (
    CredentialsExpired,
    ExchangeUnavailable,
    FederationDenied,
    FixItError,
    NotInitialized,
)
from fixit.models.credentials import ScopedCredentialSet, SessionTokens, token_expiry

logger = logging.getLogger(__name__)

_FEDERATION_DENIED_CODES = {
    "NotAuthorizedException",
    "InvalidParameterException",
    "ResourceNotFoundException",
}

Refresher = Callable[[str], Awaitable[ScopedCredentialSet]]
Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CredentialExchangeService:
    """Stateless exchange of an ID token for temporary AWS credentials."""

    def __init__(self, identity_pool: CognitoIdentityPoolClient) -> None:
        self._identity_pool = identity_pool

    async def exchange(self, id_token: str) -> ScopedCredentialSet:
        """Resolve the federated identity, then fetch credentials for it."""
        if not id_token:
            raise FederationDenied("ID token is required")
        try:
            identity_id = await self._identity_pool.get_identity_id(id_token=id_token)
            credentials = await self._identity_pool.get_credentials(
                identity_id=identity_id, id_token=id_token
            )
        except AWSServiceError as exc:
            if exc.code in _FEDERATION_DENIED_CODES:
                raise FederationDenied(details=exc.message) from exc
            raise ExchangeUnavailable(details=exc.message) from exc

        if not credentials:
            raise ExchangeUnavailable(
                "Failed to get temporary credentials from Identity Pool"
            )

        scoped = ScopedCredentialSet(
            identity_id=identity_id,
            access_key_id=credentials["AccessKeyId"],
            secret_key=credentials["SecretKey"],
            session_token=credentials["SessionToken"],
            expiration=credentials["Expiration"],
        )
        logger.info(
            "Issued scoped credentials for %s expiring at %s",
            identity_id,
            scoped.expiration.isoformat(),
        )
        return scoped

    async def refresh(self, id_token: str) -> ScopedCredentialSet:
        """Same contract as :meth:`exchange`; always yields a fresh set."""
        return await self.exchange(id_token)


class CredentialSession:
    """Owns one session's tokens, scoped credentials and refresh timer.

    Only this object mutates the credential set. Anything using the scoped
    credentials must call :meth:`ensure_usable` before each storage call.
    """

    def __init__(
        self,
        refresher: Refresher,
        *,
        refresh_lead: timedelta = timedelta(minutes=5),
        on_sign_out: Optional[Callable[[], None]] = None,
        clock: Clock = _utcnow,
    ) -> None:
        self._refresher = refresher
        self._refresh_lead = refresh_lead
        self._on_sign_out = on_sign_out
        self._clock = clock
        self._tokens: Optional[SessionTokens] = None
        self._credentials: Optional[ScopedCredentialSet] = None
        self._timer: Optional[asyncio.Task[None]] = None
        self._refreshing = False

    @property
    def tokens(self) -> Optional[SessionTokens]:
        return self._tokens

    @property
    def credentials(self) -> Optional[ScopedCredentialSet]:
        return self._credentials

    @property
    def refresh_pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def adopt(self, tokens: SessionTokens, credentials: ScopedCredentialSet) -> None:
        """Install credentials obtained elsewhere (e.g. from a login response)."""
        self._tokens = tokens
        self._install(credentials)

    async def exchange(self, tokens: SessionTokens) -> ScopedCredentialSet:
        self._tokens = tokens
        credentials = await self._refresher(tokens.id_token)
        self._install(credentials)
        return credentials

    async def refresh(self) -> ScopedCredentialSet:
        if self._tokens is None:
            raise NotInitialized()
        credentials = await self._refresher(self._tokens.id_token)
        self._install(credentials)
        return credentials

    def ensure_usable(self) -> ScopedCredentialSet:
        """Return the current credentials, or fail if none or expired.

        Hitting an expired set also pulls the pending refresh forward so the
        next call can succeed.
        """
        if self._credentials is None:
            raise NotInitialized()
        now = self._clock()
        if self._credentials.is_expired(now):
            self._refresh_soon(now)
            raise CredentialsExpired()
        return self._credentials

    def schedule_auto_refresh(self, expiration: datetime) -> None:
        """Arm a one-shot refresh ``refresh_lead`` before ``expiration``.

        Arming replaces any pending timer.
        """
        self._cancel_timer()
        fire_at = expiration - self._refresh_lead
        if fire_at.tzinfo is None:
            fire_at = fire_at.replace(tzinfo=timezone.utc)
        delay = max(0.0, (fire_at - self._clock()).total_seconds())
        logger.debug("Credential refresh scheduled in %.1fs", delay)
        self._timer = asyncio.get_running_loop().create_task(
            self._refresh_after(delay)
        )

    def sign_out(self) -> None:
        """Drop all session state and hand control back to the login entry point."""
        self._cancel_timer()
        self._tokens = None
        self._credentials = None
        logger.info("Session signed out")
        if self._on_sign_out is not None:
            self._on_sign_out()

    async def aclose(self) -> None:
        timer = self._timer
        self._cancel_timer()
        if timer is not None:
            try:
                await timer
            except asyncio.CancelledError:
                pass

    def _install(self, credentials: ScopedCredentialSet) -> None:
        self._credentials = credentials
        self.schedule_auto_refresh(credentials.expiration)

    def _cancel_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None and not timer.done() and timer is not asyncio.current_task():
            timer.cancel()

    def _refresh_soon(self, now: datetime) -> None:
        if self._refreshing:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        self.schedule_auto_refresh(now + self._refresh_lead)

    def _id_token_usable(self) -> bool:
        if self._tokens is None or not self._tokens.id_token:
            return False
        expiry = token_expiry(self._tokens.id_token)
        return expiry is not None and self._clock() < expiry

    async def _refresh_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        if not self._id_token_usable():
            logger.warning("ID token unavailable or expired; signing out")
            self.sign_out()
            return
        self._refreshing = True
        try:
            await self.refresh()
        except FixItError as exc:
            logger.error("Automatic credential refresh failed: %s", exc.message)
            self.sign_out()
        except Exception:
            logger.exception("Automatic credential refresh failed unexpectedly")
            self.sign_out()
        else:
            logger.info("Scoped credentials refreshed automatically")
        finally:
            self._refreshing = False


__all__ = ["CredentialExchangeService", "CredentialSession"]
