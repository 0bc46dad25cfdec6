try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from conftest import id_token_expiring_in
from fixit.core.errors import (
    CredentialsExpired,
    ExchangeUnavailable,
    FederationDenied,
    NotInitialized,
)
from fixit.models.credentials import ScopedCredentialSet, SessionTokens, token_expiry
from fixit.services.credentials import CredentialExchangeService, CredentialSession

pytestmark = pytest.mark.anyio("asyncio")


def _credentials(expires_in: timedelta) -> ScopedCredentialSet:
    return ScopedCredentialSet(
        identity_id="us-east-1:identity-1",
        access_key_id="ASIA0001",
        secret_key="secret",
        session_token="session",
        expiration=datetime.now(timezone.utc) + expires_in,
    )


class RecordingRefresher:
    def __init__(self, *, expires_in: timedelta = timedelta(hours=1), error=None) -> None:
        self.calls: list[str] = []
        self._expires_in = expires_in
        self._error = error

    async def __call__(self, id_token: str) -> ScopedCredentialSet:
        self.calls.append(id_token)
        if self._error is not None:
            raise self._error
        return _credentials(self._expires_in)


async def test_exchange_returns_scoped_credentials(identity_pool) -> None:
    service = CredentialExchangeService(identity_pool)

    first = await service.exchange(id_token_expiring_in(3600))
    second = await service.refresh(id_token_expiring_in(3600))

    assert first.identity_id == "us-east-1:identity-1"
    assert first.to_wire()["accessKeyId"] == "ASIA0001"
    assert second.access_key_id != first.access_key_id


@pytest.mark.parametrize(
    ("code", "error"),
    [
        ("NotAuthorizedException", FederationDenied),
        ("ResourceNotFoundException", FederationDenied),
        ("InternalErrorException", ExchangeUnavailable),
    ],
)
async def test_exchange_error_mapping(identity_pool, code, error) -> None:
    identity_pool.fail_with = code
    service = CredentialExchangeService(identity_pool)

    with pytest.raises(error):
        await service.exchange("id-token")


async def test_ensure_usable_before_any_exchange() -> None:
    session = CredentialSession(RecordingRefresher())

    with pytest.raises(NotInitialized):
        session.ensure_usable()


async def test_ensure_usable_rejects_expired_set_even_with_pending_refresh() -> None:
    now = datetime.now(timezone.utc)
    session = CredentialSession(RecordingRefresher(), clock=lambda: now)
    session.adopt(
        SessionTokens(access_token="a", id_token=id_token_expiring_in(3600)),
        _credentials(timedelta(hours=1)),
    )
    assert session.refresh_pending

    later = now + timedelta(hours=2)
    session._clock = lambda: later

    with pytest.raises(CredentialsExpired):
        session.ensure_usable()
    await session.aclose()


async def test_expired_access_pulls_refresh_forward() -> None:
    refresher = RecordingRefresher(expires_in=timedelta(hours=3))
    now = datetime.now(timezone.utc)
    session = CredentialSession(refresher, clock=lambda: now)
    id_token = id_token_expiring_in(7200)
    session.adopt(SessionTokens(access_token="a", id_token=id_token), _credentials(timedelta(hours=1)))

    # The wall clock jumps past expiry while the timer is still sleeping.
    session._clock = lambda: now + timedelta(minutes=61)
    with pytest.raises(CredentialsExpired):
        session.ensure_usable()
    for _ in range(5):
        await asyncio.sleep(0)

    assert refresher.calls == [id_token]
    await session.aclose()


def test_expiration_boundary_counts_as_expired() -> None:
    credentials = _credentials(timedelta(hours=1))

    assert credentials.is_expired(credentials.expiration)
    assert not credentials.is_expired(credentials.expiration - timedelta(seconds=1))


async def test_rearming_cancels_previous_timer() -> None:
    session = CredentialSession(RecordingRefresher())
    session.adopt(
        SessionTokens(access_token="a", id_token=id_token_expiring_in(3600)),
        _credentials(timedelta(hours=1)),
    )
    first_timer = session._timer

    session.schedule_auto_refresh(datetime.now(timezone.utc) + timedelta(hours=2))
    for _ in range(3):
        await asyncio.sleep(0)

    assert first_timer is not None and first_timer.cancelled()
    assert session._timer is not first_timer
    assert session.refresh_pending
    await session.aclose()


async def test_timer_refreshes_before_expiry() -> None:
    refresher = RecordingRefresher()
    session = CredentialSession(refresher, refresh_lead=timedelta(minutes=5))
    id_token = id_token_expiring_in(3600)

    # Expiring inside the refresh lead fires the timer immediately.
    session.adopt(
        SessionTokens(access_token="a", id_token=id_token),
        _credentials(timedelta(minutes=1)),
    )
    for _ in range(5):
        await asyncio.sleep(0)

    assert refresher.calls == [id_token]
    assert session.ensure_usable().expires_in() > 3000
    assert session.refresh_pending
    await session.aclose()


async def test_expired_id_token_signs_out() -> None:
    refresher = RecordingRefresher()
    signed_out: list[bool] = []
    session = CredentialSession(refresher, on_sign_out=lambda: signed_out.append(True))

    session.adopt(
        SessionTokens(access_token="a", id_token=id_token_expiring_in(-60)),
        _credentials(timedelta(minutes=1)),
    )
    for _ in range(5):
        await asyncio.sleep(0)

    assert refresher.calls == []
    assert signed_out == [True]
    assert session.credentials is None
    with pytest.raises(NotInitialized):
        session.ensure_usable()


async def test_failed_refresh_signs_out() -> None:
    refresher = RecordingRefresher(error=ExchangeUnavailable())
    signed_out: list[bool] = []
    session = CredentialSession(refresher, on_sign_out=lambda: signed_out.append(True))

    session.adopt(
        SessionTokens(access_token="a", id_token=id_token_expiring_in(3600)),
        _credentials(timedelta(minutes=1)),
    )
    for _ in range(5):
        await asyncio.sleep(0)

    assert len(refresher.calls) == 1
    assert signed_out == [True]
    assert session.tokens is None
    assert not session.refresh_pending


@pytest.mark.parametrize(
    "error",
    [
        httpx.ConnectError("connection refused"),
        KeyError("awsCredentials"),
    ],
)
async def test_unexpected_refresh_error_signs_out(error) -> None:
    refresher = RecordingRefresher(error=error)
    signed_out: list[bool] = []
    session = CredentialSession(refresher, on_sign_out=lambda: signed_out.append(True))

    session.adopt(
        SessionTokens(access_token="a", id_token=id_token_expiring_in(3600)),
        _credentials(timedelta(minutes=1)),
    )
    for _ in range(5):
        await asyncio.sleep(0)

    assert signed_out == [True]
    assert session.credentials is None
    assert not session.refresh_pending


async def test_refresh_without_tokens() -> None:
    session = CredentialSession(RecordingRefresher())

    with pytest.raises(NotInitialized):
        await session.refresh()


def test_token_expiry_reads_exp_claim() -> None:
    token = id_token_expiring_in(120)

    expiry = token_expiry(token)

    assert expiry is not None
    assert 0 < (expiry - datetime.now(timezone.utc)).total_seconds() <= 120
    assert token_expiry("not-a-jwt") is None
