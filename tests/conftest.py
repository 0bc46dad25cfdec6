"""Pytest configuration shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import base64
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import pytest

from fixit.clients import AWSServiceError

CONFIRMATION_CODE = "123456"


def make_jwt(claims: Dict[str, Any]) -> str:
    """Unsigned JWT carrying ``claims``; good enough for reading ``exp``."""

    def _segment(payload: Dict[str, Any]) -> str:
        raw = json.dumps(payload).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")

    return f"{_segment({'alg': 'none'})}.{_segment(claims)}.signature"


def id_token_expiring_in(seconds: float) -> str:
    exp = datetime.now(timezone.utc) + timedelta(seconds=seconds)
    return make_jwt({"exp": int(exp.timestamp()), "token_use": "id"})


class FakeUserPool:
    """In-memory stand-in for the user pool client."""

    def __init__(self) -> None:
        self.users: Dict[str, Dict[str, Any]] = {}
        self.calls: list[str] = []

    def add_user(
        self,
        email: str,
        password: str,
        *,
        confirmed: bool = True,
        attributes: Optional[Dict[str, str]] = None,
    ) -> str:
        sub = f"sub-{len(self.users) + 1}"
        self.users[email] = {
            "sub": sub,
            "password": password,
            "confirmed": confirmed,
            "attributes": {"email": email, "name": email.split("@")[0], **(attributes or {})},
        }
        return sub

    def _error(self, code: str, operation: str) -> AWSServiceError:
        return AWSServiceError(code, f"{code} raised by fake", operation=operation)

    async def sign_up(self, *, username: str, password: str, attributes: Dict[str, str]) -> Dict[str, Any]:
        self.calls.append("sign_up")
        if username in self.users:
            raise self._error("UsernameExistsException", "SignUp")
        sub = self.add_user(username, password, confirmed=False, attributes=attributes)
        return {"UserSub": sub, "UserConfirmed": False}

    async def initiate_password_auth(self, *, username: str, password: str) -> Dict[str, Any]:
        self.calls.append("initiate_auth")
        user = self.users.get(username)
        if user is None:
            raise self._error("UserNotFoundException", "InitiateAuth")
        if user["password"] != password:
            raise self._error("NotAuthorizedException", "InitiateAuth")
        if not user["confirmed"]:
            raise self._error("UserNotConfirmedException", "InitiateAuth")
        return {
            "AuthenticationResult": {
                "AccessToken": f"access-{user['sub']}",
                "IdToken": id_token_expiring_in(3600),
                "RefreshToken": f"refresh-{user['sub']}",
            }
        }

    async def get_user(self, *, access_token: str) -> Dict[str, Any]:
        self.calls.append("get_user")
        for user in self.users.values():
            if access_token == f"access-{user['sub']}":
                return {
                    "Username": user["sub"],
                    "UserAttributes": [
                        {"Name": name, "Value": value}
                        for name, value in user["attributes"].items()
                    ],
                }
        raise self._error("NotAuthorizedException", "GetUser")

    async def confirm_sign_up(self, *, username: str, code: str) -> None:
        self.calls.append("confirm_sign_up")
        user = self.users.get(username)
        if user is None:
            raise self._error("UserNotFoundException", "ConfirmSignUp")
        if user["confirmed"]:
            raise self._error("NotAuthorizedException", "ConfirmSignUp")
        if code != CONFIRMATION_CODE:
            raise self._error("CodeMismatchException", "ConfirmSignUp")
        user["confirmed"] = True


class FakeIdentityPool:
    """Identity pool stand-in issuing one-hour credentials."""

    def __init__(self) -> None:
        self.fail_with: Optional[str] = None
        self.issued = 0

    async def get_identity_id(self, *, id_token: str) -> str:
        if self.fail_with:
            raise AWSServiceError(self.fail_with, "rejected", operation="GetId")
        return "us-east-1:identity-1"

    async def get_credentials(self, *, identity_id: str, id_token: str) -> Dict[str, Any]:
        self.issued += 1
        return {
            "AccessKeyId": f"ASIA{self.issued:04d}",
            "SecretKey": "secret",
            "SessionToken": f"session-{self.issued}",
            "Expiration": datetime.now(timezone.utc) + timedelta(hours=1),
        }


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def user_pool() -> FakeUserPool:
    return FakeUserPool()


@pytest.fixture
def identity_pool() -> FakeIdentityPool:
    return FakeIdentityPool()


class ApiHarness:
    """Services wired to fakes and moto, installed as dependency overrides."""

    def __init__(self, user_pool: FakeUserPool, identity_pool: FakeIdentityPool) -> None:
        from fixit.clients import DynamoDBClient, S3Client
        from fixit.core.config import AWSSettings, UploadSettings
        from fixit.services import (
            CredentialExchangeService,
            EntityRepository,
            IdentityProviderService,
            MarketplaceService,
            PendingLoginCipher,
            ProfileService,
            UploadService,
        )

        aws = AWSSettings()
        self.user_pool = user_pool
        self.identity_pool = identity_pool
        self.identity = IdentityProviderService(user_pool)
        self.exchange = CredentialExchangeService(identity_pool)
        self.repository = EntityRepository(DynamoDBClient(aws), aws)
        self.marketplace = MarketplaceService(self.repository)
        self.profiles = ProfileService(self.identity, self.repository)
        self.uploads = UploadService(S3Client(aws), UploadSettings(max_bytes=1024))
        self.cipher = PendingLoginCipher(secret="test-pending-login-secret")
        self.bucket = aws.s3_bucket


@pytest.fixture
def api(user_pool, identity_pool):
    import boto3
    from moto import mock_aws

    from fixit import dependencies
    from fixit.main import app

    with mock_aws():
        boto3.resource("dynamodb", region_name="us-east-1").create_table(
            TableName="FixIt",
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
            ],
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        boto3.client("s3", region_name="us-east-1").create_bucket(Bucket="fixit-test-bucket")

        harness = ApiHarness(user_pool, identity_pool)
        app.dependency_overrides.clear()
        app.dependency_overrides.update(
            {
                dependencies.get_identity_service: lambda: harness.identity,
                dependencies.get_credential_exchange_service: lambda: harness.exchange,
                dependencies.get_entity_repository: lambda: harness.repository,
                dependencies.get_marketplace_service: lambda: harness.marketplace,
                dependencies.get_profile_service: lambda: harness.profiles,
                dependencies.get_upload_service: lambda: harness.uploads,
                dependencies.get_pending_login_cipher: lambda: harness.cipher,
            }
        )
        yield harness
        app.dependency_overrides.clear()


@pytest.fixture
async def client(api):
    import httpx

    from fixit.main import app

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    ) as test_client:
        yield test_client
