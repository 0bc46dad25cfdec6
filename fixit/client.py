"""
Async client for the FixIt API.

Wraps ``httpx.AsyncClient`` and owns one :class:`CredentialSession`, so scoped
AWS credentials returned by login are refreshed through ``/api/auth/refresh``
before they expire.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Callable, Dict, Optional

import boto3
import httpx

from fixit.clients import DynamoDBClient, S3Client
from fixit.core.config import AWSSettings, UploadSettings
from fixit.core.errors import ContractViolation, RemoteError
from fixit.models.credentials import ScopedCredentialSet, SessionTokens
from fixit.services.credentials import CredentialSession
from fixit.services.entities import EntityRepository
from fixit.services.uploads import UploadService
from fixit.utils.http import RetryConfig, request_with_retry

logger = logging.getLogger(__name__)

NOT_CONFIRMED_CODE = "USER_NOT_CONFIRMED"


class FixItClient:
    """Typed access to the API plus the caller's scoped AWS session."""

    def __init__(
        self,
        base_url: str,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        retry_config: Optional[RetryConfig] = None,
        refresh_lead: timedelta = timedelta(minutes=5),
        on_sign_out: Optional[Callable[[], None]] = None,
        region_name: str = "us-east-1",
        endpoint_url: Optional[str] = None,
    ) -> None:
        self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=30.0)
        self._owns_http = http_client is None
        self._retry = retry_config or RetryConfig()
        self._region_name = region_name
        self._endpoint_url = endpoint_url
        # Sealed by the server; the clear-text password is never kept here.
        self._pending_login: Optional[str] = None
        self.session = CredentialSession(
            self.refresh_credentials,
            refresh_lead=refresh_lead,
            on_sign_out=on_sign_out,
        )

    async def __aenter__(self) -> "FixItClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.session.aclose()
        if self._owns_http:
            await self._http.aclose()

    @property
    def has_pending_login(self) -> bool:
        return self._pending_login is not None

    async def request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        """Send a request and return the decoded JSON body.

        Raises :class:`ContractViolation` when the body is not JSON and
        :class:`RemoteError` when it is an error envelope.
        """
        response = await request_with_retry(
            self._http.request, method, path, retry_config=self._retry, **kwargs
        )
        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type or not response.content:
            logger.error(
                "Non-JSON response from %s %s (status %s, content-type %r)",
                method,
                path,
                response.status_code,
                content_type,
            )
            raise ContractViolation(
                f"Server sent an invalid response format (status {response.status_code})",
                status=response.status_code,
                details=response.text[:200],
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ContractViolation(status=response.status_code, details=str(exc)) from exc

        if response.is_error or (isinstance(payload, dict) and payload.get("success") is False):
            raise RemoteError(payload if isinstance(payload, dict) else {}, status=response.status_code)
        return payload

    # Authentication ---------------------------------------------------------

    async def signup(
        self,
        *,
        email: str,
        password: str,
        full_name: str,
        role: str,
        address: str,
        service_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        body = {
            "email": email,
            "password": password,
            "fullName": full_name,
            "role": role,
            "address": address,
        }
        if service_type:
            body["serviceType"] = service_type
        return await self.request("POST", "/api/auth/signup", json=body)

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """Log in and start the credential session.

        An unconfirmed account raises :class:`RemoteError`; the sealed pending
        login it carries is kept for :meth:`confirm`.
        """
        try:
            payload = await self.request(
                "POST", "/api/auth/login", json={"email": email, "password": password}
            )
        except RemoteError as exc:
            if exc.code == NOT_CONFIRMED_CODE:
                self._pending_login = exc.payload.get("pendingLogin")
            raise
        self._pending_login = None
        self._adopt(payload)
        return payload

    async def confirm(self, email: str, code: str) -> Dict[str, Any]:
        """Confirm the account; signs in when the server replays a pending login.

        When ``autoLogin`` is false the caller should send the user to the
        login screen with the returned message.
        """
        body: Dict[str, Any] = {"email": email, "verificationCode": code}
        if self._pending_login:
            body["pendingLogin"] = self._pending_login
        payload = await self.request("POST", "/api/auth/confirm", json=body)
        self._pending_login = None
        if payload.get("autoLogin") and payload.get("session"):
            self._adopt(payload["session"])
        else:
            logger.info("Confirmation succeeded without auto-login")
        return payload

    async def refresh_credentials(self, id_token: str) -> ScopedCredentialSet:
        payload = await self.request("POST", "/api/auth/refresh", json={"idToken": id_token})
        return ScopedCredentialSet.from_wire(
            payload["awsCredentials"], identity_id=payload["identityId"]
        )

    def sign_out(self) -> None:
        self._pending_login = None
        self.session.sign_out()

    def _adopt(self, payload: Dict[str, Any]) -> None:
        tokens = payload["tokens"]
        self.session.adopt(
            SessionTokens(
                access_token=tokens["accessToken"],
                id_token=tokens["idToken"],
                refresh_token=tokens.get("refreshToken"),
            ),
            ScopedCredentialSet.from_wire(
                payload["awsCredentials"], identity_id=payload["identityId"]
            ),
        )

    def _bearer(self) -> Dict[str, str]:
        tokens = self.session.tokens
        return {"Authorization": f"Bearer {tokens.access_token}"} if tokens else {}

    # Profile ----------------------------------------------------------------

    async def profile_details(self) -> Dict[str, Any]:
        return await self.request("GET", "/api/profile/details", headers=self._bearer())

    async def update_profile(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request(
            "POST", "/api/profile/update", json=changes, headers=self._bearer()
        )

    # Marketplace ------------------------------------------------------------

    async def create_service_request(
        self, *, worker_id: str, customer_id: str, service_type: str, description: str
    ) -> Dict[str, Any]:
        return await self.request(
            "POST",
            "/api/hire",
            json={
                "workerId": worker_id,
                "customerId": customer_id,
                "serviceType": service_type,
                "description": description,
            },
        )

    async def list_providers(self, service_type: Optional[str] = None) -> Dict[str, Any]:
        params = {"serviceType": service_type} if service_type else None
        return await self.request("GET", "/api/services", params=params)

    # Uploads ----------------------------------------------------------------

    async def upload_photo(
        self,
        user_id: str,
        data: bytes,
        *,
        filename: str = "photo.jpg",
        content_type: str = "image/jpeg",
        file_type: str = "profile",
    ) -> Dict[str, Any]:
        return await self.request(
            "POST",
            "/api/upload",
            data={"userId": user_id, "fileType": file_type},
            files={"file": (filename, data, content_type)},
        )

    async def health(self) -> Dict[str, Any]:
        return await self.request("GET", "/health")

    # Scoped AWS access ------------------------------------------------------

    def aws_session(self) -> boto3.session.Session:
        """A boto3 session bound to the scoped credentials, checked for expiry."""
        credentials = self.session.ensure_usable()
        return boto3.session.Session(
            aws_access_key_id=credentials.access_key_id,
            aws_secret_access_key=credentials.secret_key,
            aws_session_token=credentials.session_token,
            region_name=self._region_name,
        )

    def dynamodb_table(self, table_name: str):
        return self.aws_session().resource(
            "dynamodb", endpoint_url=self._endpoint_url
        ).Table(table_name)

    def s3_client(self):
        return self.aws_session().client("s3", endpoint_url=self._endpoint_url)

    def entity_repository(self, settings: AWSSettings) -> EntityRepository:
        """Repository whose every call runs on the scoped credentials."""
        table_name = settings.dynamodb_table_name
        return EntityRepository(
            DynamoDBClient(settings, table_factory=lambda: self.dynamodb_table(table_name)),
            settings,
        )

    def upload_service(
        self, settings: AWSSettings, uploads: Optional[UploadSettings] = None
    ) -> UploadService:
        return UploadService(
            S3Client(settings, client_factory=self.s3_client),
            uploads or UploadSettings(),
        )


__all__ = ["FixItClient", "NOT_CONFIRMED_CODE"]
