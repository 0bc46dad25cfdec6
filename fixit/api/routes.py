"""
FastAPI routes for the FixIt marketplace backend.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, Header, Query, UploadFile
from fastapi.responses import JSONResponse

from fixit.core.config import AppSettings
from fixit.core.errors import FixItError, InvalidAccessToken, NotConfirmed, ValidationFailed
from fixit.dependencies import (
    get_app_settings,
    get_credential_exchange_service,
    get_identity_service,
    get_marketplace_service,
    get_pending_login_cipher,
    get_profile_service,
    get_upload_service,
)
from fixit.schemas import (
    ConfirmRequest,
    HireRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RefreshRequest,
    SignupRequest,
)
from fixit.services import (
    CredentialExchangeService,
    IdentityProviderService,
    MarketplaceService,
    PendingLoginCipher,
    ProfileService,
    UploadKind,
    UploadService,
)

router = APIRouter()
logger = logging.getLogger(__name__)

_MANUAL_LOGIN_MESSAGE = "Please log in with your credentials."


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise InvalidAccessToken("Access token required", code="MISSING_ACCESS_TOKEN")
    token = authorization[len("Bearer "):].strip()
    if not token:
        raise InvalidAccessToken("Access token required", code="MISSING_ACCESS_TOKEN")
    return token


async def _login(
    identity: IdentityProviderService,
    exchange: CredentialExchangeService,
    *,
    email: Optional[str],
    password: Optional[str],
) -> Dict[str, Any]:
    """Authenticate, then federate the ID token; returns the session payload."""
    result = await identity.authenticate(email=email, password=password)
    credentials = await exchange.exchange(result.tokens.id_token)
    return {
        "tokens": {
            "accessToken": result.tokens.access_token,
            "idToken": result.tokens.id_token,
            "refreshToken": result.tokens.refresh_token,
        },
        "user": result.user.to_wire(),
        "awsCredentials": credentials.to_wire(),
        "identityId": credentials.identity_id,
    }


@router.post("/auth/signup", status_code=HTTPStatus.CREATED)
async def signup(
    payload: SignupRequest,
    identity: Annotated[IdentityProviderService, Depends(get_identity_service)],
) -> dict:
    """Register a seeker, provider or owner account."""
    registration = await identity.register(
        email=payload.email,
        password=payload.password,
        display_name=payload.full_name,
        role=payload.role,
        address=payload.address,
        service_category=payload.service_type,
    )
    return {
        "success": True,
        "message": "User registered successfully. Please check your email for verification code.",
        "data": {
            "userId": registration.subject_id,
            "email": payload.email,
            "userConfirmed": registration.confirmed,
        },
    }


@router.post("/auth/login", status_code=HTTPStatus.OK)
async def login(
    payload: LoginRequest,
    identity: Annotated[IdentityProviderService, Depends(get_identity_service)],
    exchange: Annotated[CredentialExchangeService, Depends(get_credential_exchange_service)],
    cipher: Annotated[PendingLoginCipher, Depends(get_pending_login_cipher)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
) -> Any:
    """Password login returning tokens, the user and scoped AWS credentials."""
    try:
        session = await _login(
            identity, exchange, email=payload.email, password=payload.password
        )
    except NotConfirmed as exc:
        body = exc.to_envelope(include_details=not settings.is_production)
        body["pendingLogin"] = cipher.seal(
            email=payload.email or "", password=payload.password or ""
        )
        return JSONResponse(status_code=exc.status_code, content=body)
    return {"success": True, "message": "Login successful", **session}


async def _confirm(
    payload: ConfirmRequest,
    identity: IdentityProviderService,
    exchange: CredentialExchangeService,
    cipher: PendingLoginCipher,
) -> dict:
    await identity.confirm_registration(
        email=payload.email, code=payload.verification_code
    )
    pending = None
    if payload.pending_login:
        pending = cipher.unseal(payload.pending_login, email=payload.email or "")
    if pending is None:
        return {
            "success": True,
            "message": f"Email verified successfully. {_MANUAL_LOGIN_MESSAGE}",
            "autoLogin": False,
        }

    try:
        session = await _login(
            identity, exchange, email=pending.email, password=pending.password
        )
    except FixItError as exc:
        logger.warning("Auto-login after confirmation failed for %s: %s", payload.email, exc.message)
        return {
            "success": True,
            "message": f"Email verified successfully. {_MANUAL_LOGIN_MESSAGE}",
            "autoLogin": False,
        }
    return {
        "success": True,
        "message": "Email verified successfully. You are now logged in.",
        "autoLogin": True,
        "session": session,
    }


@router.post("/auth/confirm", status_code=HTTPStatus.OK)
async def confirm(
    payload: ConfirmRequest,
    identity: Annotated[IdentityProviderService, Depends(get_identity_service)],
    exchange: Annotated[CredentialExchangeService, Depends(get_credential_exchange_service)],
    cipher: Annotated[PendingLoginCipher, Depends(get_pending_login_cipher)],
) -> dict:
    """Confirm the emailed code and, given a pending login, sign the user in."""
    return await _confirm(payload, identity, exchange, cipher)


@router.post("/auth/verify", status_code=HTTPStatus.OK)
async def verify(
    payload: ConfirmRequest,
    identity: Annotated[IdentityProviderService, Depends(get_identity_service)],
    exchange: Annotated[CredentialExchangeService, Depends(get_credential_exchange_service)],
    cipher: Annotated[PendingLoginCipher, Depends(get_pending_login_cipher)],
) -> dict:
    return await _confirm(payload, identity, exchange, cipher)


@router.post("/auth/refresh", status_code=HTTPStatus.OK)
async def refresh_credentials(
    payload: RefreshRequest,
    exchange: Annotated[CredentialExchangeService, Depends(get_credential_exchange_service)],
) -> dict:
    """Exchange a still-valid ID token for a fresh credential set."""
    if not payload.id_token:
        raise ValidationFailed("ID token is required", code="MISSING_ID_TOKEN")
    credentials = await exchange.refresh(payload.id_token)
    return {
        "success": True,
        "message": "Credentials refreshed successfully",
        "awsCredentials": credentials.to_wire(),
        "identityId": credentials.identity_id,
    }


@router.post("/upload", status_code=HTTPStatus.OK)
async def upload_file(
    uploads: Annotated[UploadService, Depends(get_upload_service)],
    file: Optional[UploadFile] = File(default=None),
    user_id: Optional[str] = Form(default=None, alias="userId"),
    file_type: str = Form(default=UploadKind.PROFILE.value, alias="fileType"),
) -> dict:
    """Store a profile or job photo and return its public URL."""
    if file is None:
        raise ValidationFailed("No file uploaded", code="NO_FILE")
    key = uploads.build_object_key(user_id or "", file_type, file.filename)
    data = await file.read()
    file_url = await uploads.store(data, key, file.content_type or "")
    return {
        "success": True,
        "message": "File uploaded successfully",
        "fileUrl": file_url,
        "key": key,
    }


@router.get("/upload/signed-url", status_code=HTTPStatus.OK)
async def signed_url(
    uploads: Annotated[UploadService, Depends(get_upload_service)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    key: str = Query(..., min_length=1),
    expires_in: Optional[int] = Query(default=None, alias="expiresIn", gt=0),
) -> dict:
    """Temporary read URL for a stored object."""
    ttl = expires_in or settings.upload.signed_url_ttl_seconds
    url = await uploads.signed_url(key, ttl)
    return {"success": True, "url": url, "expiresIn": ttl}


@router.get("/profile/details", status_code=HTTPStatus.OK)
async def profile_details(
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
    authorization: Optional[str] = Header(default=None),
) -> dict:
    record = await profiles.details(_bearer_token(authorization))
    return {"success": True, "data": record}


@router.post("/profile/update", status_code=HTTPStatus.OK)
async def profile_update(
    payload: ProfileUpdateRequest,
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
    authorization: Optional[str] = Header(default=None),
) -> dict:
    """Update the caller's profile; fullName and address are mandatory."""
    record = await profiles.update(_bearer_token(authorization), payload.changes())
    return {"success": True, "message": "Profile updated successfully", "data": record}


@router.post("/hire", status_code=HTTPStatus.CREATED)
async def hire(
    payload: HireRequest,
    marketplace: Annotated[MarketplaceService, Depends(get_marketplace_service)],
) -> dict:
    """Record a pending service request against a provider."""
    record = await marketplace.create_service_request(
        worker_id=payload.worker_id,
        customer_id=payload.customer_id,
        service_type=payload.service_type,
        description=payload.description,
    )
    return {
        "success": True,
        "message": "Service request created successfully",
        "data": record,
    }


@router.get("/services", status_code=HTTPStatus.OK)
async def list_services(
    marketplace: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    service_type: Optional[str] = Query(default=None, alias="serviceType"),
) -> dict:
    providers = await marketplace.list_providers(service_type)
    return {
        "success": True,
        "count": len(providers),
        "data": providers,
        "filter": service_type or None,
    }


@router.get("/test", status_code=HTTPStatus.OK)
async def api_test() -> dict:
    return {
        "message": "API is working",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/config", status_code=HTTPStatus.OK)
async def public_config(
    settings: Annotated[AppSettings, Depends(get_app_settings)],
) -> dict:
    """Public AWS configuration; never includes credentials."""
    return {
        "region": settings.aws.region_name,
        "s3Bucket": settings.aws.s3_bucket,
        "cognitoUserPoolId": settings.aws.user_pool_id,
        "cognitoClientId": settings.aws.client_id,
    }


__all__ = ["router"]
