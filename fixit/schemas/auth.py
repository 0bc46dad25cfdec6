"""Schemas for sign-up, login, confirmation and credential refresh."""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SignupRequest(_WireModel):
    """Fields are optional here so missing ones produce the domain's own 400s."""

    email: Optional[str] = None
    password: Optional[str] = None
    full_name: Optional[str] = Field(None, alias="fullName")
    role: Optional[str] = Field(None, description="seeker, provider or owner.")
    service_type: Optional[str] = Field(
        None,
        alias="serviceType",
        description="Trade category; required when role is provider.",
    )
    address: Optional[str] = None


class LoginRequest(_WireModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ConfirmRequest(_WireModel):
    email: Optional[str] = None
    verification_code: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("verificationCode", "code"),
        description="Six-digit code delivered by email.",
    )
    pending_login: Optional[str] = Field(
        None,
        alias="pendingLogin",
        description="Opaque token returned by a login attempt of the unconfirmed user.",
    )


class RefreshRequest(_WireModel):
    id_token: Optional[str] = Field(None, alias="idToken")


__all__ = ["ConfirmRequest", "LoginRequest", "RefreshRequest", "SignupRequest"]
