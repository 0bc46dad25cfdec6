"""
Amazon Cognito wrappers: the user pool (identity provider) and the identity
pool (credential federation).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import boto3

from fixit.clients.aws_common import client_kwargs, run_aws_call
from fixit.core.config import AWSSettings


class CognitoUserPoolClient:
    """Sign-up, password authentication and confirmation against a user pool."""

    def __init__(self, settings: AWSSettings, client: Optional[Any] = None) -> None:
        self._settings = settings
        self._client = client or boto3.client("cognito-idp", **client_kwargs(settings))

    async def sign_up(
        self, *, username: str, password: str, attributes: Dict[str, str]
    ) -> Dict[str, Any]:
        """Register a user; returns the raw ``SignUp`` response."""
        user_attributes: List[Dict[str, str]] = [
            {"Name": name, "Value": value} for name, value in attributes.items()
        ]
        return await run_aws_call(
            "cognito-idp:SignUp",
            lambda: self._client.sign_up(
                ClientId=self._settings.client_id,
                Username=username,
                Password=password,
                UserAttributes=user_attributes,
            ),
        )

    async def initiate_password_auth(self, *, username: str, password: str) -> Dict[str, Any]:
        """Run the USER_PASSWORD_AUTH flow."""
        return await run_aws_call(
            "cognito-idp:InitiateAuth",
            lambda: self._client.initiate_auth(
                AuthFlow="USER_PASSWORD_AUTH",
                ClientId=self._settings.client_id,
                AuthParameters={"USERNAME": username, "PASSWORD": password},
            ),
        )

    async def get_user(self, *, access_token: str) -> Dict[str, Any]:
        return await run_aws_call(
            "cognito-idp:GetUser",
            lambda: self._client.get_user(AccessToken=access_token),
        )

    async def confirm_sign_up(self, *, username: str, code: str) -> None:
        await run_aws_call(
            "cognito-idp:ConfirmSignUp",
            lambda: self._client.confirm_sign_up(
                ClientId=self._settings.client_id,
                Username=username,
                ConfirmationCode=code,
            ),
        )


class CognitoIdentityPoolClient:
    """Federate user pool ID tokens into temporary AWS credentials."""

    def __init__(self, settings: AWSSettings, client: Optional[Any] = None) -> None:
        self._settings = settings
        self._client = client or boto3.client("cognito-identity", **client_kwargs(settings))

    def _logins(self, id_token: str) -> Dict[str, str]:
        return {self._settings.identity_provider_name: id_token}

    async def get_identity_id(self, *, id_token: str) -> str:
        response = await run_aws_call(
            "cognito-identity:GetId",
            lambda: self._client.get_id(
                IdentityPoolId=self._settings.identity_pool_id,
                Logins=self._logins(id_token),
            ),
        )
        return response["IdentityId"]

    async def get_credentials(self, *, identity_id: str, id_token: str) -> Dict[str, Any]:
        """Return the raw ``Credentials`` block, or an empty dict when absent."""
        response = await run_aws_call(
            "cognito-identity:GetCredentialsForIdentity",
            lambda: self._client.get_credentials_for_identity(
                IdentityId=identity_id,
                Logins=self._logins(id_token),
            ),
        )
        return response.get("Credentials") or {}


__all__ = ["CognitoIdentityPoolClient", "CognitoUserPoolClient"]
