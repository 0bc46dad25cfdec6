"""
Profile records of the authenticated caller.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

from fixit.core.errors import NotFound, ValidationFailed
from fixit.models.entities import entity_type_for_role
from fixit.models.roles import Owner, Provider, Role, Seeker
from fixit.services.entities import EntityRepository
from fixit.services.identity import IdentityProviderService, UserIdentity

logger = logging.getLogger(__name__)

_COMMON_FIELDS = ("fullName", "address", "profileURL")
_PROVIDER_FIELDS = ("serviceType", "experience", "dailyRate", "hourlyRate")


def editable_fields(role: Role) -> tuple[str, ...]:
    if isinstance(role, Provider):
        return _COMMON_FIELDS + _PROVIDER_FIELDS
    if isinstance(role, (Seeker, Owner)):
        return _COMMON_FIELDS
    raise TypeError(f"Unhandled role {role!r}")


class ProfileService:
    """Read and update the caller's own profile record."""

    def __init__(
        self, identity_service: IdentityProviderService, repository: EntityRepository
    ) -> None:
        self._identity = identity_service
        self._repository = repository

    async def resolve(self, access_token: str) -> UserIdentity:
        return await self._identity.describe_user(access_token)

    async def details(self, access_token: str) -> Dict[str, Any]:
        user = await self.resolve(access_token)
        logger.info("Fetching profile for %s (%s)", user.subject_id, user.role.name)
        record = await self._repository.get_entity(
            entity_type_for_role(user.role), user.subject_id
        )
        if record is None:
            raise NotFound("User profile not found", code="PROFILE_NOT_FOUND")
        return record

    async def update(self, access_token: str, changes: Mapping[str, Any]) -> Dict[str, Any]:
        """Update the caller's profile; fields outside the role's set are ignored."""
        user = await self.resolve(access_token)
        if not changes.get("fullName") or not changes.get("address"):
            raise ValidationFailed(
                "fullName and address are required", code="MISSING_FIELDS"
            )
        patch = {
            name: changes[name]
            for name in editable_fields(user.role)
            if changes.get(name) is not None
        }
        logger.info("Updating profile for %s: %s", user.subject_id, ", ".join(sorted(patch)))
        return await self._repository.update_entity(
            entity_type_for_role(user.role), user.subject_id, patch
        )


__all__ = ["ProfileService", "editable_fields"]
