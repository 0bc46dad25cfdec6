"""
Single-table key scheme.

Users, providers and service requests share one physical DynamoDB table. The
partition key is ``<ENTITY_TYPE>#<id>``; the entity prefix is the only thing
that tells the logical record types apart.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional

from fixit.models.roles import Owner, Provider, Role, Seeker

PARTITION_KEY = "PK"
SORT_KEY = "SK"


class EntityType(str, Enum):
    USER = "user"
    PROVIDER = "provider"
    REQUEST = "request"

    @property
    def prefix(self) -> str:
        return f"{self.name}#"

    @property
    def sort_key(self) -> str:
        return _SORT_KEYS[self]

    @classmethod
    def parse(cls, value: "EntityType | str") -> "EntityType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown entity type {value!r}") from None


_SORT_KEYS: Dict[EntityType, str] = {
    EntityType.USER: "PROFILE#INFO",
    EntityType.PROVIDER: "PROFILE#INFO",
    EntityType.REQUEST: "REQUEST#INFO",
}

_PROFILE_FIELDS = frozenset({"fullName", "address", "profileURL", "email", "role"})

UPDATABLE_FIELDS: Dict[EntityType, FrozenSet[str]] = {
    EntityType.USER: _PROFILE_FIELDS,
    EntityType.PROVIDER: _PROFILE_FIELDS
    | {"serviceType", "experience", "dailyRate", "hourlyRate"},
    EntityType.REQUEST: frozenset({"status", "description"}),
}


@dataclass(frozen=True, slots=True)
class EntityKey:
    """Primary key of one record in the shared table."""

    entity_type: EntityType
    entity_id: str

    @property
    def partition_key(self) -> str:
        return f"{self.entity_type.prefix}{self.entity_id}"

    def as_dynamo_key(self, *, use_sort_key: bool) -> Dict[str, str]:
        key = {PARTITION_KEY: self.partition_key}
        if use_sort_key:
            key[SORT_KEY] = self.entity_type.sort_key
        return key


def entity_type_for_role(role: Role) -> EntityType:
    """Profiles of providers live under ``PROVIDER#``; everyone else under ``USER#``."""
    if isinstance(role, Provider):
        return EntityType.PROVIDER
    if isinstance(role, (Seeker, Owner)):
        return EntityType.USER
    raise TypeError(f"Unhandled role {role!r}")


def entity_type_for_prefix(prefix: str) -> Optional[EntityType]:
    """Return the entity type when ``prefix`` is exactly a type prefix."""
    for entity_type in EntityType:
        if prefix == entity_type.prefix:
            return entity_type
    return None


__all__ = [
    "EntityKey",
    "EntityType",
    "PARTITION_KEY",
    "SORT_KEY",
    "UPDATABLE_FIELDS",
    "entity_type_for_prefix",
    "entity_type_for_role",
]
