"""
Closed set of account roles.

A role is one of :class:`Seeker`, :class:`Owner` or :class:`Provider`; only a
provider carries a service category. Code that behaves differently per role
dispatches over these classes instead of comparing role strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True, slots=True)
class Seeker:
    name = "seeker"


@dataclass(frozen=True, slots=True)
class Owner:
    name = "owner"


@dataclass(frozen=True, slots=True)
class Provider:
    service_category: str
    name = "provider"


Role = Union[Seeker, Owner, Provider]

ROLE_NAMES: tuple[str, ...] = ("seeker", "provider", "owner")


def parse_role(name: str, service_category: Optional[str] = None) -> Role:
    """Build a role from its wire name, raising ``ValueError`` when invalid."""
    normalized = (name or "").strip().lower()
    if normalized == "seeker":
        return Seeker()
    if normalized == "owner":
        return Owner()
    if normalized == "provider":
        category = (service_category or "").strip()
        if not category:
            raise ValueError("Service type is required for providers")
        return Provider(service_category=category)
    raise ValueError(f"Unknown role {name!r}")


def role_from_attributes(attributes: dict[str, str]) -> Role:
    """Read the role stored on an identity, defaulting to seeker."""
    name = (attributes.get("custom:role") or "seeker").strip().lower()
    if name == "provider":
        # Stored providers are trusted even when the category attribute is gone.
        return Provider(service_category=attributes.get("custom:serviceType") or "")
    try:
        return parse_role(name)
    except ValueError:
        return Seeker()


def service_category(role: Role) -> Optional[str]:
    if isinstance(role, Provider):
        return role.service_category
    if isinstance(role, (Seeker, Owner)):
        return None
    raise TypeError(f"Unhandled role {role!r}")


__all__ = [
    "ROLE_NAMES",
    "Owner",
    "Provider",
    "Role",
    "Seeker",
    "parse_role",
    "role_from_attributes",
    "service_category",
]
