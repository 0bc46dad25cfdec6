"""
Marketplace operations: hiring a provider and listing available providers.
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from typing import Any, Callable, Dict, Optional

from fixit.core.errors import ValidationFailed
from fixit.models.entities import EntityType
from fixit.services.entities import EntityRepository

logger = logging.getLogger(__name__)

SERVICE_TYPES: tuple[str, ...] = ("Plumber", "Electrician", "Carpenter", "Painter", "Welder")
REQUEST_STATUS_PENDING = "pending"
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
_SUFFIX_LENGTH = 9


def _random_suffix() -> str:
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(_SUFFIX_LENGTH))


class MarketplaceService:
    """Create service requests and enumerate providers in the shared table."""

    def __init__(
        self,
        repository: EntityRepository,
        *,
        clock_millis: Callable[[], int] = lambda: int(time.time() * 1000),
    ) -> None:
        self._repository = repository
        self._clock_millis = clock_millis

    async def create_service_request(
        self,
        *,
        worker_id: Optional[str],
        customer_id: Optional[str],
        service_type: Optional[str],
        description: Optional[str],
    ) -> Dict[str, Any]:
        if not worker_id or not customer_id or not service_type or not description:
            raise ValidationFailed(
                "workerId, customerId, serviceType, and description are required",
                code="MISSING_FIELDS",
            )
        if service_type not in SERVICE_TYPES:
            raise ValidationFailed(
                f"Service type must be one of: {', '.join(SERVICE_TYPES)}",
                code="INVALID_SERVICE_TYPE",
            )

        entity_id = f"{self._clock_millis()}_{_random_suffix()}"
        record = await self._repository.put_entity(
            EntityType.REQUEST,
            entity_id,
            {
                "requestId": f"req_{entity_id}",
                "workerId": worker_id,
                "customerId": customer_id,
                "serviceType": service_type,
                "description": description,
                "status": REQUEST_STATUS_PENDING,
            },
        )
        logger.info("Created service request %s for worker %s", record["requestId"], worker_id)
        return record

    async def list_providers(self, service_type: Optional[str] = None) -> list[Dict[str, Any]]:
        """All provider records, optionally narrowed to one service type.

        Backed by a prefix scan unless an entity-type index is configured.
        """
        providers = await self._repository.query_by_prefix(EntityType.PROVIDER.prefix)
        if service_type:
            providers = [
                provider for provider in providers if provider.get("serviceType") == service_type
            ]
        logger.info(
            "Found %d provider(s)%s",
            len(providers),
            f" offering {service_type}" if service_type else "",
        )
        return providers


__all__ = ["MarketplaceService", "REQUEST_STATUS_PENDING", "SERVICE_TYPES"]
