"""
Single-table data access for users, providers and service requests.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from fixit.clients import AWSServiceError, DynamoDBClient
from fixit.core.config import AWSSettings
from fixit.core.errors import (
    ConditionFailed,
    FixItError,
    InvalidAttribute,
    InvalidKey,
    InvalidTableName,
    StoreUnavailable,
    ValidationFailed,
)
from fixit.models.entities import (
    PARTITION_KEY,
    SORT_KEY,
    UPDATABLE_FIELDS,
    EntityKey,
    EntityType,
    entity_type_for_prefix,
)

logger = logging.getLogger(__name__)

ENTITY_TYPE_ATTRIBUTE = "entityType"
_MANAGED_FIELDS = {PARTITION_KEY, SORT_KEY, ENTITY_TYPE_ATTRIBUTE, "createdAt", "updatedAt"}


def _translate(exc: AWSServiceError) -> FixItError:
    if exc.code == "ConditionalCheckFailedException":
        return ConditionFailed(details=exc.message)
    if exc.code == "ResourceNotFoundException":
        return InvalidTableName(details=exc.message)
    if exc.code == "ValidationException":
        return InvalidKey("The store rejected the item key", details=exc.message)
    return StoreUnavailable(details=exc.message)


def _timestamp(previous: Optional[str] = None) -> str:
    """Current UTC time, nudged past ``previous`` so updates strictly increase."""
    now = datetime.now(timezone.utc)
    if previous:
        try:
            prior = datetime.fromisoformat(previous)
        except ValueError:
            prior = None
        if prior is not None:
            if prior.tzinfo is None:
                prior = prior.replace(tzinfo=timezone.utc)
            if now <= prior:
                now = prior + timedelta(microseconds=1)
    return now.isoformat(timespec="microseconds")


def _to_store(value: Any) -> Any:
    """DynamoDB rejects floats; store them as ``Decimal``."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {name: _to_store(item) for name, item in value.items()}
    if isinstance(value, list):
        return [_to_store(item) for item in value]
    return value


def _from_store(value: Any) -> Any:
    """Turn stored ``Decimal`` numbers back into ints or floats."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {name: _from_store(item) for name, item in value.items()}
    if isinstance(value, list):
        return [_from_store(item) for item in value]
    return value


class EntityRepository:
    """Maps logical entities onto the shared table using ``<TYPE>#<id>`` keys."""

    def __init__(self, dynamodb_client: DynamoDBClient, settings: AWSSettings) -> None:
        self._ddb = dynamodb_client
        self._use_sort_key = settings.dynamodb_use_sort_key
        self._entity_type_index = settings.dynamodb_entity_type_index

    def build_key(self, entity_type: EntityType | str, entity_id: str) -> EntityKey:
        """Validate the identifier and build the entity's key."""
        try:
            parsed_type = EntityType.parse(entity_type)
        except ValueError as exc:
            raise InvalidKey(str(exc)) from exc
        if entity_id is None or not str(entity_id).strip():
            raise InvalidKey("Entity id must not be empty")
        key = EntityKey(parsed_type, str(entity_id))
        if not key.partition_key:
            raise InvalidKey("Partition key must not be empty")
        return key

    def _dynamo_key(self, key: EntityKey) -> Dict[str, str]:
        return key.as_dynamo_key(use_sort_key=self._use_sort_key)

    async def get_entity(
        self, entity_type: EntityType | str, entity_id: str
    ) -> Optional[Dict[str, Any]]:
        """Return the stored record, or ``None`` when it does not exist."""
        key = self.build_key(entity_type, entity_id)
        try:
            item = await self._ddb.get_item(self._dynamo_key(key))
        except AWSServiceError as exc:
            raise _translate(exc) from exc
        return _from_store(item) if item is not None else None

    async def put_entity(
        self, entity_type: EntityType | str, entity_id: str, data: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """Create or replace a record.

        ``createdAt`` is kept from ``data`` or the existing record when present;
        ``updatedAt`` is always refreshed.
        """
        key = self.build_key(entity_type, entity_id)
        dynamo_key = self._dynamo_key(key)
        try:
            existing = await self._ddb.get_item(dynamo_key) or {}
        except AWSServiceError as exc:
            raise _translate(exc) from exc

        item: Dict[str, Any] = {
            name: value for name, value in data.items() if name not in _MANAGED_FIELDS
        }
        item.update(dynamo_key)
        item[ENTITY_TYPE_ATTRIBUTE] = key.entity_type.name
        updated_at = _timestamp(existing.get("updatedAt"))
        item["createdAt"] = data.get("createdAt") or existing.get("createdAt") or updated_at
        item["updatedAt"] = updated_at

        try:
            await self._ddb.put_item(_to_store(item))
        except AWSServiceError as exc:
            raise _translate(exc) from exc
        logger.info("Stored %s", key.partition_key)
        return item

    async def update_entity(
        self,
        entity_type: EntityType | str,
        entity_id: str,
        patch: Mapping[str, Any],
    ) -> Dict[str, Any]:
        """Apply a partial update restricted to the entity's updatable fields.

        ``None`` values in ``patch`` are skipped rather than written.
        """
        key = self.build_key(entity_type, entity_id)
        allowed = UPDATABLE_FIELDS[key.entity_type]
        unknown = sorted(name for name in patch if name not in allowed)
        if unknown:
            raise InvalidAttribute(
                f"Fields not updatable for {key.entity_type.value}: {', '.join(unknown)}"
            )

        dynamo_key = self._dynamo_key(key)
        try:
            existing = await self._ddb.get_item(dynamo_key) or {}
        except AWSServiceError as exc:
            raise _translate(exc) from exc

        # Placeholders keep field names clear of DynamoDB reserved words.
        assignments = [
            "#updatedAt = :updatedAt",
            "#createdAt = if_not_exists(#createdAt, :updatedAt)",
            "#entityType = :entityType",
        ]
        names: Dict[str, str] = {
            "#updatedAt": "updatedAt",
            "#createdAt": "createdAt",
            "#entityType": ENTITY_TYPE_ATTRIBUTE,
        }
        values: Dict[str, Any] = {
            ":updatedAt": _timestamp(existing.get("updatedAt")),
            ":entityType": key.entity_type.name,
        }
        fields = [(name, value) for name, value in patch.items() if value is not None]
        for index, (name, value) in enumerate(fields):
            assignments.append(f"#f{index} = :v{index}")
            names[f"#f{index}"] = name
            values[f":v{index}"] = _to_store(value)

        try:
            updated = await self._ddb.update_item(
                dynamo_key,
                update_expression="SET " + ", ".join(assignments),
                names=names,
                values=values,
            )
        except AWSServiceError as exc:
            raise _translate(exc) from exc
        logger.info("Updated %s (%d field(s))", key.partition_key, len(fields))
        return _from_store(updated)

    async def query_by_prefix(self, prefix: str) -> list[Dict[str, Any]]:
        """Every record whose partition key starts with ``prefix``.

        Without an entity-type index this is a filtered full-table scan: its
        cost is proportional to the table size, so keep it off hot paths.
        """
        if not prefix:
            raise ValidationFailed("Key prefix must not be empty", code="INVALID_PREFIX")
        entity_type = entity_type_for_prefix(prefix)
        try:
            if entity_type is not None and self._entity_type_index:
                items = await self._ddb.query_index(
                    index_name=self._entity_type_index,
                    attribute=ENTITY_TYPE_ATTRIBUTE,
                    value=entity_type.name,
                )
            else:
                items = await self._ddb.scan_partition_prefix(prefix)
        except AWSServiceError as exc:
            raise _translate(exc) from exc
        return [_from_store(item) for item in items]


__all__ = ["ENTITY_TYPE_ATTRIBUTE", "EntityRepository"]
