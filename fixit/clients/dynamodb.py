"""
Utility wrapper around the shared single-table DynamoDB store.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key

from fixit.clients.aws_common import client_kwargs, run_aws_call
from fixit.core.config import AWSSettings
from fixit.models.entities import PARTITION_KEY


class DynamoDBClient:
    """Item-level operations against the configured table.

    ``table_factory`` is consulted on every call so that callers holding
    short-lived credentials can validate them and swap the underlying resource.
    """

    def __init__(
        self,
        settings: AWSSettings,
        *,
        table_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        self._settings = settings
        self._table_factory = table_factory
        self._default_table: Any = None

    @property
    def table_name(self) -> str:
        return self._settings.dynamodb_table_name

    def _table(self) -> Any:
        if self._table_factory is not None:
            return self._table_factory()
        if self._default_table is None:
            resource = boto3.resource("dynamodb", **client_kwargs(self._settings))
            self._default_table = resource.Table(self.table_name)
        return self._default_table

    async def get_item(self, key: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Retrieve an item using its key."""
        table = self._table()
        response = await run_aws_call(
            "dynamodb:GetItem", lambda: table.get_item(Key=key)
        )
        return response.get("Item")

    async def put_item(self, item: Dict[str, Any]) -> None:
        """Put an item in the DynamoDB table."""
        table = self._table()
        await run_aws_call("dynamodb:PutItem", lambda: table.put_item(Item=item))

    async def update_item(
        self,
        key: Dict[str, Any],
        *,
        update_expression: str,
        names: Dict[str, str],
        values: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Apply an update expression and return the full updated item."""
        table = self._table()
        response = await run_aws_call(
            "dynamodb:UpdateItem",
            lambda: table.update_item(
                Key=key,
                UpdateExpression=update_expression,
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            ),
        )
        return response.get("Attributes", {})

    async def scan_partition_prefix(self, prefix: str) -> list[Dict[str, Any]]:
        """Scan the whole table for items whose partition key starts with ``prefix``.

        Cost grows with the table size, not with the number of matches.
        """
        table = self._table()

        def _scan_all() -> list[Dict[str, Any]]:
            items: list[Dict[str, Any]] = []
            kwargs: Dict[str, Any] = {
                "FilterExpression": Attr(PARTITION_KEY).begins_with(prefix)
            }
            while True:
                page = table.scan(**kwargs)
                items.extend(page.get("Items", []))
                last_key = page.get("LastEvaluatedKey")
                if not last_key:
                    return items
                kwargs["ExclusiveStartKey"] = last_key

        return await run_aws_call("dynamodb:Scan", _scan_all)

    async def query_index(
        self, *, index_name: str, attribute: str, value: str
    ) -> list[Dict[str, Any]]:
        """Query a secondary index for every item with ``attribute == value``."""
        table = self._table()

        def _query_all() -> list[Dict[str, Any]]:
            items: list[Dict[str, Any]] = []
            kwargs: Dict[str, Any] = {
                "IndexName": index_name,
                "KeyConditionExpression": Key(attribute).eq(value),
            }
            while True:
                page = table.query(**kwargs)
                items.extend(page.get("Items", []))
                last_key = page.get("LastEvaluatedKey")
                if not last_key:
                    return items
                kwargs["ExclusiveStartKey"] = last_key

        return await run_aws_call("dynamodb:Query", _query_all)


__all__ = ["DynamoDBClient"]
