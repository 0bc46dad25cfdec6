try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from decimal import Decimal

import boto3
import pytest
from moto import mock_aws

from fixit.clients import DynamoDBClient
from fixit.core.config import AWSSettings
from fixit.core.errors import InvalidAttribute, InvalidKey, ValidationFailed
from fixit.models.entities import EntityType
from fixit.services.entities import EntityRepository

pytestmark = pytest.mark.anyio("asyncio")

TABLE_NAME = "FixIt"
INDEX_NAME = "entityType-index"


def _create_table(*, sort_key: bool = True, with_index: bool = False):
    resource = boto3.resource("dynamodb", region_name="us-east-1")
    attributes = [{"AttributeName": "PK", "AttributeType": "S"}]
    schema = [{"AttributeName": "PK", "KeyType": "HASH"}]
    if sort_key:
        attributes.append({"AttributeName": "SK", "AttributeType": "S"})
        schema.append({"AttributeName": "SK", "KeyType": "RANGE"})
    kwargs = {}
    if with_index:
        attributes.append({"AttributeName": "entityType", "AttributeType": "S"})
        kwargs["GlobalSecondaryIndexes"] = [
            {
                "IndexName": INDEX_NAME,
                "KeySchema": [{"AttributeName": "entityType", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"},
            }
        ]
    return resource.create_table(
        TableName=TABLE_NAME,
        AttributeDefinitions=attributes,
        KeySchema=schema,
        BillingMode="PAY_PER_REQUEST",
        **kwargs,
    )


class PagingTable:
    """Forces small scan pages so pagination is exercised."""

    def __init__(self, table, page_size: int = 2) -> None:
        self._table = table
        self._page_size = page_size
        self.scan_calls = 0

    def scan(self, **kwargs):
        self.scan_calls += 1
        return self._table.scan(Limit=self._page_size, **kwargs)

    def __getattr__(self, name):
        return getattr(self._table, name)


@pytest.fixture
def aws_settings() -> AWSSettings:
    return AWSSettings(dynamodb_table_name=TABLE_NAME)


@pytest.fixture
def table():
    with mock_aws():
        yield _create_table()


@pytest.fixture
def repository(table, aws_settings) -> EntityRepository:
    return EntityRepository(DynamoDBClient(aws_settings), aws_settings)


@pytest.mark.parametrize("entity_id", ["", "   ", None])
async def test_empty_id_is_rejected_before_any_call(repository, entity_id) -> None:
    with pytest.raises(InvalidKey):
        await repository.put_entity(EntityType.USER, entity_id, {"fullName": "Sam"})
    with pytest.raises(InvalidKey):
        await repository.get_entity(EntityType.USER, entity_id)


async def test_unknown_entity_type_is_rejected(repository) -> None:
    with pytest.raises(InvalidKey):
        await repository.get_entity("invoice", "1")


async def test_put_then_get_uses_prefixed_key(repository, table) -> None:
    stored = await repository.put_entity(
        EntityType.PROVIDER, "sub-1", {"fullName": "Pat", "dailyRate": 120.5}
    )

    assert stored["PK"] == "PROVIDER#sub-1"
    assert stored["SK"] == "PROFILE#INFO"
    raw = table.get_item(Key={"PK": "PROVIDER#sub-1", "SK": "PROFILE#INFO"})["Item"]
    assert raw["dailyRate"] == Decimal("120.5")

    fetched = await repository.get_entity("provider", "sub-1")
    assert fetched["dailyRate"] == 120.5
    assert fetched["entityType"] == "PROVIDER"
    assert await repository.get_entity(EntityType.USER, "sub-1") is None


async def test_put_is_idempotent_and_updated_at_increases(repository) -> None:
    first = await repository.put_entity(EntityType.USER, "sub-1", {"fullName": "Sam"})
    second = await repository.put_entity(EntityType.USER, "sub-1", {"fullName": "Sam"})

    assert second["createdAt"] == first["createdAt"]
    assert second["updatedAt"] > first["updatedAt"]

    stored = await repository.get_entity(EntityType.USER, "sub-1")
    assert stored["fullName"] == "Sam"
    assert stored["updatedAt"] == second["updatedAt"]


async def test_put_ignores_caller_supplied_key_fields(repository) -> None:
    stored = await repository.put_entity(
        EntityType.USER, "sub-1", {"PK": "PROVIDER#evil", "fullName": "Sam"}
    )

    assert stored["PK"] == "USER#sub-1"


async def test_update_uses_placeholders_for_reserved_words(repository) -> None:
    await repository.put_entity(
        EntityType.REQUEST, "1700000000000_abc", {"status": "pending", "description": "Fix sink"}
    )

    updated = await repository.update_entity(
        EntityType.REQUEST, "1700000000000_abc", {"status": "accepted", "description": None}
    )

    assert updated["status"] == "accepted"
    assert updated["description"] == "Fix sink"
    assert updated["SK"] == "REQUEST#INFO"


async def test_update_creates_missing_record_with_created_at(repository) -> None:
    updated = await repository.update_entity(
        EntityType.USER, "sub-9", {"fullName": "New", "address": "2 Side St"}
    )

    assert updated["createdAt"] == updated["updatedAt"]
    assert updated["entityType"] == "USER"


async def test_update_stamps_past_a_stored_future_timestamp(repository, table) -> None:
    future = "2999-01-01T00:00:00.000000+00:00"
    table.put_item(
        Item={"PK": "USER#sub-1", "SK": "PROFILE#INFO", "createdAt": future, "updatedAt": future}
    )

    updated = await repository.update_entity(EntityType.USER, "sub-1", {"fullName": "Sam"})

    assert updated["updatedAt"] > future
    assert updated["createdAt"] == future


async def test_update_rejects_fields_outside_allow_list(repository) -> None:
    with pytest.raises(InvalidAttribute):
        await repository.update_entity(EntityType.USER, "sub-1", {"hourlyRate": 30})


async def test_query_by_prefix_pages_through_scan(table, aws_settings) -> None:
    paging = PagingTable(table)
    repository = EntityRepository(
        DynamoDBClient(aws_settings, table_factory=lambda: paging), aws_settings
    )
    for index in range(5):
        await repository.put_entity(EntityType.PROVIDER, f"p{index}", {"serviceType": "Plumber"})
    for index in range(2):
        await repository.put_entity(EntityType.USER, f"u{index}", {"fullName": "Seeker"})

    providers = await repository.query_by_prefix("PROVIDER#")

    assert sorted(item["PK"] for item in providers) == [f"PROVIDER#p{i}" for i in range(5)]
    assert paging.scan_calls > 1


async def test_query_by_prefix_rejects_empty_prefix(repository) -> None:
    with pytest.raises(ValidationFailed):
        await repository.query_by_prefix("")


async def test_query_by_prefix_uses_entity_type_index() -> None:
    settings = AWSSettings(
        dynamodb_table_name=TABLE_NAME, dynamodb_entity_type_index=INDEX_NAME
    )
    with mock_aws():
        table = _create_table(with_index=True)
        paging = PagingTable(table)
        repository = EntityRepository(
            DynamoDBClient(settings, table_factory=lambda: paging), settings
        )
        await repository.put_entity(EntityType.PROVIDER, "p1", {"serviceType": "Welder"})
        await repository.put_entity(EntityType.USER, "u1", {"fullName": "Sam"})

        providers = await repository.query_by_prefix("PROVIDER#")

    assert [item["PK"] for item in providers] == ["PROVIDER#p1"]
    assert paging.scan_calls == 0


async def test_partition_key_only_table() -> None:
    settings = AWSSettings(dynamodb_table_name=TABLE_NAME, dynamodb_use_sort_key=False)
    with mock_aws():
        _create_table(sort_key=False)
        repository = EntityRepository(DynamoDBClient(settings), settings)

        stored = await repository.put_entity(EntityType.USER, "sub-1", {"fullName": "Sam"})
        fetched = await repository.get_entity(EntityType.USER, "sub-1")

    assert "SK" not in stored
    assert fetched["PK"] == "USER#sub-1"
