import boto3
from loguru import logger

from slotengine.availability.exceptions import DataSourceError
from slotengine.config import settings


def get_dynamodb_resource():
    """Get a boto3 DynamoDB resource configured for local or AWS."""
    kwargs = {
        "region_name": settings.db.region,
    }
    if settings.db.endpoint_url:
        kwargs["endpoint_url"] = str(settings.db.endpoint_url)
        kwargs["aws_access_key_id"] = settings.db.aws_access_key_id
        kwargs["aws_secret_access_key"] = settings.db.aws_secret_access_key.get_secret_value()

    return boto3.resource("dynamodb", **kwargs)


def get_table():
    """Get the bookings table resource (PK/SK single-table design)."""
    dynamodb = get_dynamodb_resource()
    return dynamodb.Table(settings.db.table_name)


def create_table_if_not_exists():
    """Create the bookings table in DynamoDB if it doesn't already exist."""
    dynamodb = get_dynamodb_resource()
    existing_tables = dynamodb.meta.client.list_tables()["TableNames"]

    if settings.db.table_name in existing_tables:
        return

    table = dynamodb.create_table(
        TableName=settings.db.table_name,
        KeySchema=[
            {"AttributeName": "PK", "KeyType": "HASH"},
            {"AttributeName": "SK", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "PK", "AttributeType": "S"},
            {"AttributeName": "SK", "AttributeType": "S"},
        ],
        ProvisionedThroughput={
            "ReadCapacityUnits": 5,
            "WriteCapacityUnits": 5,
        },
    )
    table.wait_until_exists()


def query_all(table, **kwargs) -> list[dict]:
    """Run a table query and follow LastEvaluatedKey until every page is read."""
    items: list[dict] = []
    while True:
        resp = table.query(**kwargs)
        items.extend(resp.get("Items", []))
        last_key = resp.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key


def decode_items(items, decode, what: str) -> list:
    """Turn stored items into records; a malformed item is a DataSourceError."""
    records = []
    for item in items:
        try:
            records.append(decode(item))
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Malformed {what} record {item.get('PK')}/{item.get('SK')}: {e!r}")
            raise DataSourceError(f"Malformed {what} record") from e
    return records
