"""Script to create DynamoDB tables for LocalStack or AWS."""

import asyncio
from typing import Any

import aioboto3
from botocore.exceptions import ClientError

_THROUGHPUT = {"ReadCapacityUnits": 5, "WriteCapacityUnits": 5}


async def _create_table(dynamodb: Any, table_name: str, **definition: Any) -> bool:
    """
    Create one table and wait for it, tolerating an existing table.

    Returns:
        True if the table was created, False if it already existed
    """
    try:
        table = await dynamodb.create_table(
            TableName=table_name,
            BillingMode="PROVISIONED",
            ProvisionedThroughput=_THROUGHPUT,
            **definition,
        )
        await table.wait_until_exists()
        print(f"✓ Created table: {table_name}")
        return True
    except ClientError as e:
        if e.response["Error"]["Code"] == "ResourceInUseException":
            print(f"→ Table already exists: {table_name}")
            return False
        raise


async def create_api_keys_table(dynamodb: Any, table_name: str) -> bool:
    """API keys table, keyed by the raw key."""
    return await _create_table(
        dynamodb,
        table_name,
        KeySchema=[{"AttributeName": "api_key", "KeyType": "HASH"}],
        AttributeDefinitions=[{"AttributeName": "api_key", "AttributeType": "S"}],
    )


async def create_usage_logs_table(dynamodb: Any, table_name: str) -> bool:
    """Usage logs table; the log_id sort key orders entries by creation time."""
    return await _create_table(
        dynamodb,
        table_name,
        KeySchema=[
            {"AttributeName": "api_key", "KeyType": "HASH"},
            {"AttributeName": "log_id", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "api_key", "AttributeType": "S"},
            {"AttributeName": "log_id", "AttributeType": "S"},
        ],
    )


async def create_usage_counters_table(dynamodb: Any, table_name: str) -> bool:
    """Usage counters table, one row per key."""
    return await _create_table(
        dynamodb,
        table_name,
        KeySchema=[{"AttributeName": "api_key", "KeyType": "HASH"}],
        AttributeDefinitions=[{"AttributeName": "api_key", "AttributeType": "S"}],
    )


async def create_all_tables(dynamodb: Any, settings: Any) -> None:
    """Create every table the service needs."""
    await create_api_keys_table(dynamodb, settings.dynamodb_table_api_keys)
    await create_usage_logs_table(dynamodb, settings.dynamodb_table_usage_logs)
    await create_usage_counters_table(
        dynamodb, settings.dynamodb_table_usage_counters
    )


async def main() -> None:
    """Create all required DynamoDB tables."""
    from usage_audit.config import settings
    from usage_audit.repositories.base import get_dynamodb_config

    print("Creating DynamoDB tables...")
    print(f"Region: {settings.aws_region}")
    print(f"Endpoint: {settings.dynamodb_endpoint_url or 'AWS'}")
    print()

    session = aioboto3.Session()
    async with session.resource("dynamodb", **get_dynamodb_config()) as dynamodb:
        await create_all_tables(dynamodb, settings)

    print()
    print("✓ All tables created successfully!")


if __name__ == "__main__":
    asyncio.run(main())
