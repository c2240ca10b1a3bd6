"""Base repository class with common DynamoDB operations."""

import logging
from typing import Any

import aioboto3
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError

from usage_audit.config import settings
from usage_audit.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

_serializer = TypeSerializer()


def get_dynamodb_config() -> dict[str, Any]:
    """
    Build DynamoDB client configuration based on environment.

    For AWS Lambda with IAM roles, returns minimal config (region only).
    For LocalStack or moto, includes endpoint_url and explicit credentials.

    Returns:
        Dictionary of boto3 client parameters
    """
    config: dict[str, Any] = {"region_name": settings.aws_region}

    if settings.dynamodb_endpoint_url:
        config["endpoint_url"] = settings.dynamodb_endpoint_url

    # Lambda supplies temporary credentials, all three must travel together
    if settings.aws_access_key_id:
        config["aws_access_key_id"] = settings.aws_access_key_id
    if settings.aws_secret_access_key:
        config["aws_secret_access_key"] = settings.aws_secret_access_key
    if settings.aws_session_token:
        config["aws_session_token"] = settings.aws_session_token

    return config


def serialize_item(item: dict[str, Any]) -> dict[str, Any]:
    """
    Convert a plain item into DynamoDB attribute-value format.

    Needed for low-level client calls such as ``transact_write_items``.

    Args:
        item: Plain Python dict

    Returns:
        Dict of typed attribute values
    """
    return {k: _serializer.serialize(v) for k, v in item.items()}


def is_conditional_check_failure(exc: ClientError) -> bool:
    """Whether a ClientError is a failed ConditionExpression."""
    return exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


class BaseRepository:
    """
    Base repository providing common DynamoDB operations.

    All repository methods are async and use aioboto3 for non-blocking
    database operations. Each call opens its own resource inside
    ``async with`` so the connection is released on every exit path.
    Driver errors are raised as StoreUnavailableError.
    """

    def __init__(self, table_name: str) -> None:
        """
        Initialize repository with table name.

        Args:
            table_name: Name of the DynamoDB table
        """
        self.table_name = table_name
        self.session = aioboto3.Session()

    def _unavailable(
        self, operation: str, exc: Exception
    ) -> StoreUnavailableError:
        logger.error(
            "DynamoDB operation failed",
            exc_info=exc,
            extra={
                "context": {
                    "table": self.table_name,
                    "operation": operation,
                    "error_type": type(exc).__name__,
                }
            },
        )
        return StoreUnavailableError(
            message=f"Usage store is unavailable ({operation} failed)",
            operation=operation,
        )

    async def put_item(
        self, item: dict[str, Any], condition_expression: str | None = None
    ) -> None:
        """
        Put item into DynamoDB table.

        Args:
            item: Dictionary representing the item to store
            condition_expression: Optional ConditionExpression

        Raises:
            ClientError: For a failed condition (left to the caller)
            StoreUnavailableError: For any other driver failure
        """
        params: dict[str, Any] = {"Item": item}
        if condition_expression:
            params["ConditionExpression"] = condition_expression
        try:
            async with self.session.resource(
                "dynamodb", **get_dynamodb_config()
            ) as dynamodb:
                table = await dynamodb.Table(self.table_name)
                await table.put_item(**params)
        except ClientError as exc:
            if is_conditional_check_failure(exc):
                raise
            raise self._unavailable("put_item", exc) from exc
        except BotoCoreError as exc:
            raise self._unavailable("put_item", exc) from exc

    async def get_item(self, key: dict[str, Any]) -> dict[str, Any] | None:
        """
        Get item from DynamoDB table by key.

        Args:
            key: Dictionary with partition key and optionally sort key

        Returns:
            Item dictionary or None if not found
        """
        try:
            async with self.session.resource(
                "dynamodb", **get_dynamodb_config()
            ) as dynamodb:
                table = await dynamodb.Table(self.table_name)
                response = await table.get_item(Key=key, ConsistentRead=True)
                return response.get("Item")
        except (ClientError, BotoCoreError) as exc:
            raise self._unavailable("get_item", exc) from exc

    async def query(self, **query_params: Any) -> list[dict[str, Any]]:
        """
        Run a Query against the table and return the items of one page.

        Args:
            **query_params: Keyword arguments passed to ``Table.query``

        Returns:
            List of items
        """
        try:
            async with self.session.resource(
                "dynamodb", **get_dynamodb_config()
            ) as dynamodb:
                table = await dynamodb.Table(self.table_name)
                response = await table.query(**query_params)
                return response.get("Items", [])
        except (ClientError, BotoCoreError) as exc:
            raise self._unavailable("query", exc) from exc

    async def transact_write(self, transact_items: list[dict[str, Any]]) -> None:
        """
        Write several items atomically with TransactWriteItems.

        Args:
            transact_items: Low-level TransactItems (attribute values must
                already be serialized, see ``serialize_item``)

        Raises:
            StoreUnavailableError: If the transaction is cancelled or the
                driver fails; nothing has been written in that case
        """
        try:
            async with self.session.client(
                "dynamodb", **get_dynamodb_config()
            ) as client:
                await client.transact_write_items(TransactItems=transact_items)
        except (ClientError, BotoCoreError) as exc:
            raise self._unavailable("transact_write_items", exc) from exc
