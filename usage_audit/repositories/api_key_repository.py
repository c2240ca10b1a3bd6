"""API key repository for DynamoDB operations."""

from botocore.exceptions import ClientError

from usage_audit.config import settings
from usage_audit.exceptions import StoreUnavailableError
from usage_audit.models.api_key import ApiKeyRecord
from usage_audit.repositories.base import BaseRepository


class DuplicateApiKeyError(StoreUnavailableError):
    """Raised when an insert collides with an existing key."""

    def __init__(self) -> None:
        super().__init__(
            message="Usage store rejected the key (already issued)",
            operation="put_item",
        )


class ApiKeyRepository(BaseRepository):
    """
    Repository for API key records in DynamoDB.

    Keys are the partition key, so lookups are a single GetItem.
    """

    def __init__(self, table_name: str | None = None) -> None:
        super().__init__(table_name or settings.dynamodb_table_api_keys)

    async def create(self, record: ApiKeyRecord) -> ApiKeyRecord:
        """
        Insert a new API key.

        The write is conditional so an existing key is never overwritten.

        Args:
            record: ApiKeyRecord to store

        Returns:
            The stored record

        Raises:
            DuplicateApiKeyError: If the key already exists
            StoreUnavailableError: If DynamoDB fails
        """
        try:
            await self.put_item(
                record.model_dump(),
                condition_expression="attribute_not_exists(api_key)",
            )
        except ClientError as exc:
            raise DuplicateApiKeyError() from exc
        return record

    async def get(self, api_key: str) -> ApiKeyRecord | None:
        """
        Get an API key record regardless of its active flag.

        Args:
            api_key: Raw key

        Returns:
            ApiKeyRecord if found, None otherwise
        """
        item = await self.get_item({"api_key": api_key})
        if item:
            return ApiKeyRecord.from_item(item)
        return None

    async def get_active(self, api_key: str) -> ApiKeyRecord | None:
        """
        Get an API key record only if it exists and is active.

        Args:
            api_key: Raw key

        Returns:
            ApiKeyRecord for an active key, None for unknown or inactive keys
        """
        record = await self.get(api_key)
        if record and record.active:
            return record
        return None
