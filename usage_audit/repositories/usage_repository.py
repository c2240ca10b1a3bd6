"""Usage log and counter repository for DynamoDB operations."""

from usage_audit.config import settings
from usage_audit.models.usage import UsageCounter, UsageLogEntry
from usage_audit.repositories.base import BaseRepository, serialize_item


class UsageRepository(BaseRepository):
    """
    Repository for usage logs and usage counters.

    Logs live in one table (partition ``api_key``, sort ``log_id``) and
    counters in another (partition ``api_key``). Recording a call writes
    both in a single transaction so they commit together or not at all.
    """

    def __init__(
        self,
        logs_table: str | None = None,
        counters_table: str | None = None,
    ) -> None:
        super().__init__(logs_table or settings.dynamodb_table_usage_logs)
        self.counters = BaseRepository(
            counters_table or settings.dynamodb_table_usage_counters
        )

    async def record_usage(self, entry: UsageLogEntry) -> None:
        """
        Append a usage log entry and increment the key's counter atomically.

        The counter row is created on first use (``ADD`` on a missing
        attribute starts from zero).

        Args:
            entry: UsageLogEntry to append

        Raises:
            StoreUnavailableError: If the transaction does not commit
        """
        await self.transact_write(
            [
                {
                    "Put": {
                        "TableName": self.table_name,
                        "Item": serialize_item(entry.to_item()),
                        "ConditionExpression": "attribute_not_exists(log_id)",
                    }
                },
                {
                    "Update": {
                        "TableName": self.counters.table_name,
                        "Key": serialize_item({"api_key": entry.api_key}),
                        "UpdateExpression": (
                            "ADD #total :one SET updated_at = :updated_at"
                        ),
                        "ExpressionAttributeNames": {"#total": "total"},
                        "ExpressionAttributeValues": serialize_item(
                            {":one": 1, ":updated_at": entry.created_at}
                        ),
                    }
                },
            ]
        )

    async def get_counter(self, api_key: str) -> UsageCounter | None:
        """
        Get the usage counter row for a key.

        Args:
            api_key: Raw key

        Returns:
            UsageCounter if the key has been used, None otherwise
        """
        item = await self.counters.get_item({"api_key": api_key})
        if item:
            return UsageCounter.from_item(item)
        return None

    async def get_total(self, api_key: str) -> int:
        """Total recorded calls for a key (0 when no counter row exists)."""
        counter = await self.get_counter(api_key)
        return counter.total if counter else 0

    async def recent(
        self, api_key: str, limit: int | None = None
    ) -> list[UsageLogEntry]:
        """
        Most recent usage log entries for a key, newest first.

        Args:
            api_key: Raw key
            limit: Maximum number of entries (default from settings)

        Returns:
            Entries ordered by ``created_at`` descending
        """
        items = await self.query(
            KeyConditionExpression="api_key = :api_key",
            ExpressionAttributeValues={":api_key": api_key},
            ScanIndexForward=False,
            Limit=limit or settings.recent_logs_limit,
        )
        return [UsageLogEntry.from_item(item) for item in items]
