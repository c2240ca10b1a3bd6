"""Usage reporting service."""

from usage_audit.auth.api_key import mask_api_key
from usage_audit.config import settings
from usage_audit.repositories.usage_repository import UsageRepository
from usage_audit.schemas.responses import UsageData, UsageLogItem, UsageResponse


class UsageService:
    """Reads the aggregate and recent-activity views for a key."""

    def __init__(self, repository: UsageRepository | None = None) -> None:
        self.repository = repository or UsageRepository()

    async def report(self, api_key: str) -> UsageResponse:
        """
        Build the usage report for a key.

        The key is not checked against issued keys; an unknown key simply
        has no usage.

        Args:
            api_key: Raw key

        Returns:
            UsageResponse with total, up to ``recent_logs_limit`` newest
            entries and the masked key

        Raises:
            StoreUnavailableError: If DynamoDB cannot be read
        """
        total = await self.repository.get_total(api_key)
        entries = await self.repository.recent(
            api_key, limit=settings.recent_logs_limit
        )

        recent_logs = [
            UsageLogItem(
                owner_id=entry.owner_id,
                method=entry.method,
                endpoint=entry.endpoint,
                params=entry.params,
                status=entry.status,
                created_at=entry.created_at,
                request_fingerprint=entry.request_fingerprint,
                tag=entry.tag,
            )
            for entry in entries
        ]
        return UsageResponse(
            data=UsageData(
                total_usage=total,
                recent_logs=recent_logs,
                api_key=mask_api_key(api_key),
            )
        )
