"""Key issuance service."""

import logging

from usage_audit.auth.api_key import generate_api_key
from usage_audit.config import settings
from usage_audit.models.api_key import ApiKeyRecord
from usage_audit.repositories.api_key_repository import ApiKeyRepository
from usage_audit.schemas.responses import RegisterResponse
from usage_audit.utils.time import utc_now_iso

logger = logging.getLogger(__name__)


class KeyService:
    """Mints API keys bound to a caller-supplied owner id."""

    def __init__(self, repository: ApiKeyRepository | None = None) -> None:
        """
        Initialize KeyService.

        Args:
            repository: ApiKeyRepository instance (creates new if None)
        """
        self.repository = repository or ApiKeyRepository()

    async def issue(self, owner_id: str | None = None) -> RegisterResponse:
        """
        Issue a new active API key.

        The owner id is not validated; a missing or empty value becomes
        the default owner.

        Args:
            owner_id: Caller-supplied owner identifier

        Returns:
            RegisterResponse with the new key

        Raises:
            StoreUnavailableError: If the key cannot be stored (no retry)
        """
        owner_id = owner_id or settings.default_owner_id
        record = ApiKeyRecord(
            api_key=generate_api_key(),
            owner_id=owner_id,
            created_at=utc_now_iso(),
            active=True,
            usage_count=0,
        )
        await self.repository.create(record)

        logger.info(
            "API key issued",
            extra={"context": {"owner_id": owner_id, "api_key": record.api_key}},
        )
        return RegisterResponse(api_key=record.api_key, user_id=owner_id)
