"""Repository layer for DynamoDB operations."""

from usage_audit.repositories.api_key_repository import ApiKeyRepository
from usage_audit.repositories.usage_repository import UsageRepository

__all__ = ["ApiKeyRepository", "UsageRepository"]
