"""FastAPI dependency providers.

Each collaborator is built once per process and handed to the services,
so tests can replace any of them with ``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends

from usage_audit.config import settings
from usage_audit.ledger.adapter import LedgerAdapter
from usage_audit.proxy.upstream import UpstreamClient
from usage_audit.repositories.api_key_repository import ApiKeyRepository
from usage_audit.repositories.usage_repository import UsageRepository
from usage_audit.services.key_service import KeyService
from usage_audit.services.proxy_service import ProxyService
from usage_audit.services.usage_service import UsageService


@lru_cache
def get_api_key_repository() -> ApiKeyRepository:
    return ApiKeyRepository()


@lru_cache
def get_usage_repository() -> UsageRepository:
    return UsageRepository()


@lru_cache
def get_upstream_client() -> UpstreamClient:
    return UpstreamClient(
        base_url=settings.proxy_target_base,
        timeout=settings.upstream_timeout_seconds,
        user_agent=settings.upstream_user_agent,
    )


@lru_cache
def get_ledger_adapter() -> LedgerAdapter:
    return LedgerAdapter.from_settings(settings)


def get_key_service(
    repository: ApiKeyRepository = Depends(get_api_key_repository),
) -> KeyService:
    return KeyService(repository=repository)


def get_usage_service(
    repository: UsageRepository = Depends(get_usage_repository),
) -> UsageService:
    return UsageService(repository=repository)


def get_proxy_service(
    api_keys: ApiKeyRepository = Depends(get_api_key_repository),
    usage: UsageRepository = Depends(get_usage_repository),
    upstream: UpstreamClient = Depends(get_upstream_client),
    ledger: LedgerAdapter = Depends(get_ledger_adapter),
) -> ProxyService:
    return ProxyService(
        api_keys=api_keys, usage=usage, upstream=upstream, ledger=ledger
    )
