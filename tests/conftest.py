"""Shared fixtures: in-memory stand-ins for DynamoDB, the ledger and the upstream."""

from collections.abc import Callable

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from usage_audit.dependencies import (
    get_api_key_repository,
    get_ledger_adapter,
    get_upstream_client,
    get_usage_repository,
)
from usage_audit.exceptions import LedgerSubmitFailedError, StoreUnavailableError
from usage_audit.ledger.adapter import LedgerReceipt
from usage_audit.main import app
from usage_audit.models.api_key import ApiKeyRecord
from usage_audit.models.usage import UsageLogEntry
from usage_audit.proxy.upstream import UpstreamClient
from usage_audit.repositories.api_key_repository import DuplicateApiKeyError

UPSTREAM_BASE = "https://upstream.test/v1"
TX_HASH = "0x" + "ab" * 32


class InMemoryApiKeyRepository:
    """Dict-backed replacement for ApiKeyRepository."""

    def __init__(self) -> None:
        self.records: dict[str, ApiKeyRecord] = {}
        self.fail = False

    async def create(self, record: ApiKeyRecord) -> ApiKeyRecord:
        if self.fail:
            raise StoreUnavailableError(operation="put_item")
        if record.api_key in self.records:
            raise DuplicateApiKeyError()
        self.records[record.api_key] = record
        return record

    async def get(self, api_key: str) -> ApiKeyRecord | None:
        return self.records.get(api_key)

    async def get_active(self, api_key: str) -> ApiKeyRecord | None:
        record = self.records.get(api_key)
        return record if record and record.active else None


class InMemoryUsageRepository:
    """List-backed replacement for UsageRepository."""

    def __init__(self) -> None:
        self.logs: list[UsageLogEntry] = []
        self.totals: dict[str, int] = {}
        self.fail = False

    async def record_usage(self, entry: UsageLogEntry) -> None:
        if self.fail:
            raise StoreUnavailableError(operation="transact_write_items")
        self.logs.append(entry)
        self.totals[entry.api_key] = self.totals.get(entry.api_key, 0) + 1

    async def get_total(self, api_key: str) -> int:
        if self.fail:
            raise StoreUnavailableError(operation="get_item")
        return self.totals.get(api_key, 0)

    async def recent(
        self, api_key: str, limit: int | None = None
    ) -> list[UsageLogEntry]:
        entries = [e for e in self.logs if e.api_key == api_key]
        entries.sort(key=lambda e: e.log_id, reverse=True)
        return entries[: limit or 10]


class FakeLedger:
    """Records submissions instead of sending transactions."""

    def __init__(self) -> None:
        self.submissions: list[tuple[str, int, str, str]] = []
        self.fail = False

    async def submit_and_wait(
        self, key_fingerprint: str, timestamp: int, request_fingerprint: str, tag: str
    ) -> LedgerReceipt:
        if self.fail:
            raise LedgerSubmitFailedError("Blockchain logging failed: RPC unreachable")
        self.submissions.append((key_fingerprint, timestamp, request_fingerprint, tag))
        return LedgerReceipt(tx_hash=TX_HASH, block_number=1)


class FakeUpstream:
    """Captures forwarded requests and answers with ``respond``."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.respond: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, json={"ok": True})
        )

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)

    def client(self, timeout: float = 10.0) -> UpstreamClient:
        return UpstreamClient(
            base_url=UPSTREAM_BASE,
            timeout=timeout,
            transport=httpx.MockTransport(self._handle),
        )


def make_key_record(api_key: str = "a" * 32, owner_id: str = "alice", active: bool = True):
    """Active ApiKeyRecord for tests."""
    return ApiKeyRecord(
        api_key=api_key,
        owner_id=owner_id,
        created_at="2025-11-11T12:00:00.000000Z",
        active=active,
        usage_count=0,
    )


@pytest.fixture
def api_key_repo() -> InMemoryApiKeyRepository:
    return InMemoryApiKeyRepository()


@pytest.fixture
def usage_repo() -> InMemoryUsageRepository:
    return InMemoryUsageRepository()


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def issued_key(api_key_repo: InMemoryApiKeyRepository) -> str:
    """A key already present and active in the fake store."""
    record = make_key_record()
    api_key_repo.records[record.api_key] = record
    return record.api_key


@pytest.fixture
async def client(api_key_repo, usage_repo, ledger, upstream):
    """HTTP client against the app with every external collaborator faked."""
    app.dependency_overrides[get_api_key_repository] = lambda: api_key_repo
    app.dependency_overrides[get_usage_repository] = lambda: usage_repo
    app.dependency_overrides[get_ledger_adapter] = lambda: ledger
    app.dependency_overrides[get_upstream_client] = lambda: upstream.client()
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as http_client:
            yield http_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def inactive_key(api_key_repo: InMemoryApiKeyRepository) -> str:
    """A key present in the fake store but deactivated."""
    record = make_key_record(api_key="b" * 32, active=False)
    api_key_repo.records[record.api_key] = record
    return record.api_key
