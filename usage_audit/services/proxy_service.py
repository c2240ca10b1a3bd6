"""Proxy service: forwards metered requests and records them twice.

Sequence per request: validate key, assemble and fingerprint the forwarded
request, call the upstream, persist the usage log entry and counter in one
DynamoDB transaction, then submit the fingerprint to the ledger. Once the
upstream has answered, the client gets that answer; persistence and ledger
failures are logged or reported in ``audit`` but never change the status.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from usage_audit.auth.api_key import resolve_api_key
from usage_audit.config import settings
from usage_audit.exceptions import (
    InvalidKeyError,
    LedgerSubmitFailedError,
    StoreUnavailableError,
)
from usage_audit.ledger.adapter import LedgerAdapter
from usage_audit.models.api_key import ApiKeyRecord
from usage_audit.models.usage import UsageLogEntry, new_log_id
from usage_audit.proxy.upstream import (
    UpstreamClient,
    UpstreamRequest,
    UpstreamResponse,
)
from usage_audit.repositories.api_key_repository import ApiKeyRepository
from usage_audit.repositories.usage_repository import UsageRepository
from usage_audit.schemas.responses import AuditInfo, ProxyResponse
from usage_audit.utils.fingerprint import key_fingerprint, request_fingerprint
from usage_audit.utils.time import unix_seconds, utc_now_iso

logger = logging.getLogger(__name__)


@dataclass
class ProxyRequest:
    """The parts of an inbound request the proxy needs."""

    method: str
    query_items: list[tuple[str, str]] = field(default_factory=list)
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    content_type: str | None = None
    correlation_id: str | None = None

    @property
    def query(self) -> dict[str, str]:
        """Single-valued view of the query (last value wins)."""
        return dict(self.query_items)


@dataclass
class ProxyResult:
    """Status and body to send back to the client."""

    status_code: int
    body: ProxyResponse


class ProxyService:
    """
    Core metering proxy.

    Collaborators are injected so tests can substitute fakes.
    """

    def __init__(
        self,
        api_keys: ApiKeyRepository,
        usage: UsageRepository,
        upstream: UpstreamClient,
        ledger: LedgerAdapter,
        default_tag: str | None = None,
    ) -> None:
        self.api_keys = api_keys
        self.usage = usage
        self.upstream = upstream
        self.ledger = ledger
        self.default_tag = default_tag or settings.default_tag

    async def forward(self, request: ProxyRequest) -> ProxyResult:
        """
        Forward a metered request.

        Args:
            request: Inbound request parts

        Returns:
            ProxyResult carrying the upstream status

        Raises:
            MissingKeyError: No key in query or header (401)
            InvalidKeyError: Unknown or inactive key (403)
            MissingEndpointError: No endpoint parameter (400)
            UpstreamTimeoutError: Upstream exceeded the timeout (504)
            ProxyFailedError: Upstream unreachable (502)
            StoreUnavailableError: Key lookup failed (500)
        """
        query = request.query
        api_key = resolve_api_key(query, request.headers)

        key_record = await self.api_keys.get_active(api_key)
        if key_record is None:
            raise InvalidKeyError()

        upstream_request = self.upstream.assemble(
            method=request.method,
            endpoint=query.get("endpoint"),
            query_items=request.query_items,
            raw_body=request.body,
            content_type=request.content_type,
        )
        fingerprint = request_fingerprint(
            upstream_request.method,
            upstream_request.endpoint,
            upstream_request.params,
            upstream_request.body,
        )
        tag = query.get("tag") or self.default_tag

        # Nothing below runs unless the upstream answered
        upstream_response = await self.upstream.send(upstream_request)

        await self._persist(
            key_record, upstream_request, upstream_response, fingerprint, tag,
            request.correlation_id,
        )
        audit = await self._submit_to_ledger(
            api_key, fingerprint, tag, request.correlation_id
        )

        body = ProxyResponse(
            success=not upstream_response.is_error,
            data=upstream_response.body,
            audit=audit,
        )
        if upstream_response.is_error:
            body.error = "Upstream error"
            body.message = (
                f"Upstream API responded with status {upstream_response.status_code}"
            )
        return ProxyResult(status_code=upstream_response.status_code, body=body)

    async def _persist(
        self,
        key_record: ApiKeyRecord,
        upstream_request: UpstreamRequest,
        upstream_response: UpstreamResponse,
        fingerprint: str,
        tag: str,
        correlation_id: str | None,
    ) -> bool:
        """Record the call; failures are logged and swallowed."""
        created_at = utc_now_iso()
        entry = UsageLogEntry(
            api_key=key_record.api_key,
            log_id=new_log_id(created_at),
            owner_id=key_record.owner_id,
            method=upstream_request.method,
            endpoint=upstream_request.endpoint,
            params=upstream_request.params,
            status=upstream_response.status_code,
            created_at=created_at,
            request_fingerprint=fingerprint,
            tag=tag,
        )
        try:
            await self.usage.record_usage(entry)
        except StoreUnavailableError as exc:
            # Counter and ledger may now disagree; left for operators
            logger.error(
                "Usage persistence failed, returning upstream response anyway",
                exc_info=exc,
                extra={
                    "correlation_id": correlation_id,
                    "context": {
                        "request_fingerprint": fingerprint,
                        "api_key": key_record.api_key,
                    },
                },
            )
            return False
        except Exception as exc:
            logger.error(
                "Unexpected error persisting usage, returning upstream response anyway",
                exc_info=exc,
                extra={
                    "correlation_id": correlation_id,
                    "context": {
                        "request_fingerprint": fingerprint,
                        "error_type": type(exc).__name__,
                    },
                },
            )
            return False
        return True

    async def _submit_to_ledger(
        self,
        api_key: str,
        fingerprint: str,
        tag: str,
        correlation_id: str | None,
    ) -> AuditInfo:
        """Submit the call to the ledger and describe the outcome."""
        key_hash = key_fingerprint(api_key)
        timestamp = unix_seconds()
        audit = AuditInfo(
            key_fingerprint=key_hash,
            request_fingerprint=fingerprint,
            timestamp=timestamp,
            tag=tag,
        )
        try:
            receipt = await self.ledger.submit_and_wait(
                key_hash, timestamp, fingerprint, tag
            )
        except LedgerSubmitFailedError as exc:
            logger.error(
                "Blockchain logging failed",
                extra={
                    "correlation_id": correlation_id,
                    "context": {
                        "request_fingerprint": fingerprint,
                        "reason": exc.message,
                    },
                },
            )
            audit.error = "Blockchain logging failed"
            return audit

        audit.tx_hash = receipt.tx_hash
        return audit
