"""Usage log and usage counter models for DynamoDB."""

import secrets
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field


def _plain(value: Any) -> Any:
    """Convert DynamoDB Decimals (recursively) back to int/float."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value


def new_log_id(created_at: str) -> str:
    """
    Build the sort key for a usage log entry.

    The creation timestamp comes first so that sorting by ``log_id``
    sorts by ``created_at``; the random suffix keeps concurrent entries
    with the same timestamp distinct.

    Args:
        created_at: Fixed-width ISO 8601 timestamp

    Returns:
        Sort key string
    """
    return f"{created_at}#{secrets.token_hex(8)}"


class UsageLogEntry(BaseModel):
    """
    Append-only record of one forwarded request.

    Attributes:
        api_key: Key the request was made with (partition key)
        log_id: Sort key, ``<created_at>#<random>``
        owner_id: Owner of the key at the time of the call
        method: HTTP method forwarded upstream
        endpoint: Normalised upstream path
        params: Forwarded query parameters (reserved names removed)
        status: Upstream HTTP status code
        created_at: ISO 8601 timestamp
        request_fingerprint: SHA-256 hex digest of the forwarded request shape
        tag: Caller-supplied label
    """

    api_key: str
    log_id: str
    owner_id: str | None = None
    method: str
    endpoint: str
    params: dict[str, Any] = Field(default_factory=dict)
    status: int
    created_at: str
    request_fingerprint: str
    tag: str

    @classmethod
    def from_item(cls, item: dict[str, Any]) -> "UsageLogEntry":
        """Build an entry from a DynamoDB item."""
        return cls(**_plain(item))

    def to_item(self) -> dict[str, Any]:
        """DynamoDB item for this entry (``None`` values dropped)."""
        return self.model_dump(exclude_none=True)


class UsageCounter(BaseModel):
    """
    Per-key running total of forwarded requests.

    Attributes:
        api_key: Key (partition key)
        total: Number of usage log entries recorded for the key
        updated_at: ISO 8601 timestamp of the last increment
    """

    api_key: str
    total: int = Field(default=0, ge=0)
    updated_at: str | None = None

    @classmethod
    def from_item(cls, item: dict[str, Any]) -> "UsageCounter":
        """Build a counter from a DynamoDB item."""
        return cls(**_plain(item))
