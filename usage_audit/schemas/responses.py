"""Pydantic schemas for API responses.

Field names are snake_case in Python and camelCase on the wire.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that serializes with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class RegisterResponse(CamelModel):
    """Response of a successful key registration."""

    success: bool = True
    api_key: str
    user_id: str
    message: str = "API key generated successfully"


class AuditInfo(CamelModel):
    """
    Ledger outcome attached to a proxied response.

    Exactly one of ``tx_hash`` and ``error`` is set.
    """

    tx_hash: str | None = None
    error: str | None = None
    key_fingerprint: str = Field(..., serialization_alias="apiKeyHash")
    request_fingerprint: str = Field(..., serialization_alias="requestHash")
    timestamp: int
    tag: str


class ProxyResponse(CamelModel):
    """Body returned by the proxy whenever the upstream answered."""

    success: bool
    data: Any = None
    audit: AuditInfo
    error: str | None = None
    message: str | None = None

    def to_json(self) -> dict[str, Any]:
        # The upstream body is passed through untouched, nulls included
        content: dict[str, Any] = {
            "success": self.success,
            "data": self.data,
            "audit": self.audit.to_json(),
        }
        if self.error is not None:
            content["error"] = self.error
        if self.message is not None:
            content["message"] = self.message
        return content


class UsageLogItem(CamelModel):
    """A usage log entry as shown to the key holder (raw key omitted)."""

    owner_id: str | None = None
    method: str
    endpoint: str
    params: dict[str, Any] = Field(default_factory=dict)
    status: int
    created_at: str
    request_fingerprint: str
    tag: str


class UsageData(CamelModel):
    """Aggregate and recent activity for a key."""

    total_usage: int
    recent_logs: list[UsageLogItem] = Field(default_factory=list)
    api_key: str


class UsageResponse(CamelModel):
    """Response of the usage report endpoint."""

    success: bool = True
    data: UsageData
