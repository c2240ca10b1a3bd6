"""API key record model for DynamoDB."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ApiKeyRecord(BaseModel):
    """
    Issued API key.

    Attributes:
        api_key: Opaque key token (partition key, immutable once issued)
        owner_id: Caller-supplied owner identifier
        created_at: ISO 8601 timestamp of issuance
        active: Whether the key may be used through the proxy
        usage_count: Initial usage count; live totals are kept in the
            usage counters table
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "api_key": "3f2b8c1d9e7a4b6c8d0e1f2a3b4c5d6e",
                "owner_id": "anonymous",
                "created_at": "2025-11-11T12:00:00.000000Z",
                "active": True,
                "usage_count": 0,
            }
        }
    )

    api_key: str = Field(..., description="Opaque API key")
    owner_id: str = Field(..., description="Owner identifier")
    created_at: str = Field(..., description="ISO 8601 creation timestamp")
    active: bool = Field(default=True, description="Key may be used")
    usage_count: int = Field(default=0, description="Usage count at issuance")

    @classmethod
    def from_item(cls, item: dict[str, Any]) -> "ApiKeyRecord":
        """Build a record from a DynamoDB item (numbers arrive as Decimal)."""
        data = dict(item)
        data["usage_count"] = int(data.get("usage_count", 0))
        data["active"] = bool(data.get("active", False))
        return cls(**data)
