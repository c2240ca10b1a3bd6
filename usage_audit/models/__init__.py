"""Data models for the usage audit proxy."""

from usage_audit.models.api_key import ApiKeyRecord
from usage_audit.models.usage import UsageCounter, UsageLogEntry

__all__ = ["ApiKeyRecord", "UsageCounter", "UsageLogEntry"]
