"""Timestamp helpers."""

import time
from datetime import UTC, datetime


def utc_now_iso() -> str:
    """
    Current UTC time as a fixed-width ISO 8601 string.

    Microseconds are always present so lexical order equals time order.
    """
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def unix_seconds() -> int:
    """Current Unix time in whole seconds."""
    return int(time.time())
