"""API usage metering and audit proxy."""

__version__ = "1.0.0"
