"""Logging configuration with JSON formatting."""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from usage_audit.config import settings

# Context fields whose values must never be written out in full
SENSITIVE_FIELDS = frozenset({"api_key", "key", "x-api-key", "private_key"})


def redact(value: Any) -> Any:
    """
    Mask a secret so only its first four characters remain.

    Args:
        value: Secret value (usually an API key)

    Returns:
        Masked string, or the value unchanged if it is not a string
    """
    if not isinstance(value, str) or not value:
        return value
    return value[:4] + "****"


def redact_mapping(data: dict[str, Any]) -> dict[str, Any]:
    """
    Return a copy of ``data`` with sensitive keys masked.

    Args:
        data: Mapping such as query parameters or log context

    Returns:
        New dict safe to log
    """
    return {
        k: redact(v) if k.lower() in SENSITIVE_FIELDS else v
        for k, v in data.items()
    }


class JSONFormatter(logging.Formatter):
    """
    Custom formatter that outputs logs as JSON.

    Each log record is formatted as a JSON object with the following fields:
    - timestamp: ISO 8601 timestamp in UTC
    - level: Log level
    - service: Service name from settings
    - logger: Logger name
    - message: Log message
    - correlation_id: Request correlation ID (if present in extra)
    - Additional fields from the ``context`` dict passed in ``extra``,
      with API keys masked
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "service": settings.service_name,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id:
            log_data["correlation_id"] = correlation_id

        context = getattr(record, "context", None)
        if isinstance(context, dict):
            log_data.update(redact_mapping(context))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.levelno == logging.DEBUG:
            log_data["file"] = record.pathname
            log_data["line"] = record.lineno
            log_data["function"] = record.funcName

        return json.dumps(log_data, default=str)


def configure_logging() -> None:
    """
    Configure application logging with JSON formatter.

    Sets up the root logger to output structured JSON logs to stdout.
    Log level is determined by the LOG_LEVEL environment variable.
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(console_handler)

    # web3 and botocore are chatty at DEBUG
    for noisy in ("botocore", "aiobotocore", "web3", "urllib3"):
        logging.getLogger(noisy).setLevel(max(log_level, logging.INFO))

    root_logger.info(
        "Logging configured",
        extra={"context": {"log_level": settings.log_level}},
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: The name of the logger (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
