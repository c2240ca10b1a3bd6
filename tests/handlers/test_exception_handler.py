"""Tests for the global exception handlers."""

import json
from unittest.mock import MagicMock

import pytest
from fastapi import Request

from usage_audit.exceptions import (
    InvalidKeyError,
    MissingKeyError,
    StoreUnavailableError,
    UpstreamTimeoutError,
)
from usage_audit.handlers.exception_handler import (
    create_error_response,
    generic_exception_handler,
    usage_audit_exception_handler,
)


def _request(correlation_id: str | None = "test-correlation-id") -> MagicMock:
    request = MagicMock(spec=Request)
    request.state.correlation_id = correlation_id
    request.method = "GET"
    request.url.path = "/proxy"
    return request


def test_create_error_response_shape() -> None:
    response = create_error_response("Missing API key", "Provide a key", 401)

    assert response.status_code == 401
    assert json.loads(response.body) == {
        "success": False,
        "error": "Missing API key",
        "message": "Provide a key",
    }


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("exc", "status_code", "error"),
    [
        (MissingKeyError(), 401, "Missing API key"),
        (InvalidKeyError(), 403, "Invalid API key"),
        (UpstreamTimeoutError(timeout_seconds=10), 504, "Upstream timeout"),
        (StoreUnavailableError(), 500, "Store unavailable"),
    ],
)
async def test_usage_audit_errors_map_to_status(exc, status_code, error) -> None:
    response = await usage_audit_exception_handler(_request(), exc)

    assert response.status_code == status_code
    data = json.loads(response.body)
    assert data["success"] is False
    assert data["error"] == error
    assert data["message"] == exc.message
    assert data["correlation_id"] == "test-correlation-id"


@pytest.mark.asyncio
async def test_timeout_message_names_the_timeout() -> None:
    response = await usage_audit_exception_handler(
        _request(), UpstreamTimeoutError(timeout_seconds=10)
    )

    assert json.loads(response.body)["message"].endswith("(10s)")


@pytest.mark.asyncio
async def test_generic_exception_hides_details() -> None:
    response = await generic_exception_handler(
        _request(), RuntimeError("secret internal state")
    )

    assert response.status_code == 500
    data = json.loads(response.body)
    assert data["error"] == "Internal error"
    assert "secret internal state" not in data["message"]
    assert data["correlation_id"] == "test-correlation-id"


@pytest.mark.asyncio
async def test_missing_correlation_id_is_omitted() -> None:
    response = await usage_audit_exception_handler(_request(None), MissingKeyError())

    assert "correlation_id" not in json.loads(response.body)
