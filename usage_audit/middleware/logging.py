"""Request logging middleware with correlation ID support."""

import time
import uuid
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from usage_audit.auth.api_key import KEY_HEADER, KEY_QUERY_PARAM
from usage_audit.logging.config import get_logger, redact, redact_mapping

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Request-ID"


def _get_or_generate_correlation_id(request: Request) -> str:
    """Use the caller's X-Request-ID or mint a new UUID."""
    return request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())


def _masked_key(request: Request) -> str | None:
    """The request's API key (query or header) in masked form."""
    api_key = request.query_params.get(KEY_QUERY_PARAM) or request.headers.get(
        KEY_HEADER
    )
    return redact(api_key) if api_key else None


def _log_request_start(request: Request, correlation_id: str) -> None:
    logger.info(
        "Request started",
        extra={
            "correlation_id": correlation_id,
            "context": {
                "method": request.method,
                "path": request.url.path,
                "query_params": redact_mapping(dict(request.query_params)),
                "client_host": request.client.host if request.client else None,
            },
        },
    )


def _log_request_error(
    request: Request, correlation_id: str, exc: Exception, elapsed_ms: float
) -> None:
    logger.error(
        "Request failed with exception",
        exc_info=exc,
        extra={
            "correlation_id": correlation_id,
            "context": {
                "method": request.method,
                "path": request.url.path,
                "response_time_ms": round(elapsed_ms, 2),
            },
        },
    )


def _log_request_complete(
    request: Request, response: Response, correlation_id: str, elapsed_ms: float
) -> None:
    logger.info(
        "Request completed",
        extra={
            "correlation_id": correlation_id,
            "context": {
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "response_time_ms": round(elapsed_ms, 2),
                "masked_key": _masked_key(request),
            },
        },
    )


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log all HTTP requests and responses.

    Features:
    - Adds unique correlation ID (X-Request-ID) to each request
    - Logs request start with method, path and query parameters
    - Logs response with status code and response time
    - Never logs a full API key (query parameter or x-api-key header)
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = _get_or_generate_correlation_id(request)
        request.state.correlation_id = correlation_id

        start_time = time.time()
        _log_request_start(request, correlation_id)

        try:
            response = await call_next(request)
        except Exception as exc:
            elapsed_ms = (time.time() - start_time) * 1000
            _log_request_error(request, correlation_id, exc, elapsed_ms)
            raise

        elapsed_ms = (time.time() - start_time) * 1000
        _log_request_complete(request, response, correlation_id, elapsed_ms)

        response.headers[CORRELATION_HEADER] = correlation_id
        return response
