"""Global exception handlers for consistent error responses."""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from usage_audit.exceptions import UsageAuditError
from usage_audit.logging.config import get_logger

logger = get_logger(__name__)


def create_error_response(
    error: str,
    message: str,
    status_code: int,
    correlation_id: str | None = None,
) -> JSONResponse:
    """
    Create standardized error response.

    Args:
        error: Short error label
        message: Human-readable error message
        status_code: HTTP status code
        correlation_id: Request correlation ID for tracing

    Returns:
        JSONResponse shaped ``{success: false, error, message}``
    """
    content = {
        "success": False,
        "error": error,
        "message": message,
    }
    if correlation_id:
        content["correlation_id"] = correlation_id

    return JSONResponse(status_code=status_code, content=content)


async def usage_audit_exception_handler(
    request: Request, exc: UsageAuditError
) -> JSONResponse:
    """
    Handle UsageAuditError and its subclasses.

    Client-input errors (4xx) are logged at INFO, the rest at WARNING.
    """
    correlation_id = getattr(request.state, "correlation_id", None)

    log = logger.info if exc.status_code < 500 else logger.warning
    log(
        "Request rejected",
        extra={
            "correlation_id": correlation_id,
            "context": {
                "error": exc.error,
                "status_code": exc.status_code,
                "path": request.url.path,
            },
        },
    )

    return create_error_response(
        error=exc.error,
        message=exc.message,
        status_code=exc.status_code,
        correlation_id=correlation_id,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Logs the full traceback and returns a generic 500 to the client.
    """
    correlation_id = getattr(request.state, "correlation_id", None)

    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        exc_info=exc,
        extra={
            "correlation_id": correlation_id,
            "context": {
                "exception_type": type(exc).__name__,
                "method": request.method,
                "path": request.url.path,
            },
        },
    )

    return create_error_response(
        error="Internal error",
        message="An internal error occurred. Please contact support with the correlation ID.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        correlation_id=correlation_id,
    )
