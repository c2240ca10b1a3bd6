"""Custom exception classes for the usage audit proxy."""


class UsageAuditError(Exception):
    """Base exception for the usage audit proxy."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error: str = "Internal error",
    ) -> None:
        """
        Initialize exception.

        Args:
            message: Human-readable explanation for the caller
            status_code: HTTP status code
            error: Short error label rendered in the ``error`` field
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error = error


class MissingKeyError(UsageAuditError):
    """Raised when no API key is supplied (401)."""

    def __init__(
        self,
        message: str = (
            "Please provide an API key via 'key' query parameter "
            "or 'x-api-key' header"
        ),
    ) -> None:
        super().__init__(message=message, status_code=401, error="Missing API key")


class InvalidKeyError(UsageAuditError):
    """Raised when the API key is unknown or inactive (403).

    Unknown and deactivated keys share this error on purpose.
    """

    def __init__(self, message: str = "API key not found or inactive") -> None:
        super().__init__(message=message, status_code=403, error="Invalid API key")


class MissingEndpointError(UsageAuditError):
    """Raised when the upstream endpoint parameter is absent or empty (400)."""

    def __init__(
        self, message: str = "Please specify an endpoint parameter"
    ) -> None:
        super().__init__(message=message, status_code=400, error="Missing endpoint")


class UpstreamTimeoutError(UsageAuditError):
    """Raised when the upstream does not answer within the timeout (504)."""

    def __init__(
        self,
        message: str = "Upstream API did not respond in time",
        timeout_seconds: float | None = None,
    ) -> None:
        if timeout_seconds is not None:
            message = f"{message} ({timeout_seconds:g}s)"
        super().__init__(message=message, status_code=504, error="Upstream timeout")
        self.timeout_seconds = timeout_seconds


class ProxyFailedError(UsageAuditError):
    """Raised when the upstream cannot be reached at all (502)."""

    def __init__(self, message: str = "Upstream API is unreachable") -> None:
        super().__init__(message=message, status_code=502, error="Proxy failed")


class StoreUnavailableError(UsageAuditError):
    """Raised when a DynamoDB operation cannot complete (500)."""

    def __init__(
        self,
        message: str = "Usage store is unavailable",
        operation: str | None = None,
    ) -> None:
        super().__init__(message=message, status_code=500, error="Store unavailable")
        self.operation = operation


class LedgerSubmitFailedError(UsageAuditError):
    """Raised by the ledger adapter for any submission or read failure.

    The proxy reports it inside the ``audit`` field only; it never becomes
    an HTTP error.
    """

    def __init__(self, message: str = "Blockchain logging failed") -> None:
        super().__init__(message=message, status_code=502, error="Ledger submit failed")
