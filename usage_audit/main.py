"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from usage_audit.config import settings
from usage_audit.exceptions import UsageAuditError
from usage_audit.handlers.exception_handler import (
    generic_exception_handler,
    usage_audit_exception_handler,
)
from usage_audit.logging.config import configure_logging
from usage_audit.middleware.logging import LoggingMiddleware
from usage_audit.routes import proxy, register, status, usage

# Configure logging before creating the app
configure_logging()

app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="""
## Usage Audit Proxy

Issues opaque API keys, forwards requests to a configured upstream API and
records every call twice: in DynamoDB (usage log + counter, written in one
transaction) and as a `UsageLogged` event on a ledger contract.

### Endpoints

- **/register**: mint an API key for a `userId`
- **/proxy**: forward `endpoint` upstream with the remaining query parameters
- **/usage**: total calls and the 10 most recent calls for a key

### Authentication

Pass the key as the `key` query parameter or the `x-api-key` header.

### Audit

Proxied responses carry an `audit` object with the ledger transaction hash
(or the ledger error), the key fingerprint, the request fingerprint, the
timestamp and the tag. Ledger and store failures never change the upstream
status returned to the client.
""",
    docs_url="/docs",
    redoc_url="/redoc",
)

# First added = innermost; CORS wraps logging so every response gets headers
app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "x-api-key"],
)

app.add_exception_handler(UsageAuditError, usage_audit_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

app.include_router(register.router)
app.include_router(proxy.router)
app.include_router(usage.router)
app.include_router(status.router)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Service information."""
    return {
        "message": f"Welcome to {settings.api_title}",
        "version": settings.api_version,
        "docs": "/docs",
        "health": "/status",
    }
