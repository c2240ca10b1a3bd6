"""Middleware components for request processing."""

from usage_audit.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
