"""
Upstream Client

Assembles forwarded requests and sends them to the configured upstream API.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from usage_audit.exceptions import (
    MissingEndpointError,
    ProxyFailedError,
    UpstreamTimeoutError,
)

logger = logging.getLogger(__name__)

# Query parameters consumed by the proxy itself and never forwarded
RESERVED_PARAMS = frozenset({"key", "endpoint", "tag"})

# Methods whose body is forwarded
BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


def normalize_endpoint(endpoint: str | None) -> str:
    """
    Normalise the caller's endpoint to exactly one leading slash.

    Raises:
        MissingEndpointError: If the endpoint is absent, empty or contains
            control characters
    """
    endpoint = (endpoint or "").strip()
    if not endpoint:
        raise MissingEndpointError()
    if not endpoint.isprintable():
        raise MissingEndpointError("Endpoint contains non-printable characters")
    return "/" + endpoint.lstrip("/")


def build_target_url(base_url: str, endpoint: str) -> str:
    """Join base URL and endpoint with exactly one separating slash."""
    return base_url.rstrip("/") + normalize_endpoint(endpoint)


def forwardable_params(
    items: list[tuple[str, str]],
) -> dict[str, str | list[str]]:
    """
    Strip reserved names from inbound query parameters.

    Repeated parameters become lists in order of appearance.

    Args:
        items: Query parameters as (name, value) pairs

    Returns:
        Mapping of forwarded parameters
    """
    params: dict[str, str | list[str]] = {}
    for name, value in items:
        if name in RESERVED_PARAMS:
            continue
        if name in params:
            existing = params[name]
            if isinstance(existing, list):
                existing.append(value)
            else:
                params[name] = [existing, value]
        else:
            params[name] = value
    return params


def parse_body(raw: bytes, content_type: str | None) -> Any:
    """
    Interpret an inbound body for forwarding and fingerprinting.

    JSON bodies are parsed; anything else is kept as text.

    Returns:
        Parsed JSON, text, or None for an empty body
    """
    if not raw:
        return None
    text = raw.decode("utf-8", errors="replace")
    if content_type is None or "json" in content_type.lower():
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text
    return text


@dataclass
class UpstreamRequest:
    """A request ready to be forwarded."""

    method: str
    url: str
    endpoint: str
    params: dict[str, Any] = field(default_factory=dict)
    body: Any = None
    raw_body: bytes | None = None
    content_type: str | None = None

    @property
    def is_json_body(self) -> bool:
        return self.body is not None and not isinstance(self.body, str)


@dataclass
class UpstreamResponse:
    """What the upstream answered."""

    status_code: int
    body: Any

    @property
    def is_error(self) -> bool:
        return self.status_code >= 400


def assemble_request(
    base_url: str,
    method: str,
    endpoint: str | None,
    query_items: list[tuple[str, str]],
    raw_body: bytes = b"",
    content_type: str | None = None,
) -> UpstreamRequest:
    """
    Build the forwarded request from the inbound pieces.

    Args:
        base_url: Upstream base URL
        method: Inbound HTTP method (used verbatim, upper-cased)
        endpoint: Caller's endpoint parameter
        query_items: Inbound query parameters as pairs
        raw_body: Inbound body bytes
        content_type: Inbound Content-Type header

    Returns:
        UpstreamRequest

    Raises:
        MissingEndpointError: If the endpoint is absent or empty
    """
    method = method.upper()
    normalized = normalize_endpoint(endpoint)
    request = UpstreamRequest(
        method=method,
        url=base_url.rstrip("/") + normalized,
        endpoint=normalized,
        params=forwardable_params(query_items),
    )
    if method in BODY_METHODS and raw_body:
        request.raw_body = raw_body
        request.content_type = content_type
        request.body = parse_body(raw_body, content_type)
    return request


class UpstreamClient:
    """
    Sends assembled requests to the upstream API.

    A fresh ``httpx.AsyncClient`` is opened per call and closed on every
    exit path.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        user_agent: str = "usage-proxy/1.0",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            base_url: Upstream base URL
            timeout: Seconds before the call fails with UpstreamTimeoutError
            user_agent: User-Agent header sent upstream
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.base_url = base_url
        self.timeout = timeout
        self.user_agent = user_agent
        self._transport = transport

    def assemble(
        self,
        method: str,
        endpoint: str | None,
        query_items: list[tuple[str, str]],
        raw_body: bytes = b"",
        content_type: str | None = None,
    ) -> UpstreamRequest:
        """Assemble a request against this client's base URL."""
        return assemble_request(
            self.base_url, method, endpoint, query_items, raw_body, content_type
        )

    async def send(self, request: UpstreamRequest) -> UpstreamResponse:
        """
        Forward a request and return the upstream's answer.

        Error statuses are returned, not raised; only failures to get any
        response raise.

        Raises:
            UpstreamTimeoutError: If the upstream exceeds the timeout
            ProxyFailedError: If the upstream cannot be reached
        """
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
        }
        kwargs: dict[str, Any] = {"params": request.params, "headers": headers}
        if request.is_json_body:
            kwargs["json"] = request.body
        elif request.raw_body is not None:
            kwargs["content"] = request.raw_body
            if request.content_type:
                headers["Content-Type"] = request.content_type

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.request(request.method, request.url, **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning(
                "Upstream request timed out",
                extra={"context": {"url": request.url, "method": request.method}},
            )
            raise UpstreamTimeoutError(timeout_seconds=self.timeout) from exc
        except httpx.InvalidURL as exc:
            logger.warning(
                "Upstream URL rejected",
                extra={"context": {"method": request.method, "error": str(exc)}},
            )
            raise ProxyFailedError(message=f"Upstream URL is invalid: {exc}") from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "Upstream request failed",
                extra={
                    "context": {
                        "url": request.url,
                        "method": request.method,
                        "error_type": type(exc).__name__,
                    }
                },
            )
            raise ProxyFailedError(
                message=f"Upstream API is unreachable: {exc}"
            ) from exc

        return UpstreamResponse(
            status_code=response.status_code, body=_decode_response(response)
        )


def _decode_response(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
