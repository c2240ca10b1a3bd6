"""Metered proxy route."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from usage_audit.dependencies import get_proxy_service
from usage_audit.services.proxy_service import ProxyRequest, ProxyService

router = APIRouter(tags=["Proxy"])


@router.api_route(
    "/proxy",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    responses={
        200: {
            "description": "Upstream response with ledger audit information",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "data": {"latitude": 52.52},
                        "audit": {
                            "txHash": "0x5c50...",
                            "apiKeyHash": "0x1b84...",
                            "requestHash": "9f86d081884c7d65...",
                            "timestamp": 1731326400,
                            "tag": "proxy:v1",
                        },
                    }
                }
            },
        },
        400: {"description": "Missing endpoint"},
        401: {"description": "Missing API key"},
        403: {"description": "Invalid API key"},
        502: {"description": "Upstream unreachable"},
        504: {"description": "Upstream timeout"},
    },
)
async def proxy(
    request: Request,
    service: ProxyService = Depends(get_proxy_service),
) -> JSONResponse:
    """
    Forward a request to the upstream API and record its usage.

    Query parameters ``key``, ``endpoint`` and ``tag`` are consumed by the
    proxy; every other parameter is forwarded. The key may also be sent in
    the ``x-api-key`` header. The response status is the upstream's.
    """
    proxy_request = ProxyRequest(
        method=request.method,
        query_items=list(request.query_params.multi_items()),
        headers=request.headers,
        body=await request.body(),
        content_type=request.headers.get("content-type"),
        correlation_id=getattr(request.state, "correlation_id", None),
    )
    result = await service.forward(proxy_request)
    return JSONResponse(status_code=result.status_code, content=result.body.to_json())
