"""Usage report route."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from usage_audit.auth.api_key import resolve_api_key
from usage_audit.dependencies import get_usage_service
from usage_audit.services.usage_service import UsageService

router = APIRouter(tags=["Usage"])


@router.get("/usage")
async def usage(
    request: Request,
    service: UsageService = Depends(get_usage_service),
) -> JSONResponse:
    """
    Total usage and the most recent calls for a key.

    The key comes from the ``key`` query parameter or ``x-api-key`` header
    and is only ever echoed back masked.
    """
    api_key = resolve_api_key(request.query_params, request.headers)
    response = await service.report(api_key)
    return JSONResponse(status_code=200, content=response.to_json())
