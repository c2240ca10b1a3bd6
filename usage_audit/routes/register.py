"""API key registration route."""

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from usage_audit.dependencies import get_key_service
from usage_audit.services.key_service import KeyService

router = APIRouter(tags=["Keys"])


async def _owner_from_body(request: Request) -> str | None:
    """Read ``userId`` from a JSON body, if there is one."""
    raw = await request.body()
    if not raw:
        return None
    try:
        payload: Any = json.loads(raw)
    except ValueError:
        return None
    if isinstance(payload, dict) and payload.get("userId") is not None:
        return str(payload["userId"])
    return None


@router.api_route(
    "/register",
    methods=["GET", "POST"],
    responses={
        200: {
            "description": "API key generated",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "apiKey": "3f2b8c1d9e7a4b6c8d0e1f2a3b4c5d6e",
                        "userId": "anonymous",
                        "message": "API key generated successfully",
                    }
                }
            },
        },
        500: {"description": "Usage store unavailable"},
    },
)
async def register(
    request: Request,
    service: KeyService = Depends(get_key_service),
) -> JSONResponse:
    """
    Issue a new API key.

    The owner id is taken from the ``userId`` query parameter, then from a
    JSON body field of the same name, and defaults to ``anonymous``.
    """
    owner_id = request.query_params.get("userId") or await _owner_from_body(request)
    response = await service.issue(owner_id)
    return JSONResponse(status_code=200, content=response.to_json())
