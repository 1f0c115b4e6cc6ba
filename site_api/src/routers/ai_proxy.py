"""
Generative-AI proxy routes.

``POST /api/anthropic`` and ``POST /api/gemini`` accept ``{"prompt": ...}``
and relay it to the matching provider through the AI proxy gateway.
"""

import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from site_api.src.dependencies import get_gateway, read_json_body
from site_api.src.errors import InternalError, PayloadValidationError, SiteAPIError
from site_api.src.middleware.rate_limit import ANTHROPIC_LIMIT, GEMINI_LIMIT, route_limit
from site_api.src.models.requests import AIPromptRequest
from site_api.src.services.ai_gateway import AIProxyGateway
from site_api.src.validation import validate_payload

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["AI Proxy"])


async def _proxy(request: Request, gateway: AIProxyGateway, provider_name: str) -> JSONResponse:
    provider = gateway.provider(provider_name)
    try:
        result = validate_payload(AIPromptRequest, await read_json_body(request))
        if not result.ok:
            raise PayloadValidationError(result.errors)

        payload = await gateway.generate(provider_name, result.value.prompt)
    except SiteAPIError:
        raise
    except Exception as e:
        logger.error("ai_proxy_failed", provider=provider_name, error=str(e), exc_info=True)
        raise InternalError() from e

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "success": True,
            "message": f"{provider.display_name} API request successful",
            "data": payload,
        },
    )


@router.post("/anthropic")
@route_limit(ANTHROPIC_LIMIT)
async def proxy_anthropic(
    request: Request,
    gateway: AIProxyGateway = Depends(get_gateway),
) -> JSONResponse:
    """Relay a prompt to the Anthropic Messages API."""
    return await _proxy(request, gateway, "anthropic")


@router.post("/gemini")
@route_limit(GEMINI_LIMIT)
async def proxy_gemini(
    request: Request,
    gateway: AIProxyGateway = Depends(get_gateway),
) -> JSONResponse:
    """Relay a prompt to the Gemini generateContent API."""
    return await _proxy(request, gateway, "gemini")
