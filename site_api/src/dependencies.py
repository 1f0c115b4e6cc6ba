"""
FastAPI dependency injection for shared application resources.

The store, gateway and metrics live on ``app.state``; they are created by
``create_app`` so each application instance (and each test) gets its own.
"""

import json
from typing import Any, Optional

import structlog
from fastapi import Request

from shared.metrics import SiteMetrics
from site_api.src.errors import PayloadValidationError
from site_api.src.repositories.memory_store import MemoryStorage
from site_api.src.services.ai_gateway import AIProxyGateway
from site_api.src.validation import FieldError

logger = structlog.get_logger(__name__)


def get_store(request: Request) -> MemoryStorage:
    return request.app.state.store


def get_gateway(request: Request) -> AIProxyGateway:
    return request.app.state.gateway


def get_metrics(request: Request) -> Optional[SiteMetrics]:
    return getattr(request.app.state, "metrics", None)


async def read_json_body(request: Request) -> Any:
    """
    Decode the request body as JSON.

    Bodies are read inside the handler rather than through a FastAPI body
    parameter so that the per-route rate limit is applied before any
    validation happens. An empty body decodes to ``{}``.

    Raises:
        PayloadValidationError: If the body is not valid JSON
    """
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.info("malformed_json_body", path=request.url.path, error=str(e))
        raise PayloadValidationError([FieldError("body", "Malformed JSON body")])
