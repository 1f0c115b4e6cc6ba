"""
Diagnostic, health and metrics routes.
"""

from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST

from shared.metrics import get_metrics_handler
from site_api.src.models.records import utc_timestamp

router = APIRouter()


@router.get("/api/cors-test", tags=["Diagnostics"])
async def cors_test(request: Request) -> Dict[str, Any]:
    """Echo the request headers so CORS setups can be checked from a browser."""
    return {
        "success": True,
        "message": "CORS test successful",
        "headers": dict(request.headers),
        "origin": request.headers.get("origin", "No origin"),
        "host": request.headers.get("host"),
        "timestamp": utc_timestamp(),
    }


@router.get("/health", tags=["Health"], response_class=JSONResponse)
async def health_check(request: Request) -> Dict[str, Any]:
    """
    Health check endpoint.

    Returns basic health status without checking dependencies.
    Use for container health checks.
    """
    settings = request.app.state.settings
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment
    }


@router.get("/ready", tags=["Health"], response_class=JSONResponse)
async def readiness_check(request: Request) -> Dict[str, Any]:
    """
    Readiness check endpoint.

    The store is in-process, so the service is always ready. Provider
    entries report whether an API key is configured; a missing key only
    disables the matching proxy route.
    """
    settings = request.app.state.settings
    gateway = request.app.state.gateway
    providers = {
        name: "configured" if provider.configured else "missing_api_key"
        for name, provider in gateway.providers.items()
    }
    return {
        "status": "ready",
        "service": settings.app_name,
        "version": settings.app_version,
        "checks": {"store": "healthy", **providers},
    }


@router.get("/metrics", tags=["Monitoring"], response_class=PlainTextResponse)
async def metrics(request: Request) -> Response:
    """Prometheus metrics endpoint."""
    if not request.app.state.settings.metrics_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    handler = get_metrics_handler(request.app.state.metrics.registry)
    return Response(content=handler(), media_type=CONTENT_TYPE_LATEST)
