"""
FastAPI application entry point for the promotional site API.

This module provides the main FastAPI application with:
- Contact form and newsletter endpoints backed by the in-memory store
- Anthropic and Gemini proxy endpoints
- Per-route and global rate limiting
- Request logging, Prometheus metrics and security headers
- CORS for the front-end origins
- A single set of exception handlers mapping errors to JSON envelopes
"""

from contextlib import asynccontextmanager
from dataclasses import replace
from typing import AsyncGenerator, Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CollectorRegistry
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.logging import configure_logging, get_logger
from shared.metrics import SiteMetrics
from site_api.src.config import Settings, get_settings
from site_api.src.errors import (
    ConfigurationError,
    InternalError,
    PayloadValidationError,
    SiteAPIError,
    UpstreamError,
)
from site_api.src.middleware import (
    GlobalRateLimitMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    limiter,
    rate_limit_exceeded_handler,
)
from site_api.src.middleware.rate_limit import GLOBAL_LIMIT, configure_route_limits
from site_api.src.repositories.memory_store import MemoryStorage
from site_api.src.routers import ai_proxy, diagnostics, forms
from site_api.src.services.ai_gateway import AIProxyGateway
from site_api.src.validation import FieldError

logger = get_logger(__name__)

# Routes outside the global request limit.
GLOBAL_LIMIT_EXEMPT_PATHS = (
    "/api/cors-test",
    "/health",
    "/ready",
    "/metrics",
    "/docs",
    "/redoc",
    "/openapi.json",
)


# ============================================================================
# Exception Handlers
# ============================================================================

async def site_error_handler(request: Request, exc: SiteAPIError) -> JSONResponse:
    """Translate the error taxonomy into wire responses."""
    if isinstance(exc, PayloadValidationError):
        logger.warning(
            "validation_error",
            path=request.url.path,
            fields=[err.field for err in exc.errors]
        )
    elif isinstance(exc, ConfigurationError):
        logger.error(
            "configuration_error",
            path=request.url.path,
            provider=exc.provider,
            reason=exc.reason
        )
    elif isinstance(exc, UpstreamError):
        logger.warning(
            "upstream_error",
            path=request.url.path,
            provider=exc.provider,
            upstream_status=exc.upstream_status,
            status_code=exc.status_code
        )
    elif isinstance(exc, InternalError):
        logger.error("internal_error", path=request.url.path, message=exc.message)

    return JSONResponse(status_code=exc.status_code, content=exc.to_response_body())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle FastAPI's own request validation errors with the same envelope."""
    errors = [
        FieldError(".".join(str(part) for part in err["loc"] if part != "body") or "body", err["msg"])
        for err in exc.errors()
    ]
    return await site_error_handler(request, PayloadValidationError(errors))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions (unknown routes, wrong methods)."""
    logger.warning(
        "http_exception",
        path=request.url.path,
        status_code=exc.status_code,
        detail=exc.detail
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "unexpected_exception",
        path=request.url.path,
        error=str(exc),
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": InternalError.default_message}
    )


# ============================================================================
# Application Factory
# ============================================================================

def create_app(
    settings: Optional[Settings] = None,
    store: Optional[MemoryStorage] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
        store: Record store (a fresh in-memory store by default)
        http_client: Client for upstream AI providers (one with the
            configured timeout by default); closed on shutdown

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    configure_logging(
        log_level=settings.log_level,
        json_logs=settings.log_format == "json",
        service_name=settings.app_name,
        environment=settings.environment,
    )

    metrics = SiteMetrics(registry=CollectorRegistry())
    client = http_client or httpx.AsyncClient(timeout=settings.upstream_timeout)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info(
            "application_started",
            app_name=settings.app_name,
            version=settings.app_version,
            environment=settings.environment,
            anthropic_configured=settings.anthropic_api_key is not None,
            gemini_configured=settings.gemini_api_key is not None,
        )
        try:
            yield
        finally:
            logger.info("application_shutting_down")
            await client.aclose()
            logger.info("application_shutdown_complete")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=(
            "Backend for the promotional website: contact and newsletter "
            "forms plus a proxy to generative-AI providers."
        ),
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.state.settings = settings
    app.state.store = store or MemoryStorage()
    app.state.metrics = metrics
    app.state.gateway = AIProxyGateway(settings, client, metrics=metrics)
    app.state.limiter = limiter
    configure_route_limits(settings)

    # ------------------------------------------------------------------
    # Middleware (the last one added runs first)
    # ------------------------------------------------------------------

    app.add_middleware(
        GlobalRateLimitMiddleware,
        limit=replace(GLOBAL_LIMIT, limit=settings.rate_limit_global),
        storage_uri=settings.rate_limit_storage_url,
        exempt_paths=GLOBAL_LIMIT_EXEMPT_PATHS,
        enabled=settings.rate_limit_enabled,
        metrics=metrics,
    )
    app.add_middleware(
        RequestLoggingMiddleware,
        metrics=metrics,
        service_name=settings.app_name,
        environment=settings.environment,
    )

    if settings.security_headers_enabled:
        app.add_middleware(SecurityHeadersMiddleware, content_security_policy=settings.security_csp)

    if settings.cors_enabled:
        logger.info("configuring_cors", origins=settings.cors_origins)
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=settings.cors_allow_credentials,
            allow_methods=settings.cors_allow_methods,
            allow_headers=settings.cors_allow_headers,
        )

    # ------------------------------------------------------------------
    # Exception handlers
    # ------------------------------------------------------------------

    app.add_exception_handler(SiteAPIError, site_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # ------------------------------------------------------------------
    # Routers
    # ------------------------------------------------------------------

    app.include_router(diagnostics.router)
    app.include_router(forms.router, prefix=settings.api_prefix)
    app.include_router(ai_proxy.router, prefix=settings.api_prefix)

    return app


app = create_app()


def run() -> None:
    """Run the application with Uvicorn."""
    settings = get_settings()
    logger.info(
        "starting_uvicorn_server",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )

    uvicorn.run(
        "site_api.src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    run()
