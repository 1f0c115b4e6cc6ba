"""
Request logging and metrics middleware.

Logs every request with a correlation ID, records Prometheus HTTP metrics
and echoes the correlation ID back in the ``X-Correlation-ID`` header.
"""

import time
import uuid
from typing import Optional

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from shared.logging import bind_context, clear_context
from shared.metrics import SiteMetrics

logger = structlog.get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request logging and metrics."""

    def __init__(
        self,
        app,
        metrics: Optional[SiteMetrics] = None,
        service_name: Optional[str] = None,
        environment: Optional[str] = None,
    ):
        super().__init__(app)
        self.metrics = metrics
        # Bound per request so entries carry the app that served them.
        self.app_context = {
            key: value
            for key, value in (("app", service_name), ("environment", environment))
            if value
        }

    async def dispatch(self, request: Request, call_next):
        """Process request and log details."""
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        clear_context()
        bind_context(correlation_id=correlation_id, **self.app_context)

        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"

        if self.metrics is not None:
            self.metrics.http_requests_in_progress.labels(method=method, endpoint=path).inc()

        start_time = time.perf_counter()

        logger.info(
            "request_started",
            method=method,
            path=path,
            client_ip=client_ip
        )

        try:
            response = await call_next(request)

            duration = time.perf_counter() - start_time

            if self.metrics is not None:
                self.metrics.http_requests_total.labels(
                    method=method,
                    endpoint=path,
                    status=response.status_code
                ).inc()
                self.metrics.http_request_duration_seconds.labels(
                    method=method,
                    endpoint=path
                ).observe(duration)

            logger.info(
                "request_completed",
                method=method,
                path=path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 1)
            )

            response.headers["X-Correlation-ID"] = correlation_id
            return response

        except Exception as e:
            duration = time.perf_counter() - start_time
            logger.error(
                "request_failed",
                method=method,
                path=path,
                error=str(e),
                duration_ms=round(duration * 1000, 1),
                exc_info=True
            )
            raise

        finally:
            if self.metrics is not None:
                self.metrics.http_requests_in_progress.labels(method=method, endpoint=path).dec()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to responses."""

    def __init__(self, app, content_security_policy: Optional[str] = None):
        super().__init__(app)
        self.content_security_policy = content_security_policy

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if self.content_security_policy:
            response.headers["Content-Security-Policy"] = self.content_security_policy

        return response
