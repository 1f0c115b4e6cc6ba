"""FastAPI middleware components.

This package contains middleware for request logging, metrics, security
headers and rate limiting.
"""

from site_api.src.middleware.rate_limit import (
    GlobalRateLimitMiddleware,
    limiter,
    rate_limit_exceeded_handler,
    route_limit,
)
from site_api.src.middleware.request_logging import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)

__all__ = [
    # Rate limiting
    "GlobalRateLimitMiddleware",
    "limiter",
    "rate_limit_exceeded_handler",
    "route_limit",
    # Logging and headers
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
]
