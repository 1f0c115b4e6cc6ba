"""
Rate limiting for the site API.

Two layers, both keyed by client address over a moving window:

- Per-route limits are slowapi decorators on the route handlers. They run
  before the body is validated, so every request reaching the route counts.
  Their windows are read when the request arrives, from the settings the
  running app was built with (see ``configure_route_limits``).
- The global limit is a middleware on top of the ``limits`` strategies.
  Only successful responses (status < 400) are counted against it. Requests
  still in flight are reserved against the window when it is checked, and
  the hit is recorded once the response is known.

Rejections get a 429 with a fixed ``{"error": ...}`` body and never reach
the store or an upstream provider.
"""

from dataclasses import dataclass
from collections import Counter
from typing import Dict, Iterable, Optional, Set

import structlog
from fastapi import Request, status
from fastapi.responses import JSONResponse
from limits import parse
from limits.storage import storage_from_string
from limits.strategies import MovingWindowRateLimiter
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from shared.metrics import SiteMetrics
from site_api.src.config import Settings, get_settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RouteLimit:
    """A rate limit window and the message returned once it is exceeded."""
    group: str
    limit: str
    message: str


_settings = get_settings()

CONTACT_LIMIT = RouteLimit(
    group="contact",
    limit=_settings.rate_limit_contact,
    message="Too many contact form submissions, please try again later",
)
NEWSLETTER_LIMIT = RouteLimit(
    group="newsletter",
    limit=_settings.rate_limit_newsletter,
    message="Too many newsletter subscriptions, please try again later",
)
ANTHROPIC_LIMIT = RouteLimit(
    group="anthropic",
    limit=_settings.rate_limit_anthropic,
    message="Too many Anthropic API requests, please try again later",
)
GEMINI_LIMIT = RouteLimit(
    group="gemini",
    limit=_settings.rate_limit_gemini,
    message="Too many Gemini API requests, please try again later",
)
GLOBAL_LIMIT = RouteLimit(
    group="global",
    limit=_settings.rate_limit_global,
    message="Too many requests, please try again later",
)

ROUTE_LIMITS = (CONTACT_LIMIT, NEWSLETTER_LIMIT, ANTHROPIC_LIMIT, GEMINI_LIMIT)

limiter = Limiter(
    key_func=get_remote_address,
    strategy="moving-window",
    storage_uri=_settings.rate_limit_storage_url,
    enabled=_settings.rate_limit_enabled,
)

# Window currently applied to each route group.
_active_limits: Dict[str, str] = {route.group: route.limit for route in ROUTE_LIMITS}


def configure_route_limits(settings: Settings) -> None:
    """
    Apply an app's settings to the per-route limiter.

    The limiter is shared by every route module, so the most recently
    configured app decides the windows and whether limiting is enabled.
    Counters live in ``rate_limit_storage_url`` as read at import time.
    """
    limiter.enabled = settings.rate_limit_enabled
    _active_limits.update({
        CONTACT_LIMIT.group: settings.rate_limit_contact,
        NEWSLETTER_LIMIT.group: settings.rate_limit_newsletter,
        ANTHROPIC_LIMIT.group: settings.rate_limit_anthropic,
        GEMINI_LIMIT.group: settings.rate_limit_gemini,
    })
    logger.info(
        "route_limits_configured",
        enabled=settings.rate_limit_enabled,
        limits=dict(_active_limits),
    )


def active_limit(route: RouteLimit) -> str:
    return _active_limits.get(route.group, route.limit)


def route_limit(route: RouteLimit):
    """Decorate a route handler with its per-route window."""
    return limiter.limit(lambda: active_limit(route), error_message=route.message)


def _group_for_message(message: str) -> str:
    for route in ROUTE_LIMITS:
        if route.message == message:
            return route.group
    return "unknown"


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Reply to a per-route rejection with its fixed message."""
    group = _group_for_message(exc.detail)
    logger.warning(
        "rate_limit_exceeded",
        group=group,
        path=request.url.path,
        client_ip=get_remote_address(request),
    )
    metrics: Optional[SiteMetrics] = getattr(request.app.state, "metrics", None)
    if metrics is not None:
        metrics.rate_limit_rejections.labels(group=group).inc()
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"error": exc.detail},
    )


class GlobalRateLimitMiddleware(BaseHTTPMiddleware):
    """Application-wide limit that ignores failed requests."""

    def __init__(
        self,
        app,
        limit: RouteLimit = GLOBAL_LIMIT,
        storage_uri: str = "memory://",
        exempt_paths: Iterable[str] = (),
        enabled: bool = True,
        metrics: Optional[SiteMetrics] = None,
    ):
        """
        Initialize the global limiter.

        Args:
            app: ASGI application
            limit: Window, maximum and rejection message
            storage_uri: ``limits`` storage URI for the counters
            exempt_paths: Paths never counted or limited
            enabled: Pass every request through when False
            metrics: Optional metrics sink
        """
        super().__init__(app)
        self.route = limit
        self.limit_item = parse(limit.limit)
        self.strategy = MovingWindowRateLimiter(storage_from_string(storage_uri))
        self.exempt_paths: Set[str] = set(exempt_paths)
        self.enabled = enabled
        self.metrics = metrics
        # Requests per client that passed the check and have not finished yet.
        self.in_flight: Counter = Counter()

    async def dispatch(self, request: Request, call_next):
        if not self.enabled or request.url.path in self.exempt_paths:
            return await call_next(request)

        client_ip = get_remote_address(request)

        pending = self.in_flight[client_ip]
        if not self.strategy.test(
            self.limit_item, self.route.group, client_ip, cost=pending + 1
        ):
            logger.warning(
                "rate_limit_exceeded",
                group=self.route.group,
                path=request.url.path,
                client_ip=client_ip,
            )
            if self.metrics is not None:
                self.metrics.rate_limit_rejections.labels(group=self.route.group).inc()
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"error": self.route.message},
            )

        self.in_flight[client_ip] += 1
        try:
            response = await call_next(request)
        finally:
            self.in_flight[client_ip] -= 1
            if not self.in_flight[client_ip]:
                del self.in_flight[client_ip]

        if response.status_code < 400:
            self.strategy.hit(self.limit_item, self.route.group, client_ip)

        return response
