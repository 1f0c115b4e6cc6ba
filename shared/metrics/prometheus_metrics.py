"""Prometheus metrics definitions and helpers.

Provides the metric definitions exported by the site API.
"""

from typing import Callable

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    REGISTRY,
    generate_latest,
)


class SiteMetrics:
    """Site API metrics."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        """Initialize site metrics.

        Args:
            registry: Prometheus registry to use
        """
        self.registry = registry

        # HTTP traffic
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status"],
            registry=registry,
        )

        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=registry,
        )

        self.http_requests_in_progress = Gauge(
            "http_requests_in_progress",
            "HTTP requests currently in progress",
            ["method", "endpoint"],
            registry=registry,
        )

        # Form submissions
        self.contact_submissions = Counter(
            "contact_submissions_total",
            "Contact messages stored",
            registry=registry,
        )

        self.newsletter_signups = Counter(
            "newsletter_signups_total",
            "Newsletter signups handled, duplicates included",
            registry=registry,
        )

        # Rate limiting
        self.rate_limit_rejections = Counter(
            "rate_limit_rejections_total",
            "Requests rejected by a rate limiter",
            ["group"],
            registry=registry,
        )

        # Upstream AI providers
        self.ai_proxy_requests = Counter(
            "ai_proxy_requests_total",
            "Upstream AI provider calls by outcome",
            ["provider", "outcome"],
            registry=registry,
        )

        self.ai_proxy_duration = Histogram(
            "ai_proxy_request_duration_seconds",
            "Time spent waiting on upstream AI providers",
            ["provider"],
            buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 20.0, 30.0],
            registry=registry,
        )


def get_metrics_handler(registry: CollectorRegistry = REGISTRY) -> Callable[[], bytes]:
    """Get metrics handler for HTTP endpoint.

    Args:
        registry: Registry whose metrics are exposed

    Returns:
        Function that generates Prometheus metrics output
    """

    def metrics_handler() -> bytes:
        return generate_latest(registry)

    return metrics_handler
