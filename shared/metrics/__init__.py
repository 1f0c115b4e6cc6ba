"""Metrics module using Prometheus."""

from .prometheus_metrics import SiteMetrics, get_metrics_handler

__all__ = [
    "SiteMetrics",
    "get_metrics_handler",
]
