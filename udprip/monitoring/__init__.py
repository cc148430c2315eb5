"""Monitoring for the router."""

from .metrics import MetricsCollector, RouterMetrics

__all__ = [
    "MetricsCollector",
    "RouterMetrics",
]
