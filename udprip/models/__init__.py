"""Configuration models for the router."""

from .config import RouterConfig, DEFAULT_PORT, MAX_METRIC, STALE_MULTIPLIER

__all__ = [
    "RouterConfig",
    "DEFAULT_PORT",
    "MAX_METRIC",
    "STALE_MULTIPLIER",
]
