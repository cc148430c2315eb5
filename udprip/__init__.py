"""UDP distance-vector router for overlay networks."""

__version__ = "0.1.0"
