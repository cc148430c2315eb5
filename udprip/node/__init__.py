"""Router node runtime."""

from .node import RouterNode

__all__ = ["RouterNode"]
