"""Routing layer: neighbor tracking, distance vectors and dispatch."""

from .neighbors import NeighborTable, NeighborEntry
from .table import RoutingTable, RouteEntry
from .router import RouterCore

__all__ = [
    "NeighborTable",
    "NeighborEntry",
    "RoutingTable",
    "RouteEntry",
    "RouterCore",
]
