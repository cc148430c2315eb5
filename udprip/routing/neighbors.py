"""Neighbor links and liveness tracking."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..models.config import STALE_MULTIPLIER


logger = logging.getLogger(__name__)


@dataclass
class NeighborEntry:
    """A configured overlay link."""
    ip: str  # Neighbor router address
    link_weight: int  # Cost of the link, always positive
    last_heard_from: float  # Last advertisement or explicit add


class NeighborTable:
    """
    Tracks configured links to neighbor routers.

    A neighbor stays alive as long as it keeps advertising. One that has
    been silent for ``stale_multiplier`` advertisement periods is reported
    by ``find_stale`` and removed by the router at the next tick.
    """

    def __init__(
        self,
        stale_multiplier: int = STALE_MULTIPLIER,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize neighbor table.

        Args:
            stale_multiplier: Periods of silence before a neighbor is stale
            clock: Time source, injectable for tests
        """
        self.stale_multiplier = stale_multiplier
        self.clock = clock

        self.neighbors: Dict[str, NeighborEntry] = {}
        self._lock = asyncio.Lock()

    async def add_neighbor(self, ip: str, weight: int) -> bool:
        """
        Add a neighbor or change its link weight.

        The liveness timestamp is refreshed either way.

        Args:
            ip: Neighbor address
            weight: Positive link weight (validated by the caller)

        Returns:
            True if the neighbor is new or its weight changed
        """
        async with self._lock:
            now = self.clock()
            entry = self.neighbors.get(ip)

            if entry is None:
                self.neighbors[ip] = NeighborEntry(ip=ip, link_weight=weight, last_heard_from=now)
                logger.info(f"Added neighbor {ip} with weight {weight}")
                return True

            entry.last_heard_from = now
            if entry.link_weight != weight:
                logger.info(f"Updated neighbor {ip} weight from {entry.link_weight} to {weight}")
                entry.link_weight = weight
                return True

            return False

    async def remove_neighbor(self, ip: str) -> bool:
        """
        Remove a neighbor.

        Returns:
            True if the neighbor existed
        """
        async with self._lock:
            if self.neighbors.pop(ip, None) is None:
                return False

            logger.info(f"Removed neighbor {ip}")
            return True

    async def record_heartbeat(self, ip: str) -> bool:
        """
        Refresh a neighbor's liveness timestamp.

        Heartbeats from addresses that are not configured neighbors are
        ignored.

        Returns:
            True if the neighbor exists and was refreshed
        """
        async with self._lock:
            entry = self.neighbors.get(ip)
            if entry is None:
                return False

            entry.last_heard_from = self.clock()
            return True

    async def find_stale(self, period: float) -> List[str]:
        """
        Find neighbors not heard from within the liveness timeout.

        Does not modify the table.

        Args:
            period: Advertisement period in seconds

        Returns:
            Addresses of stale neighbors
        """
        async with self._lock:
            timeout = period * self.stale_multiplier
            now = self.clock()
            stale = [
                ip for ip, entry in self.neighbors.items()
                if (now - entry.last_heard_from) > timeout
            ]

        for ip in stale:
            logger.info(f"Detected stale neighbor {ip}")

        return stale

    def link_weight(self, ip: str) -> Optional[int]:
        """Get link weight to a neighbor, or None if not a neighbor."""
        entry = self.neighbors.get(ip)
        return entry.link_weight if entry else None

    def is_neighbor(self, ip: str) -> bool:
        """Check whether an address is a configured neighbor."""
        return ip in self.neighbors

    def all_neighbors(self) -> List[str]:
        """Get all neighbor addresses."""
        return list(self.neighbors.keys())

    def get_neighbor(self, ip: str) -> Optional[NeighborEntry]:
        """Get neighbor entry by address."""
        return self.neighbors.get(ip)

    def get_stats(self) -> dict:
        """Get neighbor statistics."""
        now = self.clock()
        return {
            "total_neighbors": len(self.neighbors),
            "neighbors": {
                ip: {
                    "weight": entry.link_weight,
                    "age": now - entry.last_heard_from,
                }
                for ip, entry in self.neighbors.items()
            },
        }
