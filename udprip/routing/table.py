"""Distance-vector routing table."""

import asyncio
import logging
import time
from typing import Callable, Dict, Iterable, List, Optional
from dataclasses import dataclass

from ..models.config import MAX_METRIC


logger = logging.getLogger(__name__)


@dataclass
class RouteEntry:
    """Represents a route to a destination."""
    destination: str  # Destination router address
    distance: int  # Total cost to the destination
    next_hop: str  # Neighbor to send through
    learned_from: str  # Neighbor whose advertisement installed this route
    last_refreshed: float  # When the route was last installed or re-stated


class RoutingTable:
    """
    Distance-vector routing table.

    Runs an incrementally relaxed Bellman-Ford: each advertisement from a
    neighbor is merged with the cost of the link to that neighbor. Routes
    learned from a neighbor always follow that neighbor's latest claim,
    routes from other neighbors are only replaced by strictly shorter ones.
    Distances above ``max_metric`` are treated as unreachable.
    """

    def __init__(
        self,
        local_address: str,
        max_metric: int = MAX_METRIC,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize routing table.

        Args:
            local_address: Local router address
            max_metric: Maximum distance (routes beyond this are never installed)
            clock: Time source, injectable for tests
        """
        self.local_address = local_address
        self.max_metric = max_metric
        self.clock = clock

        # Routing table: destination -> RouteEntry
        self.routes: Dict[str, RouteEntry] = {
            local_address: RouteEntry(
                destination=local_address,
                distance=0,
                next_hop=local_address,
                learned_from=local_address,
                last_refreshed=clock()
            )
        }

        self._lock = asyncio.Lock()

    async def apply_update(
        self,
        neighbor_ip: str,
        distances: Dict[str, int],
        link_weight: int
    ) -> int:
        """
        Merge a neighbor's distance vector into the table.

        Args:
            neighbor_ip: Neighbor that sent the advertisement
            distances: Destination -> distance as seen by the neighbor
            link_weight: Cost of our link to the neighbor

        Returns:
            Number of routes added or changed
        """
        async with self._lock:
            now = self.clock()
            changed = 0

            if (
                neighbor_ip not in self.routes
                and neighbor_ip != self.local_address
                and link_weight <= self.max_metric
            ):
                self.routes[neighbor_ip] = RouteEntry(
                    destination=neighbor_ip,
                    distance=link_weight,
                    next_hop=neighbor_ip,
                    learned_from=neighbor_ip,
                    last_refreshed=now
                )
                changed += 1

            for destination, cost in distances.items():
                if destination == self.local_address:
                    continue

                candidate = link_weight + cost
                if candidate > self.max_metric:
                    continue

                existing = self.routes.get(destination)

                if existing is None:
                    self.routes[destination] = RouteEntry(
                        destination=destination,
                        distance=candidate,
                        next_hop=neighbor_ip,
                        learned_from=neighbor_ip,
                        last_refreshed=now
                    )
                    changed += 1
                    logger.debug(
                        f"Added route to {destination} via {neighbor_ip} (distance={candidate})"
                    )

                elif existing.learned_from == neighbor_ip:
                    # The source of this route re-states its cost, better or worse
                    if existing.distance != candidate:
                        logger.debug(
                            f"Route to {destination} via {neighbor_ip} changed "
                            f"from {existing.distance} to {candidate}"
                        )
                        changed += 1
                    existing.distance = candidate
                    existing.last_refreshed = now

                elif candidate < existing.distance:
                    logger.debug(
                        f"Better route to {destination} via {neighbor_ip} "
                        f"(distance={candidate}, was {existing.distance} via {existing.next_hop})"
                    )
                    existing.distance = candidate
                    existing.next_hop = neighbor_ip
                    existing.learned_from = neighbor_ip
                    existing.last_refreshed = now
                    changed += 1

            if changed:
                logger.info(f"Applied update from {neighbor_ip}: {changed} routes changed")
            return changed

    async def install_direct_route(self, neighbor_ip: str, weight: int) -> bool:
        """
        Install the route for a directly linked neighbor.

        An existing route is replaced when it was learned from that
        neighbor or when the link is at least as short.

        Args:
            neighbor_ip: Neighbor address
            weight: Link weight

        Returns:
            True if the direct route was installed
        """
        async with self._lock:
            if neighbor_ip == self.local_address or weight > self.max_metric:
                return False

            existing = self.routes.get(neighbor_ip)
            if (
                existing is not None
                and existing.learned_from != neighbor_ip
                and weight > existing.distance
            ):
                return False

            self.routes[neighbor_ip] = RouteEntry(
                destination=neighbor_ip,
                distance=weight,
                next_hop=neighbor_ip,
                learned_from=neighbor_ip,
                last_refreshed=self.clock()
            )

            logger.info(f"Installed direct route to {neighbor_ip} (distance={weight})")
            return True

    async def distances_for(self, neighbor_ip: str) -> Dict[str, int]:
        """
        Build the distance vector to advertise to one neighbor.

        Split horizon: routes learned from the neighbor are never
        advertised back to it, which also leaves out the neighbor's own
        direct route.

        Args:
            neighbor_ip: Neighbor the advertisement is for

        Returns:
            Destination -> distance
        """
        async with self._lock:
            return {
                dest: route.distance for dest, route in self.routes.items()
                if route.learned_from != neighbor_ip
            }

    async def remove_routes_via(self, neighbor_ip: str) -> int:
        """
        Remove every route that depends on a neighbor.

        Args:
            neighbor_ip: Neighbor that is gone

        Returns:
            Number of routes removed
        """
        async with self._lock:
            return self._remove_routes_via(neighbor_ip)

    async def evict_stale(self, stale_neighbors: Iterable[str]) -> int:
        """
        Remove stale neighbors and all routes through them.

        Args:
            stale_neighbors: Neighbors reported stale by the neighbor table

        Returns:
            Number of routes removed
        """
        async with self._lock:
            removed = 0
            for neighbor_ip in stale_neighbors:
                if neighbor_ip == self.local_address:
                    continue
                removed += self._remove_routes_via(neighbor_ip)
            return removed

    def _remove_routes_via(self, neighbor_ip: str) -> int:
        to_remove = [
            dest for dest, route in self.routes.items()
            if dest != self.local_address
            and (route.next_hop == neighbor_ip or route.learned_from == neighbor_ip)
        ]

        for dest in to_remove:
            del self.routes[dest]
            logger.debug(f"Removed route to {dest} via {neighbor_ip}")

        if to_remove:
            logger.info(f"Invalidated {len(to_remove)} routes via {neighbor_ip}")
        return len(to_remove)

    def has_route(self, destination: str) -> bool:
        """Check whether a destination is reachable."""
        return destination == self.local_address or destination in self.routes

    def next_hop(self, destination: str) -> Optional[str]:
        """
        Get next hop for destination.

        Args:
            destination: Destination router address

        Returns:
            Next hop address (the local address for ourselves), or None if no route
        """
        if destination == self.local_address:
            return self.local_address

        route = self.routes.get(destination)
        return route.next_hop if route else None

    def get_route(self, destination: str) -> Optional[RouteEntry]:
        """Get route to destination."""
        return self.routes.get(destination)

    def get_all_routes(self) -> List[RouteEntry]:
        """Get all routes, ordered by destination."""
        return sorted(self.routes.values(), key=lambda r: r.destination)

    def get_stats(self) -> dict:
        """Get routing statistics."""
        remote = [r for r in self.routes.values() if r.destination != self.local_address]
        return {
            "total_routes": len(self.routes),
            "direct_routes": sum(1 for r in remote if r.destination == r.next_hop),
            "destinations": sorted(self.routes.keys()),
            "avg_metric": sum(r.distance for r in remote) / max(len(remote), 1),
        }
