"""Metrics collection for the router."""

import time
from dataclasses import dataclass, field


@dataclass
class RouterMetrics:
    """Container for router metrics."""
    # Message metrics
    messages_sent: int = 0
    messages_received: int = 0
    messages_forwarded: int = 0
    messages_delivered: int = 0
    messages_dropped: int = 0
    decode_errors: int = 0
    send_failures: int = 0
    bytes_sent: int = 0
    bytes_received: int = 0

    # Routing metrics
    updates_sent: int = 0
    updates_applied: int = 0
    routes_changed: int = 0
    stale_neighbors_evicted: int = 0
    total_routes: int = 0
    direct_routes: int = 0
    avg_route_metric: float = 0.0
    total_neighbors: int = 0

    # Performance metrics
    uptime_seconds: float = 0.0
    last_update: float = field(default_factory=time.time)


class MetricsCollector:
    """
    Collects router metrics.

    Counters are bumped by the router as messages flow; table gauges are
    refreshed on every tick.
    """

    def __init__(self, node_id: str):
        """
        Initialize metrics collector.

        Args:
            node_id: Local router address
        """
        self.node_id = node_id
        self.metrics = RouterMetrics()
        self.start_time = time.time()

    def record_message_sent(self, size_bytes: int, is_update: bool = False):
        """Record a sent message."""
        self.metrics.messages_sent += 1
        self.metrics.bytes_sent += size_bytes
        if is_update:
            self.metrics.updates_sent += 1

    def record_message_received(self, size_bytes: int):
        """Record a received message."""
        self.metrics.messages_received += 1
        self.metrics.bytes_received += size_bytes

    def record_message_forwarded(self):
        """Record a relayed message."""
        self.metrics.messages_forwarded += 1

    def record_message_delivered(self):
        """Record a message delivered locally."""
        self.metrics.messages_delivered += 1

    def record_message_dropped(self):
        """Record a dropped message."""
        self.metrics.messages_dropped += 1

    def record_decode_error(self):
        """Record an undecodable datagram."""
        self.metrics.decode_errors += 1
        self.metrics.messages_dropped += 1

    def record_send_failure(self):
        """Record an outbound message that could not be sent."""
        self.metrics.send_failures += 1

    def record_update_applied(self, routes_changed: int):
        """Record an accepted distance-vector update."""
        self.metrics.updates_applied += 1
        self.metrics.routes_changed += routes_changed

    def record_stale_neighbors(self, count: int):
        """Record neighbors evicted for silence."""
        self.metrics.stale_neighbors_evicted += count

    def update_routing_metrics(self, routing_stats: dict, neighbor_count: int):
        """Refresh table gauges from ``RoutingTable.get_stats()``."""
        self.metrics.total_routes = routing_stats["total_routes"]
        self.metrics.direct_routes = routing_stats["direct_routes"]
        self.metrics.avg_route_metric = routing_stats["avg_metric"]
        self.metrics.total_neighbors = neighbor_count
        self.metrics.last_update = time.time()

    def get_uptime(self) -> float:
        """Get uptime in seconds."""
        return time.time() - self.start_time

    def get_metrics(self) -> RouterMetrics:
        """Get current metrics snapshot."""
        self.metrics.uptime_seconds = self.get_uptime()
        return self.metrics

    def get_summary(self) -> dict:
        """Get human-readable metrics summary."""
        m = self.metrics
        return {
            "uptime": f"{self.get_uptime():.0f}s",
            "messages": {
                "sent": m.messages_sent,
                "received": m.messages_received,
                "forwarded": m.messages_forwarded,
                "delivered": m.messages_delivered,
                "dropped": m.messages_dropped,
                "decode_errors": m.decode_errors,
                "send_failures": m.send_failures,
            },
            "bytes": {
                "sent": m.bytes_sent,
                "received": m.bytes_received,
            },
            "routing": {
                "total_routes": m.total_routes,
                "direct_routes": m.direct_routes,
                "avg_metric": f"{m.avg_route_metric:.1f}",
                "updates_sent": m.updates_sent,
                "updates_applied": m.updates_applied,
                "routes_changed": m.routes_changed,
            },
            "neighbors": {
                "total": m.total_neighbors,
                "stale_evicted": m.stale_neighbors_evicted,
            },
        }
