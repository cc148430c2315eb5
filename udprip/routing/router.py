"""Router message dispatch and forwarding."""

import logging
from typing import Awaitable, Callable, Optional

from ..exceptions import MessageDecodeError
from ..monitoring.metrics import MetricsCollector
from ..transport.protocol import (
    BaseMessage,
    DataMessage,
    UpdateMessage,
    TraceMessage,
    decode_message,
    create_data_message,
    create_update_message,
    create_trace_message,
)
from .neighbors import NeighborTable
from .table import RoutingTable


logger = logging.getLogger(__name__)

SendFunc = Callable[[str, bytes], Awaitable[None]]
DeliverFunc = Callable[[DataMessage], None]


def print_payload(message: DataMessage):
    """Default delivery: print the payload."""
    print(message.payload)


class RouterCore:
    """
    Ties protocol events to routing table changes.

    Responsibilities:
    - Decode inbound datagrams and dispatch them by type
    - Merge updates from configured neighbors into the routing table
    - Relay data and trace messages toward their destination
    - Advertise split-horizon distance vectors every period

    Every inbound message is handled independently; all evolving state
    lives in the neighbor and routing tables.
    """

    def __init__(
        self,
        local_address: str,
        period: float,
        send: SendFunc,
        neighbors: Optional[NeighborTable] = None,
        routing_table: Optional[RoutingTable] = None,
        metrics: Optional[MetricsCollector] = None,
        on_deliver: Optional[DeliverFunc] = None
    ):
        """
        Initialize router.

        Args:
            local_address: Local router address
            period: Advertisement period in seconds
            send: Coroutine sending bytes to a router address
            neighbors: Neighbor table (created if None)
            routing_table: Routing table (created if None)
            metrics: Metrics collector (created if None)
            on_deliver: Called with data messages addressed to us
        """
        self.local_address = local_address
        self.period = period
        self.send = send
        self.neighbors = neighbors or NeighborTable()
        self.routing_table = routing_table or RoutingTable(local_address)
        self.metrics = metrics or MetricsCollector(local_address)
        self.on_deliver = on_deliver or print_payload

    async def handle_inbound(self, raw: bytes, sender: Optional[str] = None) -> bool:
        """
        Handle one received datagram.

        Args:
            raw: Datagram contents
            sender: Transport-level sender address, for logging only

        Returns:
            True if the message was decoded and dispatched
        """
        self.metrics.record_message_received(len(raw))

        try:
            message = decode_message(raw)
        except MessageDecodeError as e:
            self.metrics.record_decode_error()
            logger.warning(f"Dropping malformed message from {sender or 'unknown'}: {e}")
            return False

        if isinstance(message, DataMessage):
            await self._handle_data(message)
        elif isinstance(message, UpdateMessage):
            await self._handle_update(message)
        elif isinstance(message, TraceMessage):
            await self._handle_trace(message)

        return True

    async def _handle_data(self, message: DataMessage):
        if message.destination == self.local_address:
            self.metrics.record_message_delivered()
            self.on_deliver(message)
            return

        await self.forward(message)

    async def _handle_update(self, message: UpdateMessage):
        # Physically received but addressed to another router
        if message.destination != self.local_address:
            logger.debug(f"Ignoring update for {message.destination} from {message.source}")
            self.metrics.record_message_dropped()
            return

        link_weight = self.neighbors.link_weight(message.source)
        if link_weight is None:
            logger.debug(f"Ignoring update from non-neighbor {message.source}")
            self.metrics.record_message_dropped()
            return

        await self.neighbors.record_heartbeat(message.source)
        changed = await self.routing_table.apply_update(
            message.source,
            message.distances,
            link_weight
        )
        self.metrics.record_update_applied(changed)

    async def _handle_trace(self, message: TraceMessage):
        message.routers.append(self.local_address)

        if message.destination != self.local_address:
            await self.forward(message)
            return

        logger.info(f"Trace from {message.source} completed: {' -> '.join(message.routers)}")
        reply = create_data_message(
            source=self.local_address,
            destination=message.source,
            payload=message.to_json()
        )
        await self.forward(reply)

    async def forward(self, message: BaseMessage) -> bool:
        """
        Send a message one hop closer to its destination.

        Args:
            message: Message to relay

        Returns:
            True if the message was handed to the transport
        """
        next_hop = self.routing_table.next_hop(message.destination)
        if next_hop is None:
            logger.warning(f"No route to destination {message.destination}")
            self.metrics.record_message_dropped()
            return False

        sent = await self._send(next_hop, message)
        if sent:
            self.metrics.record_message_forwarded()
            logger.debug(
                f"Forwarded {message.type} message to {next_hop} "
                f"(source={message.source}, dest={message.destination})"
            )
        return sent

    async def _send(self, address: str, message: BaseMessage) -> bool:
        try:
            data = message.to_bytes()
        except ValueError as e:
            logger.error(f"Failed to serialize {message.type} message for {address}: {e}")
            self.metrics.record_send_failure()
            return False

        try:
            await self.send(address, data)
        except Exception as e:
            logger.error(f"Failed to send {message.type} message to {address}: {e}")
            self.metrics.record_send_failure()
            return False

        self.metrics.record_message_sent(len(data), is_update=isinstance(message, UpdateMessage))
        return True

    async def _send_update(self, neighbor_ip: str) -> bool:
        distances = await self.routing_table.distances_for(neighbor_ip)
        message = create_update_message(self.local_address, neighbor_ip, distances)
        return await self._send(neighbor_ip, message)

    async def tick(self):
        """
        Run one advertisement cycle.

        Drops neighbors that have gone silent along with every route
        through them, then sends each remaining neighbor its
        split-horizon distance vector.
        """
        stale = await self.neighbors.find_stale(self.period)
        if stale:
            removed = await self.routing_table.evict_stale(stale)
            for neighbor_ip in stale:
                await self.neighbors.remove_neighbor(neighbor_ip)
            self.metrics.record_stale_neighbors(len(stale))
            logger.info(f"Evicted {len(stale)} stale neighbors and {removed} routes")

        neighbors = self.neighbors.all_neighbors()
        for neighbor_ip in neighbors:
            await self._send_update(neighbor_ip)

        self.metrics.update_routing_metrics(self.routing_table.get_stats(), len(neighbors))
        logger.debug(f"Advertised routes to {len(neighbors)} neighbors")

    async def add_neighbor(self, ip: str, weight: int) -> bool:
        """
        Add a neighbor or change its link weight.

        On change, the direct route is installed and the neighbor gets an
        update right away instead of waiting for the next tick.

        Args:
            ip: Neighbor address
            weight: Positive link weight

        Returns:
            True if the neighbor is new or its weight changed
        """
        if weight <= 0:
            raise ValueError(f"Link weight must be positive, got {weight}")

        if ip == self.local_address:
            logger.warning(f"Refusing to add local address {ip} as a neighbor")
            return False

        changed = await self.neighbors.add_neighbor(ip, weight)
        if changed:
            await self.routing_table.install_direct_route(ip, weight)
            await self._send_update(ip)
        return changed

    async def remove_neighbor(self, ip: str) -> bool:
        """
        Remove a neighbor and every route through it.

        Returns:
            True if the neighbor existed
        """
        existed = await self.neighbors.remove_neighbor(ip)
        if existed:
            await self.routing_table.remove_routes_via(ip)
        return existed

    async def send_trace(self, destination: str) -> bool:
        """
        Start a trace toward a destination.

        The reply arrives later as a data message whose payload is the
        completed trace.

        Returns:
            True if the trace was sent
        """
        if not self.routing_table.has_route(destination):
            logger.warning(f"No route to destination {destination}")
            return False

        return await self.forward(create_trace_message(self.local_address, destination))

    def get_stats(self) -> dict:
        """Get router statistics."""
        return {
            "local_address": self.local_address,
            "routing_table": self.routing_table.get_stats(),
            "neighbors": self.neighbors.get_stats(),
            "metrics": self.metrics.get_summary(),
        }
