"""Router node runtime."""

import asyncio
import logging
from typing import Optional

from ..models import RouterConfig
from ..monitoring import MetricsCollector
from ..routing import NeighborTable, RoutingTable, RouterCore
from ..routing.router import DeliverFunc
from ..transport import UdpTransport
from ..cli.commands import load_startup_file

logger = logging.getLogger(__name__)


class RouterNode:
    """
    One router process.

    Owns the UDP transport, the router core with its tables, and the
    periodic advertisement loop. Everything is built once from the
    configuration and passed down explicitly.
    """

    def __init__(
        self,
        config: RouterConfig,
        on_deliver: Optional[DeliverFunc] = None,
        transport: Optional[UdpTransport] = None
    ):
        """
        Initialize a router node.

        Args:
            config: Validated router configuration
            on_deliver: Called with data messages addressed to this router
            transport: Transport to use (a UDP transport on the configured
                address and port if None)
        """
        self.config = config
        self.transport = transport or UdpTransport(config.address, config.port)

        self.router = RouterCore(
            local_address=config.address,
            period=config.period,
            send=self.transport.send,
            neighbors=NeighborTable(stale_multiplier=config.stale_multiplier),
            routing_table=RoutingTable(config.address, max_metric=config.max_metric),
            metrics=MetricsCollector(config.address),
            on_deliver=on_deliver
        )
        self.transport.on_datagram = self.router.handle_inbound

        self._tick_task: Optional[asyncio.Task] = None
        self._running = False

        logger.info(f"Router initialized at {config.address} (period={config.period}s)")

    async def start(self):
        """
        Bind the transport, start advertising and apply the startup file.

        Raises:
            OSError: If the local address cannot be bound
        """
        if self._running:
            return

        await self.transport.open()

        self._running = True
        self._tick_task = asyncio.create_task(self._tick_loop())
        logger.info(f"Periodic updates scheduled every {self.config.period} seconds")

        if self.config.startup_file:
            try:
                await load_startup_file(self.router, self.config.startup_file)
            except OSError as e:
                logger.error(f"Error reading startup file {self.config.startup_file}: {e}")

    async def stop(self):
        """Stop advertising and close the transport."""
        self._running = False

        if self._tick_task:
            self._tick_task.cancel()
            try:
                await self._tick_task
            except asyncio.CancelledError:
                pass

        await self.transport.close()
        logger.info("Router stopped")

    async def _tick_loop(self):
        """Advertise routes to neighbors every period."""
        try:
            while self._running:
                try:
                    await asyncio.sleep(self.config.period)
                    await self.router.tick()

                except asyncio.CancelledError:
                    break
                except Exception as e:
                    logger.error(f"Error in advertisement loop: {e}")

        except asyncio.CancelledError:
            pass

    @property
    def is_running(self) -> bool:
        """Check if the node is running."""
        return self._running
