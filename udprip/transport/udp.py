"""UDP transport for router-to-router datagrams."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple


logger = logging.getLogger(__name__)

DatagramHandler = Callable[[bytes, str], Awaitable[None]]


class _DatagramProtocol(asyncio.DatagramProtocol):
    """Hands every received datagram to the transport as a separate task."""

    def __init__(self, owner: "UdpTransport"):
        self.owner = owner

    def datagram_received(self, data: bytes, addr: Tuple[str, int]):
        self.owner._dispatch(data, addr[0])

    def error_received(self, exc: Exception):
        logger.warning(f"UDP socket error: {exc}")


class UdpTransport:
    """
    Datagram transport bound to the router's local address.

    Sending is fire-and-forget: failures are logged and the datagram is
    abandoned. Each inbound datagram is handled in its own task so a slow
    handler never blocks the socket.
    """

    def __init__(
        self,
        bind_address: str,
        port: int,
        on_datagram: Optional[DatagramHandler] = None
    ):
        """
        Initialize UDP transport.

        Args:
            bind_address: Local IP address to bind
            port: UDP port used by every router in the overlay
            on_datagram: Coroutine called with (data, sender address)
        """
        self.bind_address = bind_address
        self.port = port
        self.on_datagram = on_datagram

        self._transport: Optional[asyncio.DatagramTransport] = None
        self._tasks: set = set()
        self._closed = False

    async def open(self):
        """
        Bind the socket.

        Raises:
            OSError: If the address/port cannot be bound
        """
        loop = asyncio.get_running_loop()
        self._transport, _ = await loop.create_datagram_endpoint(
            lambda: _DatagramProtocol(self),
            local_addr=(self.bind_address, self.port)
        )
        self._closed = False

        # Port 0 binds an ephemeral port; adopt it as the overlay port
        if self.port == 0:
            self.port = self._transport.get_extra_info('sockname')[1]

        logger.info(f"UDP transport listening on {self.bind_address}:{self.port}")

    async def send(self, address: str, data: bytes):
        """
        Send a datagram to another router.

        Args:
            address: Destination router address
            data: Encoded message

        Raises:
            ConnectionError: If the transport is closed
            OSError: If the socket rejects the datagram
        """
        if self._closed or self._transport is None:
            raise ConnectionError("Transport is closed")

        self._transport.sendto(data, (address, self.port))
        logger.debug(f"Sent {len(data)} bytes to {address}")

    def _dispatch(self, data: bytes, sender: str):
        logger.debug(f"Received {len(data)} bytes from {sender}")
        if not self.on_datagram:
            return

        task = asyncio.get_running_loop().create_task(self._handle(data, sender))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _handle(self, data: bytes, sender: str):
        try:
            await self.on_datagram(data, sender)
        except Exception as e:
            logger.error(f"Error handling datagram from {sender}: {e}")

    async def close(self):
        """Close the socket."""
        if self._closed:
            return

        self._closed = True
        if self._transport:
            self._transport.close()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("UDP transport closed")

    @property
    def is_closed(self) -> bool:
        """Check if transport is closed."""
        return self._closed or self._transport is None
