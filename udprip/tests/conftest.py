"""Shared fixtures for router tests."""

from collections import defaultdict, deque

import pytest

from udprip.routing import NeighborTable, RoutingTable, RouterCore


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class LoopbackNetwork:
    """
    In-memory overlay of routers.

    Sends are queued and only delivered on ``flush`` so tests control
    exactly when each advertisement arrives. Routers listed in ``down``
    neither send nor receive.
    """

    def __init__(self, period: float = 1.0):
        self.period = period
        self.clock = FakeClock()
        self.routers = {}
        self.pending = deque()
        self.sent = []
        self.delivered = defaultdict(list)
        self.down = set()

    def add_router(self, address: str) -> RouterCore:
        router = RouterCore(
            local_address=address,
            period=self.period,
            send=self._sender(address),
            neighbors=NeighborTable(clock=self.clock),
            routing_table=RoutingTable(address, clock=self.clock),
            on_deliver=self.delivered[address].append
        )
        self.routers[address] = router
        return router

    def _sender(self, source: str):
        async def send(address: str, data: bytes):
            self.sent.append((source, address, data))
            if source not in self.down and address not in self.down:
                self.pending.append((source, address, data))
        return send

    async def flush(self, limit: int = 1000) -> int:
        """Deliver queued datagrams, including any sent while delivering."""
        count = 0
        while self.pending:
            source, address, data = self.pending.popleft()
            router = self.routers.get(address)
            if router:
                await router.handle_inbound(data, sender=source)
            count += 1
            assert count < limit, "message storm"
        return count

    async def link(self, a: str, b: str, weight: int = 1):
        await self.routers[a].add_neighbor(b, weight)
        await self.routers[b].add_neighbor(a, weight)
        await self.flush()

    async def tick_all(self):
        for address, router in self.routers.items():
            if address not in self.down:
                await router.tick()
        await self.flush()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def network():
    return LoopbackNetwork()
