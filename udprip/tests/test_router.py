"""Tests for router dispatch, forwarding and convergence."""

import asyncio
import json

import pytest
from udprip.routing import RouterCore
from udprip.transport.protocol import (
    UpdateMessage,
    decode_message,
    create_data_message,
    create_update_message,
)

A = "10.0.0.1"
B = "10.0.0.2"
C = "10.0.0.3"
D = "10.0.0.4"


async def build_chain(network):
    """A - B - C with unit weights, plus D hanging off A."""
    for address in (A, B, C, D):
        network.add_router(address)
    await network.link(A, B, 1)
    await network.link(B, C, 1)
    await network.link(A, D, 3)


def test_chain_converges(network):
    """Test that A learns C through B after two advertisement cycles."""
    async def scenario():
        for address in (A, B, C):
            network.add_router(address)
        await network.link(A, B, 1)
        await network.link(B, C, 1)

        await network.tick_all()
        await network.tick_all()

        route = network.routers[A].routing_table.get_route(C)
        assert route.distance == 2
        assert route.next_hop == B

        route = network.routers[C].routing_table.get_route(A)
        assert route.distance == 2
        assert route.next_hop == B

    asyncio.run(scenario())


def test_self_route_invariant_holds(network):
    """Test that every router keeps a zero-cost route to itself."""
    async def scenario():
        await build_chain(network)
        await network.tick_all()
        await network.routers[A].remove_neighbor(B)
        await network.tick_all()

        for address, router in network.routers.items():
            assert router.routing_table.next_hop(address) == address
            assert router.routing_table.get_route(address).distance == 0

    asyncio.run(scenario())


def test_trace_reports_path(network):
    """Test that a trace reply lists every router in order."""
    async def scenario():
        await build_chain(network)
        await network.tick_all()
        await network.tick_all()

        assert await network.routers[A].send_trace(C)
        await network.flush()

        replies = network.delivered[A]
        assert len(replies) == 1
        assert replies[0].source == C
        assert json.loads(replies[0].payload)["routers"] == [A, B, C]

    asyncio.run(scenario())


def test_trace_without_route(network):
    """Test that tracing an unknown destination sends nothing."""
    async def scenario():
        router = network.add_router(A)

        assert not await router.send_trace(C)
        assert network.sent == []

    asyncio.run(scenario())


def test_data_is_relayed(network):
    """Test multi-hop delivery of a data message."""
    async def scenario():
        await build_chain(network)
        await network.tick_all()

        message = create_data_message(A, C, "hello")
        assert await network.routers[A].forward(message)
        await network.flush()

        assert [m.payload for m in network.delivered[C]] == ["hello"]
        assert network.delivered[B] == []
        assert network.routers[B].metrics.metrics.messages_forwarded == 1

        # First hop went to B, not straight to C
        hops = [(src, dst) for src, dst, data in network.sent if b'"hello"' in data]
        assert hops == [(A, B), (B, C)]

    asyncio.run(scenario())


def test_forward_without_route_is_dropped(network):
    """Test that unroutable data is dropped."""
    async def scenario():
        router = network.add_router(A)

        await router.handle_inbound(create_data_message(B, C, "lost").to_bytes())

        assert network.sent == []
        assert router.metrics.metrics.messages_dropped == 1

    asyncio.run(scenario())


def test_link_removal(network):
    """Test that deleting a neighbor prunes every route through it."""
    async def scenario():
        await build_chain(network)
        await network.tick_all()

        router = network.routers[A]
        assert router.routing_table.next_hop(C) == B

        assert await router.remove_neighbor(B)
        assert router.routing_table.next_hop(B) is None
        assert router.routing_table.next_hop(C) is None
        assert router.routing_table.next_hop(D) == D
        assert not await router.remove_neighbor(B)

    asyncio.run(scenario())


def test_stale_neighbor_evicted(network):
    """Test that a silent neighbor and its routes vanish at the next tick."""
    async def scenario():
        await build_chain(network)
        await network.tick_all()
        await network.tick_all()

        router = network.routers[A]
        assert router.routing_table.next_hop(C) == B

        network.down.add(B)
        network.clock.advance(3)
        await network.tick_all()
        assert router.neighbors.is_neighbor(B)

        network.clock.advance(2)
        await router.tick()

        assert not router.neighbors.is_neighbor(B)
        assert not router.routing_table.has_route(B)
        assert not router.routing_table.has_route(C)
        assert router.routing_table.get_route(D).distance == 3
        assert router.neighbors.is_neighbor(D)
        assert router.metrics.metrics.stale_neighbors_evicted == 1

    asyncio.run(scenario())


def test_update_from_non_neighbor_ignored(network):
    """Test that advertisements are only trusted from configured links."""
    async def scenario():
        router = network.add_router(A)
        update = create_update_message(C, A, {"10.0.0.99": 1})

        assert await router.handle_inbound(update.to_bytes())
        assert not router.routing_table.has_route("10.0.0.99")
        assert not router.routing_table.has_route(C)
        assert not router.neighbors.is_neighbor(C)

    asyncio.run(scenario())


def test_update_for_other_router_ignored(network):
    """Test that updates addressed elsewhere are dropped."""
    async def scenario():
        router = network.add_router(A)
        await router.add_neighbor(B, 1)
        update = create_update_message(B, C, {"10.0.0.99": 1})

        await router.handle_inbound(update.to_bytes())
        assert not router.routing_table.has_route("10.0.0.99")

    asyncio.run(scenario())


def test_update_refreshes_neighbor(network):
    """Test that an accepted update counts as a heartbeat."""
    async def scenario():
        router = network.add_router(A)
        await router.add_neighbor(B, 2)

        network.clock.advance(3)
        await router.handle_inbound(create_update_message(B, A, {C: 1}).to_bytes())

        assert router.neighbors.get_neighbor(B).last_heard_from == network.clock.now
        assert router.routing_table.get_route(C).distance == 3

    asyncio.run(scenario())


@pytest.mark.parametrize("raw", [
    b"not json",
    b'{"source":"10.0.0.2","destination":"10.0.0.1"}',
    b'{"type":"bogus","source":"10.0.0.2","destination":"10.0.0.1"}',
])
def test_malformed_messages_dropped(network, raw):
    """Test that malformed datagrams are dropped without side effects."""
    async def scenario():
        router = network.add_router(A)
        await router.add_neighbor(B, 1)
        before = router.routing_table.get_stats()

        assert not await router.handle_inbound(raw)
        assert router.routing_table.get_stats() == before
        assert router.metrics.metrics.decode_errors == 1

    asyncio.run(scenario())


def test_add_neighbor_sends_immediate_update(network):
    """Test that a new link is advertised right away."""
    async def scenario():
        router = network.add_router(A)

        assert await router.add_neighbor(B, 4)
        assert router.routing_table.get_route(B).distance == 4

        source, address, data = network.sent[-1]
        message = decode_message(data)
        assert (source, address) == (A, B)
        assert isinstance(message, UpdateMessage)
        assert message.destination == B
        assert message.distances == {A: 0}

        # Same weight again: nothing changes, nothing is sent
        assert not await router.add_neighbor(B, 4)
        assert len(network.sent) == 1

        assert await router.add_neighbor(B, 6)
        assert router.routing_table.get_route(B).distance == 6
        assert len(network.sent) == 2

    asyncio.run(scenario())


def test_add_neighbor_validation(network):
    """Test rejected neighbor additions."""
    async def scenario():
        router = network.add_router(A)

        assert not await router.add_neighbor(A, 1)
        with pytest.raises(ValueError):
            await router.add_neighbor(B, 0)
        assert router.neighbors.all_neighbors() == []

    asyncio.run(scenario())


def test_tick_sends_split_horizon_updates(network):
    """Test that each neighbor gets its own filtered vector."""
    async def scenario():
        await build_chain(network)
        await network.tick_all()
        network.sent.clear()

        await network.routers[A].tick()

        updates = {dst: decode_message(data) for src, dst, data in network.sent if src == A}
        assert set(updates) == {B, D}
        assert B not in updates[B].distances
        assert C not in updates[B].distances
        assert updates[D].distances[C] == 2
        assert D not in updates[D].distances

    asyncio.run(scenario())


def test_send_failure_is_contained():
    """Test that a failing transport does not break the router."""
    async def scenario():
        async def broken_send(address, data):
            raise OSError("network unreachable")

        router = RouterCore(A, 1.0, send=broken_send)
        assert await router.add_neighbor(B, 1)
        assert not await router.forward(create_data_message(A, B, "x"))

        await router.tick()
        assert router.metrics.metrics.send_failures == 3
        assert router.routing_table.next_hop(B) == B

    asyncio.run(scenario())


def test_router_stats(network):
    """Test combined router statistics."""
    async def scenario():
        await build_chain(network)
        await network.tick_all()
        await network.tick_all()

        stats = network.routers[A].get_stats()
        assert stats["local_address"] == A
        assert stats["routing_table"]["total_routes"] == 4
        assert stats["neighbors"]["total_neighbors"] == 2
        assert stats["metrics"]["routing"]["total_routes"] == 4

    asyncio.run(scenario())
