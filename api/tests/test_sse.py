"""Tests for the connection broker and the SSE stream."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from weather_relay.routers.sse import _relay_stream
from weather_relay.services.broker import ConnectionBroker, make_event


async def test_broker_broadcast():
    """Broker should deliver events to all connections."""
    broker = ConnectionBroker()
    c1 = broker.connect()
    c2 = broker.connect()

    event = make_event("topic_added", "Paris")
    broker.broadcast(event)

    assert await broker.queue(c1).get() == event
    assert await broker.queue(c2).get() == event


async def test_broker_send_targets_selected_connections():
    broker = ConnectionBroker()
    c1 = broker.connect()
    c2 = broker.connect()
    c3 = broker.connect()

    broker.send_many({c1, c3}, make_event("topic_force_left", "Paris"))

    assert broker.queue(c1).qsize() == 1
    assert broker.queue(c2).empty()
    assert broker.queue(c3).qsize() == 1


async def test_broker_disconnect():
    """Disconnected connections should not receive events."""
    broker = ConnectionBroker()
    c1 = broker.connect()
    queue = broker.queue(c1)
    broker.disconnect(c1)

    broker.broadcast(make_event("topics_list", []))
    broker.send(c1, make_event("topics_list", []))

    assert queue.empty()
    assert broker.connection_count == 0


async def test_broker_queue_full_drops_event():
    """Events should be dropped when queue is full."""
    broker = ConnectionBroker(queue_maxsize=4)
    c1 = broker.connect()

    for i in range(4):
        broker.send(c1, make_event("weather_update", {"temp": i}))

    # This should not raise, just drop
    broker.send(c1, make_event("weather_update", {"temp": 99}))

    assert broker.queue(c1).qsize() == 4


async def test_sse_stream_announces_connection_then_relays(seeded_relay):
    request = MagicMock()
    request.is_disconnected = AsyncMock(side_effect=[False, True])
    stream = _relay_stream(request, seeded_relay)

    connected = await stream.__anext__()
    assert connected.event == "connected"
    connection_id = json.loads(connected.data)["connectionId"]
    assert seeded_relay.broker.is_connected(connection_id)

    topics = await stream.__anext__()
    assert topics.event == "topics_list"
    assert json.loads(topics.data) == ["London", "New York", "Tokyo"]

    with pytest.raises(StopAsyncIteration):
        await stream.__anext__()
    assert not seeded_relay.broker.is_connected(connection_id)


async def test_sse_stream_disconnect_drops_subscription(seeded_relay):
    request = MagicMock()
    request.is_disconnected = AsyncMock(side_effect=[False, True])
    stream = _relay_stream(request, seeded_relay)

    connected = await stream.__anext__()
    connection_id = json.loads(connected.data)["connectionId"]
    await seeded_relay.gateway.subscribe(connection_id, "London")
    assert seeded_relay.subscriptions.active_topics() == {"London"}

    async for _ in stream:
        pass

    assert seeded_relay.subscriptions.active_topics() == set()
