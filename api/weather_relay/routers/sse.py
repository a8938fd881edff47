"""SSE endpoint: one-way event stream, paired with the REST subscription route."""

import asyncio
import json

from fastapi import APIRouter, Depends, Request
from sse_starlette import EventSourceResponse, ServerSentEvent

from weather_relay.dependencies import get_relay
from weather_relay.services.relay import Relay

router = APIRouter(tags=["sse"])


async def _relay_stream(request: Request, relay: Relay):
    """Per-client SSE generator."""
    connection_id = relay.gateway.connect()
    queue = relay.broker.queue(connection_id)
    try:
        yield ServerSentEvent(
            data=json.dumps({"connectionId": connection_id}),
            event="connected",
        )
        await relay.gateway.list_topics(connection_id)
        while True:
            if await request.is_disconnected():
                break
            try:
                event = await asyncio.wait_for(queue.get(), timeout=1.0)
                yield ServerSentEvent(
                    data=json.dumps(event["data"], ensure_ascii=False),
                    event=event["event"],
                )
            except asyncio.TimeoutError:
                continue
    finally:
        relay.gateway.disconnect(connection_id)


@router.get("/stream")
async def stream_events(request: Request, relay: Relay = Depends(get_relay)):
    """SSE stream of relay events.

    Connect with EventSource API:
      const es = new EventSource('/stream')
      es.addEventListener('connected', (e) => { ... })   // {connectionId}
      es.addEventListener('weather_update', (e) => { ... })
    Subscribe with POST /connections/{connectionId}/subscription.
    """
    return EventSourceResponse(
        _relay_stream(request, relay),
        ping=15,
    )
