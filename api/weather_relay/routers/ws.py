"""WebSocket endpoint: bidirectional topic management and weather updates."""

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from weather_relay.dependencies import get_relay
from weather_relay.services.broker import make_event
from weather_relay.services.relay import Relay

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ws"])


async def _pump(websocket: WebSocket, queue: asyncio.Queue) -> None:
    """Forward queued events to the socket until cancelled."""
    while True:
        event = await queue.get()
        await websocket.send_text(json.dumps(event, ensure_ascii=False))


@router.websocket("/ws")
async def relay_socket(websocket: WebSocket, relay: Relay = Depends(get_relay)):
    """Messages in both directions are ``{"event": ..., "data": ...}``.

    Inbound events: subscribe, add_topic, delete_topic, list_topics.
    """
    await websocket.accept()
    connection_id = relay.gateway.connect()
    pump = asyncio.create_task(_pump(websocket, relay.broker.queue(connection_id)))
    try:
        await relay.gateway.list_topics(connection_id)
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))
            raw = frame.get("text")
            if raw is None:
                relay.broker.send(
                    connection_id, make_event("validation_error", "Message must be text")
                )
                continue
            try:
                message = json.loads(raw)
            except ValueError:
                relay.broker.send(
                    connection_id, make_event("validation_error", "Malformed JSON")
                )
                continue
            await relay.gateway.handle(connection_id, message)
    except WebSocketDisconnect:
        pass
    finally:
        pump.cancel()
        try:
            await pump
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.warning("Connection %s: send failed during shutdown", connection_id)
        relay.gateway.disconnect(connection_id)
