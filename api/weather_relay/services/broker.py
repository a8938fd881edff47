"""In-memory connection broker: per-connection queues for outbound events."""

import asyncio
import logging
import uuid
from collections.abc import Iterable
from typing import Any

logger = logging.getLogger(__name__)


def make_event(name: str, data: Any = None) -> dict:
    return {"event": name, "data": data}


class ConnectionBroker:
    """asyncio.Queue-based fan-out to single, selected or all connections.

    Delivery is best effort: an event for a full queue is dropped.
    """

    def __init__(self, queue_maxsize: int = 64) -> None:
        self._queue_maxsize = queue_maxsize
        self._queues: dict[str, asyncio.Queue[dict]] = {}

    def connect(self) -> str:
        """Register a new connection and return its id."""
        connection_id = uuid.uuid4().hex
        self._queues[connection_id] = asyncio.Queue(maxsize=self._queue_maxsize)
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        self._queues.pop(connection_id, None)

    def queue(self, connection_id: str) -> asyncio.Queue[dict]:
        return self._queues[connection_id]

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._queues

    def send(self, connection_id: str, event: dict) -> None:
        queue = self._queues.get(connection_id)
        if queue is None:
            return
        try:
            queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(
                "Queue full for connection %s, dropping %s event",
                connection_id,
                event.get("event"),
            )

    def send_many(self, connection_ids: Iterable[str], event: dict) -> None:
        for connection_id in list(connection_ids):
            self.send(connection_id, event)

    def broadcast(self, event: dict) -> None:
        self.send_many(self._queues, event)

    @property
    def connection_count(self) -> int:
        return len(self._queues)
