"""Dispatch inbound topic-management messages from any transport."""

import logging
from typing import Any

from weather_relay.errors import InvalidInput, RelayError, UnknownTopic
from weather_relay.schemas.weather import WeatherRecord
from weather_relay.services.broker import ConnectionBroker, make_event
from weather_relay.services.subscriptions import SubscriptionManager
from weather_relay.services.topic_registry import TopicRegistry

logger = logging.getLogger(__name__)


def _name_from(payload: Any) -> str:
    """Accept either a bare string or ``{"name": ...}``."""
    if isinstance(payload, dict):
        payload = payload.get("name")
    if not isinstance(payload, str) or not payload.strip():
        raise InvalidInput("City name is required")
    return payload.strip()


class Gateway:
    def __init__(
        self,
        registry: TopicRegistry,
        subscriptions: SubscriptionManager,
        broker: ConnectionBroker,
    ) -> None:
        self._registry = registry
        self._subscriptions = subscriptions
        self._broker = broker
        self._handlers = {
            "subscribe": self.subscribe,
            "add_topic": self.add_topic,
            "delete_topic": self.delete_topic,
            "list_topics": self.list_topics,
        }

    def connect(self) -> str:
        connection_id = self._broker.connect()
        logger.info("Connection %s opened", connection_id)
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        self._subscriptions.unsubscribe_all(connection_id)
        self._broker.disconnect(connection_id)
        logger.info("Connection %s closed", connection_id)

    async def handle(self, connection_id: str, message: Any) -> None:
        """Route one ``{"event": ..., "data": ...}`` message.

        Relay errors are reported back to the sender as ``validation_error``.
        """
        if not isinstance(message, dict):
            self._reject(connection_id, InvalidInput("Message must be a JSON object"))
            return

        operation = message.get("event")
        handler = self._handlers.get(operation)
        if handler is None:
            self._reject(connection_id, InvalidInput(f"Unknown operation: {operation}"))
            return

        try:
            await handler(connection_id, message.get("data"))
        except RelayError as exc:
            self._reject(connection_id, exc)

    def _reject(self, connection_id: str, exc: RelayError) -> None:
        logger.info("Rejected request from %s: %s", connection_id, exc.message)
        self._broker.send(connection_id, make_event("validation_error", exc.message))

    async def subscribe(self, connection_id: str, payload: Any) -> WeatherRecord:
        topic = self._registry.get(_name_from(payload))
        record, changed = await self._subscriptions.subscribe(connection_id, topic)
        # The topic was removed or the connection moved on while the fetch
        # was in flight.
        if self._subscriptions.topic_of(connection_id) != topic.name:
            raise UnknownTopic(f"City '{topic.name}' is no longer available")

        event = make_event("weather_update", record.to_event())
        self._broker.send(connection_id, event)
        if changed:
            logger.info(
                "Weather update for %s on subscribe (changed: %s)",
                topic.name,
                ", ".join(changed),
            )
            self._broker.send_many(
                self._subscriptions.subscribers(topic.name) - {connection_id}, event
            )
        return record

    async def add_topic(self, connection_id: str, payload: Any) -> None:
        await self._registry.add_topic(_name_from(payload))

    async def delete_topic(self, connection_id: str, payload: Any) -> None:
        self._registry.remove_topic(_name_from(payload))

    async def list_topics(self, connection_id: str, payload: Any = None) -> None:
        self._broker.send(
            connection_id, make_event("topics_list", self._registry.list_topics())
        )
