"""Connection <-> topic subscription index.

Each connection follows at most one topic. Both directions are kept as plain
dicts so "who listens to X" and "what does C listen to" are O(1).
"""

import logging
from typing import Optional

from weather_relay.errors import RelayError
from weather_relay.schemas.topic import Topic, topic_key
from weather_relay.schemas.weather import WeatherRecord
from weather_relay.services.snapshot_cache import SnapshotCache
from weather_relay.services.weather_client import WeatherClient

logger = logging.getLogger(__name__)


class SubscriptionManager:
    def __init__(self, client: WeatherClient, cache: SnapshotCache) -> None:
        self._client = client
        self._cache = cache
        self._topic_by_connection: dict[str, str] = {}
        self._connections_by_topic: dict[str, set[str]] = {}
        self._names: dict[str, str] = {}

    def _join(self, connection_id: str, topic: Topic) -> None:
        previous = self._topic_by_connection.get(connection_id)
        if previous == topic.key:
            return
        if previous is not None:
            self._leave(connection_id, previous)
        self._topic_by_connection[connection_id] = topic.key
        self._connections_by_topic.setdefault(topic.key, set()).add(connection_id)
        self._names[topic.key] = topic.name

    def _leave(self, connection_id: str, key: str) -> None:
        members = self._connections_by_topic.get(key)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._connections_by_topic[key]
            self._names.pop(key, None)

    async def subscribe(
        self, connection_id: str, topic: Topic
    ) -> tuple[WeatherRecord, list[str]]:
        """Move ``connection_id`` onto ``topic`` and fetch a fresh snapshot.

        The membership change happens before the fetch suspends, so it is
        atomic with respect to other requests and the poller. A failed fetch
        yields an unavailable record; the subscription stands either way.

        Returns the record and the fields that changed against the cached
        snapshot (empty when nothing changed or the record was not stored).
        """
        self._join(connection_id, topic)
        logger.info("Connection %s subscribed to %s", connection_id, topic.name)

        try:
            record = await self._client.fetch_current_conditions(topic)
        except RelayError as exc:
            logger.warning("Immediate fetch for %s failed: %s", topic.name, exc)
            return WeatherRecord.unavailable(topic.name), []

        changed = self._cache.put(record)
        return record, changed or []

    def unsubscribe_all(self, connection_id: str) -> None:
        key = self._topic_by_connection.pop(connection_id, None)
        if key is not None:
            self._leave(connection_id, key)

    def evict_topic(self, name: str) -> set[str]:
        """Drop every subscription to ``name`` and return the former subscribers."""
        key = topic_key(name)
        members = self._connections_by_topic.pop(key, set())
        self._names.pop(key, None)
        for connection_id in members:
            self._topic_by_connection.pop(connection_id, None)
        return members

    def subscribers(self, name: str) -> set[str]:
        return set(self._connections_by_topic.get(topic_key(name), ()))

    def topic_of(self, connection_id: str) -> Optional[str]:
        key = self._topic_by_connection.get(connection_id)
        return self._names.get(key) if key is not None else None

    def active_topics(self) -> set[str]:
        return {self._names[key] for key in self._connections_by_topic}
