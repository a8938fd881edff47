"""Bounded registry of cities that connections can subscribe to."""

import logging

from weather_relay.errors import (
    CapacityExceeded,
    DuplicateTopic,
    InvalidInput,
    NotFound,
    ResolutionFailed,
    TransportError,
    UnknownTopic,
)
from weather_relay.schemas.topic import Topic, topic_key
from weather_relay.services.broker import ConnectionBroker, make_event
from weather_relay.services.snapshot_cache import SnapshotCache
from weather_relay.services.subscriptions import SubscriptionManager
from weather_relay.services.weather_client import WeatherClient

logger = logging.getLogger(__name__)

DEFAULT_TOPICS = (
    Topic(name="London", latitude=51.5074, longitude=-0.1278, country="United Kingdom"),
    Topic(name="New York", latitude=40.7128, longitude=-74.0060, country="United States"),
    Topic(name="Tokyo", latitude=35.6762, longitude=139.6503, country="Japan"),
)


class TopicRegistry:
    def __init__(
        self,
        client: WeatherClient,
        cache: SnapshotCache,
        subscriptions: SubscriptionManager,
        broker: ConnectionBroker,
        max_topics: int = 3,
    ) -> None:
        self._client = client
        self._cache = cache
        self._subscriptions = subscriptions
        self._broker = broker
        self.max_topics = max_topics
        # Insertion-ordered: dict preserves registration order.
        self._topics: dict[str, Topic] = {}

    def __len__(self) -> int:
        return len(self._topics)

    def __contains__(self, name: str) -> bool:
        return topic_key(name) in self._topics

    def get(self, name: str) -> Topic:
        """Case-insensitive lookup.

        Raises:
            UnknownTopic: ``name`` is not registered.
        """
        topic = self._topics.get(topic_key(name))
        if topic is None:
            raise UnknownTopic(f"City '{name.strip()}' is not available")
        return topic

    def topics(self) -> list[Topic]:
        return list(self._topics.values())

    def list_topics(self) -> list[str]:
        return [topic.name for topic in self._topics.values()]

    def _check_can_insert(self, name: str) -> None:
        if len(self._topics) >= self.max_topics:
            raise CapacityExceeded(f"Maximum {self.max_topics} cities allowed")
        if topic_key(name) in self._topics:
            raise DuplicateTopic(f"City '{name}' already exists")

    def _insert(self, topic: Topic) -> None:
        self._topics[topic.key] = topic
        self._cache.track(topic.name)

    def seed(self, topics=DEFAULT_TOPICS) -> None:
        """Register known topics without geocoding or broadcasting."""
        for topic in topics:
            if len(self._topics) >= self.max_topics or topic.key in self._topics:
                continue
            self._insert(topic)
        logger.info("Seeded topics: %s", ", ".join(self.list_topics()))

    async def add_topic(self, raw_name: str) -> Topic:
        """Geocode and register a new topic, then announce it to everyone.

        Raises:
            InvalidInput: Empty name.
            CapacityExceeded: Registry is full.
            DuplicateTopic: Name (or its canonical form) is already registered.
            ResolutionFailed: Geocoding found nothing or failed.
        """
        if not isinstance(raw_name, str) or not raw_name.strip():
            raise InvalidInput("City name is required")
        name = raw_name.strip()
        self._check_can_insert(name)

        try:
            geo = await self._client.geocode(name)
        except TransportError as exc:
            logger.warning("Geocoding %s failed: %s", name, exc)
            raise ResolutionFailed(f"City '{name}' could not be resolved") from exc

        # Other requests may have run while geocoding was in flight.
        self._check_can_insert(geo.name)

        topic = Topic(**geo.model_dump())
        self._insert(topic)
        logger.info(
            "Added topic %s (%.4f, %.4f)", topic.name, topic.latitude, topic.longitude
        )

        self._broker.broadcast(make_event("topics_list", self.list_topics()))
        self._broker.broadcast(make_event("topic_added", topic.name))
        return topic

    def remove_topic(self, name: str) -> Topic:
        """Unregister a topic, force its subscribers out and announce it.

        Raises:
            NotFound: ``name`` is not registered.
        """
        key = topic_key(name) if isinstance(name, str) else ""
        topic = self._topics.pop(key, None)
        if topic is None:
            raise NotFound(f"City '{name}' not found")

        self._cache.forget(topic.name)
        evicted = self._subscriptions.evict_topic(topic.name)
        if evicted:
            self._broker.send_many(evicted, make_event("topic_force_left", topic.name))
        logger.info(
            "Removed topic %s (%d subscribers forced out)", topic.name, len(evicted)
        )

        self._broker.broadcast(make_event("topic_deleted", topic.name))
        self._broker.broadcast(make_event("topics_list", self.list_topics()))
        return topic
