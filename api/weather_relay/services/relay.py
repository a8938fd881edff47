"""Process-wide relay context: owns every piece of in-memory state."""

import logging
from typing import Optional

from weather_relay.config import Settings
from weather_relay.services.broker import ConnectionBroker
from weather_relay.services.gateway import Gateway
from weather_relay.services.snapshot_cache import SnapshotCache
from weather_relay.services.subscriptions import SubscriptionManager
from weather_relay.services.topic_registry import TopicRegistry
from weather_relay.services.weather_client import WeatherClient

logger = logging.getLogger(__name__)


class Relay:
    """Built once in the app lifespan and stored on ``app.state.relay``."""

    def __init__(self, settings: Settings, client: Optional[WeatherClient] = None) -> None:
        self.settings = settings
        self.client = client or WeatherClient.from_settings(settings)
        self.cache = SnapshotCache()
        self.broker = ConnectionBroker(queue_maxsize=settings.client_queue_maxsize)
        self.subscriptions = SubscriptionManager(self.client, self.cache)
        self.registry = TopicRegistry(
            self.client,
            self.cache,
            self.subscriptions,
            self.broker,
            max_topics=settings.max_topics,
        )
        self.gateway = Gateway(self.registry, self.subscriptions, self.broker)

        if settings.seed_default_topics:
            self.registry.seed()

    def close(self) -> None:
        self.client.close()
        logger.info("Relay closed")
