"""Background task: poll Open-Meteo for registered cities and push changes."""

import asyncio
import logging
from collections.abc import Collection
from typing import Optional

from weather_relay.errors import RelayError
from weather_relay.schemas.topic import Topic
from weather_relay.services.broker import make_event
from weather_relay.services.relay import Relay

logger = logging.getLogger(__name__)


async def refresh_topic(relay: Relay, topic: Topic) -> bool:
    """Fetch one topic and notify its subscribers if anything changed.

    Returns True when a ``weather_update`` was emitted.
    """
    record = await relay.client.fetch_current_conditions(topic)
    changed = relay.cache.put(record)
    if not changed:
        return False

    logger.info(
        "Weather update for %s: %s°C (changed: %s)",
        topic.name,
        record.temp,
        ", ".join(changed),
    )
    relay.broker.send_many(
        relay.subscriptions.subscribers(topic.name),
        make_event("weather_update", record.to_event()),
    )
    return True


async def poll_round(relay: Relay, names: Optional[Collection[str]] = None) -> int:
    """Refresh topics one at a time in registration order.

    ``names`` limits the round to those topics; None means every registered
    topic. Requests are paced by ``fetch_delay_seconds`` and never run in
    parallel. Returns the number of updates emitted.
    """
    topics = [
        topic
        for topic in relay.registry.topics()
        if names is None or topic.name in names
    ]
    emitted = 0
    for index, topic in enumerate(topics):
        if index:
            await asyncio.sleep(relay.settings.fetch_delay_seconds)
        if topic.name not in relay.registry:
            continue
        try:
            if await refresh_topic(relay, topic):
                emitted += 1
        except RelayError as exc:
            logger.warning("No update for %s this round: %s", topic.name, exc)
        except Exception:
            logger.exception("weather_monitor: error refreshing %s", topic.name)
    return emitted


async def weather_monitor(relay: Relay) -> None:
    """Populate every topic once, then poll on a fixed interval.

    Started in lifespan startup, cancelled on shutdown.
    """
    logger.info("Fetching initial weather data...")
    try:
        await poll_round(relay)
    except Exception:
        logger.exception("weather_monitor: initial round failed")

    while True:
        await asyncio.sleep(relay.settings.poll_interval_seconds)
        try:
            if relay.settings.poll_all_topics:
                await poll_round(relay)
                continue

            active = relay.subscriptions.active_topics()
            if active:
                await poll_round(relay, active)
            else:
                logger.debug("weather_monitor: no subscribers, skipping round")
        except Exception:
            logger.exception("weather_monitor: polling error")
