"""Latest WeatherRecord per topic, with change detection."""

import logging
from typing import Optional

from weather_relay.schemas.topic import topic_key
from weather_relay.schemas.weather import WeatherRecord

logger = logging.getLogger(__name__)


class SnapshotCache:
    def __init__(self) -> None:
        self._records: dict[str, WeatherRecord] = {}
        self._live: set[str] = set()

    def track(self, name: str) -> None:
        """Allow records for ``name`` to be stored."""
        self._live.add(topic_key(name))

    def forget(self, name: str) -> None:
        """Drop the snapshot and refuse late records for ``name``."""
        key = topic_key(name)
        self._live.discard(key)
        self._records.pop(key, None)

    def get(self, name: str) -> Optional[WeatherRecord]:
        return self._records.get(topic_key(name))

    def put(self, record: WeatherRecord) -> Optional[list[str]]:
        """Store ``record`` as the latest snapshot for its city.

        Returns the changed field names (every compared field on a first
        observation, an empty list if nothing changed), or None when the
        topic is no longer registered and the record was discarded.
        """
        key = topic_key(record.city)
        if key not in self._live:
            logger.info("Discarding late weather record for removed topic %s", record.city)
            return None
        if not record.is_available:
            return []

        changed = record.changed_fields(self._records.get(key))
        self._records[key] = record
        return changed

    def snapshot(self) -> dict[str, WeatherRecord]:
        return {record.city: record for record in self._records.values()}

    def __len__(self) -> int:
        return len(self._records)
