"""Open-Meteo client: geocoding by name and current conditions by coordinates.

urllib3 is synchronous; the async entry points run each request in a worker
thread so a slow upstream never blocks the event loop.
"""

import asyncio
import json
import logging
import math
from typing import Any, Optional

import urllib3
from pydantic import ValidationError

from weather_relay.config import Settings
from weather_relay.errors import GeocodeNotFound, IncompleteData, TransportError
from weather_relay.schemas.topic import GeoResult, Topic
from weather_relay.schemas.weather import WeatherRecord, utc_now_iso

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; WeatherRelay/1.0)"
CURRENT_VARIABLES = (
    "temperature_2m",
    "apparent_temperature",
    "precipitation",
    "wind_speed_10m",
    "wind_direction_10m",
    "relative_humidity_2m",
    "weather_code",
)


def round_half_up(value: Optional[float]) -> Optional[int]:
    if value is None:
        return None
    return math.floor(value + 0.5)


def round_tenth(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return round(value, 1)


class WeatherClient:
    def __init__(
        self,
        geocoding_url: str,
        forecast_url: str,
        connect_timeout: float = 5.0,
        read_timeout: float = 10.0,
    ) -> None:
        self.geocoding_url = geocoding_url
        self.forecast_url = forecast_url
        self._pool = urllib3.PoolManager(
            timeout=urllib3.Timeout(connect=connect_timeout, read=read_timeout),
            retries=False,
            headers={"User-Agent": USER_AGENT},
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "WeatherClient":
        return cls(
            geocoding_url=settings.geocoding_url,
            forecast_url=settings.forecast_url,
            connect_timeout=settings.http_connect_timeout,
            read_timeout=settings.http_read_timeout,
        )

    def close(self) -> None:
        self._pool.clear()

    def _get_json(self, url: str, params: dict[str, Any]) -> dict:
        """GET ``url`` with query ``params`` and decode the JSON body.

        Raises:
            TransportError: Connection failure, non-2xx status or bad JSON.
        """
        try:
            response = self._pool.request("GET", url, fields=params)
        except (urllib3.exceptions.HTTPError, OSError) as exc:
            raise TransportError(f"Request to {url} failed: {exc}") from exc

        if not 200 <= response.status < 300:
            raise TransportError(f"Request to {url} returned HTTP {response.status}")

        try:
            payload = json.loads(response.data.decode("utf-8"))
        except ValueError as exc:
            raise TransportError(f"Invalid JSON from {url}") from exc
        if not isinstance(payload, dict):
            raise TransportError(f"Unexpected JSON document from {url}")
        return payload

    def geocode_sync(self, name: str) -> GeoResult:
        """Resolve a place name to its first geocoding match.

        Raises:
            GeocodeNotFound: No results for ``name``.
            TransportError: The lookup itself failed.
        """
        payload = self._get_json(
            self.geocoding_url,
            {"name": name, "count": 1, "language": "en", "format": "json"},
        )
        results = payload.get("results") or []
        if not results:
            raise GeocodeNotFound(f"City '{name}' not found")

        match = results[0]
        try:
            return GeoResult(
                name=match["name"],
                latitude=match["latitude"],
                longitude=match["longitude"],
                country=match.get("country"),
                region=match.get("admin1"),
            )
        except (KeyError, ValidationError) as exc:
            raise TransportError(f"Malformed geocoding result for '{name}'") from exc

    def current_conditions_sync(self, topic: Topic) -> WeatherRecord:
        """Fetch and normalize current conditions at the topic's coordinates.

        Raises:
            IncompleteData: ``current.temperature_2m`` is missing.
            TransportError: The lookup itself failed.
        """
        payload = self._get_json(
            self.forecast_url,
            {
                "latitude": topic.latitude,
                "longitude": topic.longitude,
                "current": ",".join(CURRENT_VARIABLES),
                "timezone": "auto",
            },
        )
        current = payload.get("current") or {}
        if current.get("temperature_2m") is None:
            raise IncompleteData(f"No current temperature for {topic.name}")

        try:
            return WeatherRecord(
                city=topic.name,
                temp=round_half_up(current["temperature_2m"]),
                feels_like=round_half_up(current.get("apparent_temperature")),
                precipitation=round_tenth(current.get("precipitation")),
                wind_speed=round_half_up(current.get("wind_speed_10m")),
                wind_direction=current.get("wind_direction_10m"),
                humidity=current.get("relative_humidity_2m"),
                weather_code=current.get("weather_code"),
                timestamp=utc_now_iso(),
            )
        except (TypeError, ValidationError) as exc:
            raise IncompleteData(f"Malformed current conditions for {topic.name}") from exc

    async def geocode(self, name: str) -> GeoResult:
        return await asyncio.to_thread(self.geocode_sync, name)

    async def fetch_current_conditions(self, topic: Topic) -> WeatherRecord:
        return await asyncio.to_thread(self.current_conditions_sync, topic)
