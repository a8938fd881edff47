import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from weather_relay.config import Settings
from weather_relay.errors import GeocodeNotFound, TransportError
from weather_relay.main import app
from weather_relay.schemas.topic import GeoResult, Topic
from weather_relay.schemas.weather import WeatherRecord, utc_now_iso
from weather_relay.services.relay import Relay

GEO = {
    "london": GeoResult(
        name="London", latitude=51.5074, longitude=-0.1278, country="United Kingdom"
    ),
    "greater london": GeoResult(
        name="London", latitude=51.5074, longitude=-0.1278, country="United Kingdom"
    ),
    "paris": GeoResult(name="Paris", latitude=48.8566, longitude=2.3522, country="France"),
    "berlin": GeoResult(name="Berlin", latitude=52.52, longitude=13.405, country="Germany"),
    "tokyo": GeoResult(name="Tokyo", latitude=35.6762, longitude=139.6503, country="Japan"),
}

DEFAULT_READING = {
    "temp": 20,
    "feels_like": 19,
    "precipitation": 0.0,
    "wind_speed": 12,
    "wind_direction": 270,
    "humidity": 65,
    "weather_code": 3,
}


class FakeWeatherClient:
    """In-memory stand-in for WeatherClient; no network."""

    def __init__(self) -> None:
        self.readings: dict[str, dict] = {}
        self.failing: set[str] = set()
        self.geocode_down = False
        self.geocode_calls: list[str] = []
        self.fetch_calls: list[str] = []
        self.closed = False

    def set_reading(self, city: str, **fields) -> None:
        self.readings[city] = {**DEFAULT_READING, **fields}

    async def geocode(self, name: str) -> GeoResult:
        self.geocode_calls.append(name)
        await asyncio.sleep(0)
        if self.geocode_down:
            raise TransportError("geocoding unreachable")
        match = GEO.get(name.casefold())
        if match is None:
            raise GeocodeNotFound(f"City '{name}' not found")
        return match

    async def fetch_current_conditions(self, topic: Topic) -> WeatherRecord:
        self.fetch_calls.append(topic.name)
        if topic.name in self.failing:
            raise TransportError(f"{topic.name} upstream down")
        reading = self.readings.get(topic.name, DEFAULT_READING)
        return WeatherRecord(city=topic.name, timestamp=utc_now_iso(), **reading)

    def close(self) -> None:
        self.closed = True


def drain(queue) -> list[dict]:
    """Pop every queued event without waiting."""
    events = []
    while not queue.empty():
        events.append(queue.get_nowait())
    return events


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        max_topics=3,
        seed_default_topics=False,
        poll_interval_seconds=0.01,
        fetch_delay_seconds=0,
    )


@pytest.fixture
def fake_client():
    return FakeWeatherClient()


@pytest.fixture
def relay(settings, fake_client):
    return Relay(settings, client=fake_client)


@pytest.fixture
def seeded_relay(fake_client):
    seeded = Settings(
        _env_file=None,
        max_topics=3,
        seed_default_topics=True,
        poll_interval_seconds=0.01,
        fetch_delay_seconds=0,
    )
    return Relay(seeded, client=fake_client)


@pytest.fixture
async def client(relay):
    app.state.relay = relay
    # Disable rate limiting in tests
    app.state.limiter.enabled = False
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.state.limiter.enabled = True
    del app.state.relay
