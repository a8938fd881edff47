from datetime import datetime, timezone
from typing import Literal, Optional, Union

from weather_relay.schemas import EventPayload

UNAVAILABLE = "N/A"

# Fields compared to decide whether a fresh observation is worth emitting.
# ``city`` and ``timestamp`` are not compared.
COMPARED_FIELDS = (
    "temp",
    "feels_like",
    "precipitation",
    "wind_speed",
    "wind_direction",
    "humidity",
    "weather_code",
)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class WeatherRecord(EventPayload):
    """Current conditions for one topic, as pushed in ``weather_update``."""

    city: str
    temp: Union[int, Literal["N/A"]]
    feels_like: Optional[int] = None
    precipitation: Optional[float] = None
    wind_speed: Optional[int] = None
    wind_direction: Optional[int] = None
    humidity: Optional[int] = None
    weather_code: Optional[int] = None
    timestamp: str

    @classmethod
    def unavailable(cls, city: str) -> "WeatherRecord":
        """Placeholder sent when the immediate fetch on subscribe fails."""
        return cls(city=city, temp=UNAVAILABLE, timestamp=utc_now_iso())

    @property
    def is_available(self) -> bool:
        return self.temp != UNAVAILABLE

    def changed_fields(self, previous: Optional["WeatherRecord"]) -> list[str]:
        if previous is None:
            return list(COMPARED_FIELDS)
        return [
            field
            for field in COMPARED_FIELDS
            if getattr(self, field) != getattr(previous, field)
        ]

    def to_event(self) -> dict:
        return self.model_dump(by_alias=True)
