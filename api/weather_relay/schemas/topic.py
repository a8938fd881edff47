from typing import Optional

from pydantic import ConfigDict, Field

from weather_relay.schemas import AppBaseModel


class GeoResult(AppBaseModel):
    """First geocoding match for a free-text place name."""

    name: str
    latitude: float
    longitude: float
    country: Optional[str] = None
    region: Optional[str] = None


class Topic(GeoResult):
    """A registered city. Identity is ``key``, the casefolded name."""

    model_config = ConfigDict(frozen=True)

    @property
    def key(self) -> str:
        return topic_key(self.name)


def topic_key(name: str) -> str:
    return name.strip().casefold()


class TopicCreate(AppBaseModel):
    """POST /topics request body."""

    name: str = Field(..., max_length=100)


class TopicListResponse(AppBaseModel):
    """GET /topics response, in registration order."""

    topics: list[str]


class SubscriptionRequest(AppBaseModel):
    """POST /connections/{connection_id}/subscription request body."""

    topic: str = Field(..., min_length=1, max_length=100)
