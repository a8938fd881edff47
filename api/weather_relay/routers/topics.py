from fastapi import APIRouter, Depends, HTTPException
from starlette.requests import Request

from weather_relay.dependencies import get_relay
from weather_relay.rate_limit import limiter
from weather_relay.schemas.topic import (
    SubscriptionRequest,
    Topic,
    TopicCreate,
    TopicListResponse,
)
from weather_relay.schemas.weather import WeatherRecord
from weather_relay.services.relay import Relay

router = APIRouter(tags=["topics"])


@router.get("/topics", response_model=TopicListResponse)
@limiter.limit("60/minute")
async def list_topics(request: Request, relay: Relay = Depends(get_relay)):
    return TopicListResponse(topics=relay.registry.list_topics())


@router.post("/topics", response_model=Topic, status_code=201)
@limiter.limit("10/minute")
async def create_topic(
    request: Request,
    data: TopicCreate,
    relay: Relay = Depends(get_relay),
):
    """Geocode and register a city. Broadcasts topic_added and topics_list."""
    return await relay.registry.add_topic(data.name)


@router.delete("/topics/{name}", response_model=Topic)
@limiter.limit("10/minute")
async def delete_topic(
    request: Request,
    name: str,
    relay: Relay = Depends(get_relay),
):
    """Unregister a city. Subscribers receive topic_force_left."""
    return relay.registry.remove_topic(name)


@router.post(
    "/connections/{connection_id}/subscription", response_model=WeatherRecord
)
@limiter.limit("60/minute")
async def subscribe_connection(
    request: Request,
    connection_id: str,
    data: SubscriptionRequest,
    relay: Relay = Depends(get_relay),
):
    """Subscribe an SSE connection to a city.

    The snapshot is returned here and also pushed on the stream.
    """
    if not relay.broker.is_connected(connection_id):
        raise HTTPException(status_code=404, detail="Connection not found")
    return await relay.gateway.subscribe(connection_id, data.topic)
