from fastapi import APIRouter, Depends

from weather_relay.dependencies import get_relay
from weather_relay.schemas.health import HealthResponse
from weather_relay.services.relay import Relay

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(relay: Relay = Depends(get_relay)):
    return HealthResponse(
        status="healthy",
        topics=len(relay.registry),
        connections=relay.broker.connection_count,
    )
