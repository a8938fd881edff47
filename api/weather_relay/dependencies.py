from starlette.requests import HTTPConnection

from weather_relay.services.relay import Relay


def get_relay(connection: HTTPConnection) -> Relay:
    """Return the relay built in the app lifespan (works for HTTP and WebSocket)."""
    return connection.app.state.relay
