"""Error taxonomy shared by the registry, subscriptions and weather client.

Business-rule errors reach the requesting client as a ``validation_error``
event (WebSocket) or an HTTP error (REST). External-source errors are logged
and degrade to "no update" or an unavailable snapshot.
"""


class RelayError(Exception):
    """Base class for all relay errors."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(RelayError):
    """Malformed request payload (empty name, wrong type)."""

    status_code = 422


class DuplicateTopic(RelayError):
    status_code = 409


class CapacityExceeded(RelayError):
    status_code = 409


class NotFound(RelayError):
    """Topic to delete does not exist."""

    status_code = 404


class UnknownTopic(RelayError):
    """Subscription requested for a topic that is not registered."""

    status_code = 404


class ResolutionFailed(RelayError):
    """Geocoding returned no usable match for a topic name."""

    status_code = 422


class GeocodeNotFound(ResolutionFailed):
    """Geocoding succeeded but returned zero results."""


class TransportError(RelayError):
    """Network failure, non-2xx status or undecodable body."""

    status_code = 502


class IncompleteData(RelayError):
    """Response is missing the current temperature."""

    status_code = 502
