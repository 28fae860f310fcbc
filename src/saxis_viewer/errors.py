"""Fatal communication errors raised while talking to the robot server.

None of these are retried: any of them sets the session stop signal.
"""


class CommunicationError(Exception):
    """Base class for failures of the request/response exchange."""


class TransportError(CommunicationError):
    """The request could not be delivered or the connection was lost."""


class ProtocolError(CommunicationError):
    """The server answered with a payload we cannot parse."""


class ServerError(CommunicationError):
    """The server answered with an explicit error payload."""

    def __init__(self, message: str) -> None:
        """Keep the server's error text."""
        super().__init__(message)
        self.message = message
