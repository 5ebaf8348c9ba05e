"""Exception types raised by the TC-720 protocol and session layers."""

from typing import Optional


class TECError(Exception):
    """Base class for all TEC controller errors."""


class FramingError(TECError, ValueError):
    """A command body or response frame has the wrong shape."""


class EncodingError(TECError, ValueError):
    """A numeric parameter cannot be represented in a 4-digit hex field."""


class TransportError(TECError, ConnectionError):
    """The serial transport failed to open, write or close."""


class ResponseTimeoutError(TransportError):
    """No response frame arrived within the configured timeout."""


class InvalidStateError(TECError):
    """Operation is not allowed in the current device state."""


class ProtocolNak(TECError):
    """Device kept rejecting a command with the NAK marker.

    Raised only once the configured number of attempts is exhausted.
    """

    def __init__(self, frame: str, attempts: int, response: Optional[str] = None):
        self.frame = frame
        self.attempts = attempts
        self.response = response
        super().__init__(
            f"Command {frame!r} rejected by device after {attempts} attempt(s)"
        )
