"""Helpers for inspecting TC-720 response frames.

A response is the text the device sends before its ``^`` terminator.
For read commands it looks like ``*DDDDCC`` where DDDD is the data
payload and CC the device's checksum.
"""

from .commands import decode_parameter
from .constants import NAK_MARKER, RESPONSE_PAYLOAD_START, RESPONSE_PAYLOAD_END
from ..exceptions import FramingError


def is_nak(response: str) -> bool:
    """Check whether the device rejected the previous command."""
    return NAK_MARKER in response


def extract_payload(response: str) -> str:
    """Extract the 4 hex digit data payload from a response.

    Raises:
        FramingError: If the response is too short to hold a payload
    """
    if len(response) < RESPONSE_PAYLOAD_END:
        raise FramingError(f"Response too short for a data payload: {response!r}")
    return response[RESPONSE_PAYLOAD_START:RESPONSE_PAYLOAD_END]


def parse_value(response: str) -> float:
    """Decode the data payload of a read response into a real value."""
    return decode_parameter(extract_payload(response))
