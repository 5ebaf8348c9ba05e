"""Checksum for TC-720 command bodies.

Per the manufacturer, each character of the 6-character command body is
converted to hex, those values are summed in hex, and the two least
significant digits of the sum are the checksum.
"""

from .constants import BODY_LENGTH, CHECKSUM_LENGTH
from ..exceptions import FramingError


def checksum(body: str) -> str:
    """Compute the 2-digit checksum of a command body.

    Args:
        body: Opcode + payload, exactly 6 characters

    Returns:
        Two lowercase hex digits, zero-padded

    Raises:
        FramingError: If body is not 6 characters long
    """
    if len(body) != BODY_LENGTH:
        raise FramingError(
            f"Incorrect command length: expected {BODY_LENGTH}, got {len(body)} ({body!r})"
        )

    # Code point -> hex text -> hex integer, as the manual describes it
    total = sum(int(format(ord(char), "x"), 16) for char in body)
    digits = format(total, "x")
    return digits[-CHECKSUM_LENGTH:].rjust(CHECKSUM_LENGTH, "0")


def validate(body: str, claimed: str) -> bool:
    """Check a claimed checksum against a command body.

    Args:
        body: Opcode + payload, exactly 6 characters
        claimed: Checksum received alongside the body

    Returns:
        True if the checksum matches
    """
    return checksum(body) == claimed.lower()
