"""Response buffer for TC-720 byte stream assembly."""

import logging
from typing import Callable, List, Optional

from ..protocol.constants import TERMINATOR_BYTE

logger = logging.getLogger(__name__)

# Enable verbose per-byte debugging
DEBUG_BUFFER = False

ResponseCallback = Callable[[str], None]


class ResponseBuffer:
    """Buffer for assembling complete responses from a byte stream.

    The serial port delivers bytes in arbitrary chunks, so this buffer
    accumulates them and emits one response per terminator.

    Response format:
        [...text...]   # Any ASCII, may be empty, may contain 'X'
        ['^']          # Terminator (not part of the response)
    """

    # A response is a handful of characters; anything this long without a
    # terminator is line noise
    MAX_PENDING = 4096

    def __init__(self, on_response: Optional[ResponseCallback] = None):
        """Initialize an empty response buffer.

        Args:
            on_response: Optional callback invoked with each completed response
        """
        self._buffer = bytearray()
        self._on_response = on_response
        self._stats = {
            "bytes_received": 0,
            "responses_received": 0,
            "buffer_overflows": 0,
        }

    def set_callback(self, on_response: Optional[ResponseCallback]) -> None:
        """Set the callback invoked with each completed response."""
        self._on_response = on_response

    def add_bytes(self, data: bytes) -> List[str]:
        """Add received bytes to the buffer.

        Bytes are consumed in order. Every terminator completes exactly one
        response, which is handed to the callback and also returned.

        Args:
            data: Bytes received from serial port

        Returns:
            Responses completed by this chunk, oldest first
        """
        self._stats["bytes_received"] += len(data)
        completed = []

        for byte in data:
            if byte == TERMINATOR_BYTE:
                response = self._buffer.decode("ascii", errors="replace")
                self._buffer.clear()
                self._stats["responses_received"] += 1
                if DEBUG_BUFFER:
                    logger.debug(f"[BUFFER] Response complete: {response!r}")
                completed.append(response)
                if self._on_response:
                    self._on_response(response)
                continue

            self._buffer.append(byte)
            if len(self._buffer) > self.MAX_PENDING:
                logger.warning("Buffer overflow without terminator, discarding partial response")
                self._stats["buffer_overflows"] += 1
                self._buffer.clear()

        if DEBUG_BUFFER and self._buffer:
            logger.debug(f"[BUFFER] Pending: {bytes(self._buffer)!r}")

        return completed

    def clear(self) -> None:
        """Clear the buffer."""
        self._buffer.clear()

    @property
    def stats(self) -> dict:
        """Get buffer statistics."""
        return self._stats.copy()

    @property
    def pending_bytes(self) -> int:
        """Get number of bytes pending in buffer."""
        return len(self._buffer)

    def __len__(self) -> int:
        """Get buffer length."""
        return len(self._buffer)
