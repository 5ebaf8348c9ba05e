"""Request/response correlation for the TC-720 serial protocol.

The device answers every command with exactly one ``^``-terminated
response, so only one command may be in flight at a time. Responses are
handed from the byte-stream side to the waiting caller through a
single-slot channel.
"""

import asyncio
import logging
from typing import Optional, Protocol

from ..exceptions import ProtocolNak, ResponseTimeoutError, TransportError
from ..protocol.commands import Command
from ..protocol.response import is_nak

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0
DEFAULT_MAX_ATTEMPTS = 5

_CLOSED = object()


class TextWriter(Protocol):
    """Anything that can put a string on the wire."""

    def write_text(self, text: str) -> None:
        ...


class ResponseSlot:
    """Single-capacity channel holding the latest unread response.

    ``put`` never blocks: a newer response replaces one nobody has read
    yet. ``get`` waits until the slot is full.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._closed = False

    @property
    def full(self) -> bool:
        """True if a response is waiting to be read."""
        return self._queue.full()

    @property
    def closed(self) -> bool:
        """True once the slot has been closed."""
        return self._closed

    def put(self, response: str) -> None:
        """Publish a response, replacing any unread one."""
        if self._closed:
            logger.debug(f"Dropping response on closed slot: {response!r}")
            return
        if self._queue.full():
            stale = self._queue.get_nowait()
            logger.debug(f"Replacing unread response {stale!r}")
        self._queue.put_nowait(response)

    def clear(self) -> None:
        """Empty the slot."""
        while not self._queue.empty():
            self._queue.get_nowait()

    async def get(self, timeout: Optional[float] = None) -> str:
        """Wait for the next response.

        Args:
            timeout: Seconds to wait, or None to wait forever

        Raises:
            asyncio.TimeoutError: If nothing arrives in time
            TransportError: If the slot is closed
        """
        if self._closed:
            raise TransportError("Response channel closed")
        item = await asyncio.wait_for(self._queue.get(), timeout=timeout)
        if item is _CLOSED:
            raise TransportError("Response channel closed while waiting for a response")
        return item

    def close(self) -> None:
        """Close the slot and wake any waiter with an error."""
        if self._closed:
            return
        self._closed = True
        self.clear()
        self._queue.put_nowait(_CLOSED)


class RequestCorrelator:
    """Send commands one at a time and match them with their responses.

    A response carrying the NAK marker means the device rejected the frame
    (typically a checksum mismatch on its side); the identical frame is
    resent until a clean response arrives or ``max_attempts`` is reached.
    """

    def __init__(
        self,
        transport: TextWriter,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        """Initialize the correlator.

        Args:
            transport: Object with a ``write_text`` method
            timeout: Seconds to wait for each response
            max_attempts: Total sends allowed per command, including the first
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self._transport = transport
        self.timeout = timeout
        self.max_attempts = max_attempts
        self._slot = ResponseSlot()
        self._lock = asyncio.Lock()
        self._stats = {
            "commands_sent": 0,
            "frames_written": 0,
            "naks": 0,
            "timeouts": 0,
        }

    def deliver(self, response: str) -> None:
        """Accept a completed response from the byte-stream side."""
        self._slot.put(response)

    async def send(self, command: Command) -> str:
        """Send a command and wait for its response.

        Args:
            command: Command to send

        Returns:
            The first response without the NAK marker

        Raises:
            ResponseTimeoutError: If the device does not answer in time
            ProtocolNak: If every attempt was rejected
            TransportError: If the write fails or the correlator is closed
        """
        frame = command.to_frame()
        response = None

        async with self._lock:
            self._stats["commands_sent"] += 1
            for attempt in range(1, self.max_attempts + 1):
                self._slot.clear()
                logger.debug(f"Sending {frame!r} (attempt {attempt}/{self.max_attempts})")
                self._transport.write_text(frame)
                self._stats["frames_written"] += 1

                try:
                    response = await self._slot.get(self.timeout)
                except asyncio.TimeoutError:
                    self._stats["timeouts"] += 1
                    logger.error(f"No response to {frame!r} within {self.timeout}s")
                    raise ResponseTimeoutError(
                        f"No response to {frame!r} within {self.timeout}s"
                    ) from None

                logger.debug(f"Received {response!r}")
                if not is_nak(response):
                    return response

                self._stats["naks"] += 1
                if attempt < self.max_attempts:
                    logger.warning(
                        f"Device rejected {frame!r} with {response!r}, resending "
                        f"(attempt {attempt}/{self.max_attempts})"
                    )
                else:
                    logger.error(
                        f"Device rejected {frame!r} with {response!r}, giving up "
                        f"after {attempt} attempt(s)"
                    )

        raise ProtocolNak(frame, self.max_attempts, response)

    def close(self) -> None:
        """Fail any outstanding send and refuse new ones."""
        self._slot.close()

    @property
    def closed(self) -> bool:
        """True once the correlator has been closed."""
        return self._slot.closed

    @property
    def stats(self) -> dict:
        """Get correlator statistics."""
        return self._stats.copy()
