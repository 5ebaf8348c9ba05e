"""Async serial transport for TC-720 communication."""

import asyncio
import logging
from typing import Callable, List, Optional

import serial
import serial_asyncio

from ..config import SerialConfig
from ..exceptions import TransportError

logger = logging.getLogger(__name__)

# Enable verbose wire-level debugging
DEBUG_COMMS = False

ByteListener = Callable[[bytes], None]


class _ListenerProtocol(asyncio.Protocol):
    """asyncio protocol that fans received bytes out to listeners."""

    def __init__(self, owner: "SerialTransport"):
        self._owner = owner

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        logger.debug("Serial transport connected")

    def data_received(self, data: bytes) -> None:
        self._owner._dispatch(data)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        self._owner._connection_lost(exc)


class SerialTransport:
    """Async serial port manager.

    Bytes are delivered event-driven: pyserial-asyncio calls back into the
    event loop whenever data arrives, and every registered listener is
    invoked with the raw chunk.
    """

    def __init__(self, config: SerialConfig):
        """Initialize the transport.

        Args:
            config: Serial port configuration
        """
        self.config = config
        self._transport: Optional[serial_asyncio.SerialTransport] = None
        self._listeners: List[ByteListener] = []
        self._connected = False
        self._closed: Optional[asyncio.Future] = None
        self._stats = {
            "bytes_sent": 0,
            "bytes_received": 0,
            "writes": 0,
        }

    @property
    def connected(self) -> bool:
        """Check if the serial port is open."""
        return self._connected

    @property
    def port(self) -> str:
        """Port identifier in use."""
        return self.config.port

    async def open(self, port: Optional[str] = None) -> None:
        """Open the serial port.

        Args:
            port: Port identifier, overriding the configured one

        Raises:
            TransportError: If the port cannot be opened
        """
        if port:
            self.config = self.config.model_copy(update={"port": port})

        logger.info(f"Connecting to {self.config.port} at {self.config.baudrate} baud")

        loop = asyncio.get_running_loop()
        self._closed = loop.create_future()
        try:
            self._transport, _ = await serial_asyncio.create_serial_connection(
                loop,
                lambda: _ListenerProtocol(self),
                self.config.port,
                baudrate=self.config.baudrate,
                bytesize=self.config.databits,
                parity=self.config.parity_char,
                stopbits=self.config.stopbits,
            )
        except (serial.SerialException, OSError) as e:
            logger.error(f"Failed to connect to {self.config.port}: {e}")
            raise TransportError(f"Failed to open {self.config.port}: {e}") from e

        self._connected = True
        logger.info(f"Connected to {self.config.port}")

    def configure(
        self,
        baudrate: int,
        bytesize: int,
        stopbits: int,
        parity: str,
    ) -> None:
        """Apply line parameters to the open port.

        Args:
            baudrate: Baud rate
            bytesize: Data bits
            stopbits: Stop bits
            parity: Single-character pyserial parity ("N", "E", "O")

        Raises:
            TransportError: If not connected or the port rejects the settings
        """
        port = self._require_transport().serial
        try:
            port.baudrate = baudrate
            port.bytesize = bytesize
            port.stopbits = stopbits
            port.parity = parity
        except (serial.SerialException, ValueError) as e:
            raise TransportError(f"Failed to configure {self.config.port}: {e}") from e
        logger.debug(f"Configured {self.config.port}: {baudrate} {bytesize}{parity}{stopbits}")

    def add_listener(self, listener: ByteListener) -> None:
        """Register a callback for received bytes."""
        self._listeners.append(listener)

    def remove_listener(self, listener: ByteListener) -> None:
        """Unregister a byte callback."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def write_text(self, text: str) -> None:
        """Write an ASCII string to the port.

        Raises:
            TransportError: If not connected or the write fails
        """
        transport = self._require_transport()
        data = text.encode("ascii")

        if DEBUG_COMMS:
            logger.debug(f">>> TX {len(data)} bytes: {data!r}")

        try:
            transport.write(data)
        except (serial.SerialException, OSError) as e:
            logger.error(f"Failed to write to {self.config.port}: {e}")
            raise TransportError(f"Write to {self.config.port} failed: {e}") from e

        self._stats["bytes_sent"] += len(data)
        self._stats["writes"] += 1

    async def close(self) -> None:
        """Close the serial port."""
        if self._transport:
            self._transport.close()
            try:
                await asyncio.wait_for(asyncio.shield(self._closed), timeout=1.0)
            except asyncio.TimeoutError:
                logger.warning(f"Timed out waiting for {self.config.port} to close")
            self._transport = None

        self._connected = False
        logger.info("Disconnected from serial port")

    def _require_transport(self) -> "serial_asyncio.SerialTransport":
        if not self._transport or not self._connected:
            raise TransportError("Not connected to serial port")
        return self._transport

    def _dispatch(self, data: bytes) -> None:
        self._stats["bytes_received"] += len(data)
        if DEBUG_COMMS:
            logger.debug(f"<<< RX {len(data)} bytes: {data!r}")
        for listener in list(self._listeners):
            listener(data)

    def _connection_lost(self, exc: Optional[Exception]) -> None:
        self._connected = False
        if exc:
            logger.error(f"Serial connection lost: {exc}")
        if self._closed and not self._closed.done():
            self._closed.set_result(exc)

    @property
    def stats(self) -> dict:
        """Get transport statistics."""
        return {
            "connected": self._connected,
            "port": self.config.port,
            **self._stats,
        }
