"""Session with a single TC-720 controller.

The session owns the serial transport, wires the response buffer to the
request correlator, applies the PID tuning on connect and tracks the
setpoint and output state.
"""

import logging
import math
from typing import Optional

from .config import SerialConfig, TECConfig
from .exceptions import InvalidStateError, TransportError
from .models.tec import DeviceState, PIDParameters
from .protocol.commands import (
    Command,
    SetTemperatureCommand,
    ReadTemperatureCommand,
    OutputEnableCommand,
    ProportionalBandwidthCommand,
    IntegralGainCommand,
    DerivativeGainCommand,
)
from .protocol.constants import SETTLED_HYSTERESIS_PERCENT
from .protocol.response import parse_value
from .serial.buffer import ResponseBuffer
from .serial.connection import SerialTransport
from .serial.correlator import RequestCorrelator

logger = logging.getLogger(__name__)


class TECSession:
    """Connection to one TC-720 controller.

    The output starts disabled. Temperature setpoints are only accepted
    while the output is enabled.

    Usage:
        async with TECSession(serial_config, tec_config) as tec:
            await tec.enable()
            await tec.set_temperature(25.0)
            print(await tec.read_temperature_value())
    """

    def __init__(
        self,
        serial_config: Optional[SerialConfig] = None,
        tec_config: Optional[TECConfig] = None,
        transport=None,
    ):
        """Initialize the session.

        Args:
            serial_config: Serial port settings
            tec_config: Controller settings (timeouts, retries, PID tuning)
            transport: Transport to use instead of a SerialTransport
        """
        self.serial_config = serial_config or SerialConfig()
        self.tec_config = tec_config or TECConfig()
        self._transport = transport or SerialTransport(self.serial_config)
        self._buffer = ResponseBuffer()
        self._correlator: Optional[RequestCorrelator] = None
        self._state = DeviceState()
        self._connected = False

    @property
    def connected(self) -> bool:
        """Check if the session is connected."""
        return self._connected

    @property
    def enabled(self) -> bool:
        """Check if the controller output is enabled."""
        return self._state.output_enabled

    @property
    def state(self) -> DeviceState:
        """Copy of the tracked device state."""
        return self._state.model_copy()

    async def connect(self, port: Optional[str] = None) -> None:
        """Open the port, disable the output and apply the PID tuning.

        Args:
            port: Port identifier, overriding the configured one

        Raises:
            InvalidStateError: If the session is already connected
            TransportError: If the port cannot be opened or configured
        """
        if self._connected:
            raise InvalidStateError("Session is already connected")

        await self._transport.open(port)

        self._correlator = RequestCorrelator(
            self._transport,
            timeout=self.tec_config.response_timeout,
            max_attempts=self.tec_config.max_attempts,
        )
        self._buffer.clear()
        self._buffer.set_callback(self._correlator.deliver)
        self._transport.add_listener(self._buffer.add_bytes)
        self._connected = True

        try:
            self._transport.configure(
                self.serial_config.baudrate,
                self.serial_config.databits,
                self.serial_config.stopbits,
                self.serial_config.parity_char,
            )
            await self.disable()
            await self.apply_pid(self.tec_config.pid)
        except Exception:
            await self.close_port()
            raise

        logger.info("TC-720 connected, output disabled")

    async def apply_pid(self, pid: PIDParameters) -> None:
        """Write the PID tuning to the controller."""
        logger.info(
            f"Applying PID tuning: P={pid.proportional_bandwidth} "
            f"I={pid.integral_gain} D={pid.derivative_gain}"
        )
        await self._send(ProportionalBandwidthCommand(pid.proportional_bandwidth))
        await self._send(IntegralGainCommand(pid.integral_gain))
        await self._send(DerivativeGainCommand(pid.derivative_gain))

    async def enable(self) -> None:
        """Enable the controller output."""
        await self._send(OutputEnableCommand(True))
        self._state.output_enabled = True
        logger.info("Output enabled")

    async def disable(self) -> None:
        """Disable the controller output."""
        await self._send(OutputEnableCommand(False))
        self._state.output_enabled = False
        logger.info("Output disabled")

    async def set_temperature(self, temperature: float) -> bool:
        """Set the temperature setpoint in degrees C.

        While the output is disabled nothing is sent and the setpoint is
        left unchanged.

        Returns:
            True if the setpoint was sent, False if ignored while disabled

        Raises:
            InvalidStateError: If disabled and strict_state is configured
            EncodingError: If the temperature cannot be encoded
        """
        if not self._state.output_enabled:
            if self.tec_config.strict_state:
                raise InvalidStateError("Cannot set temperature while output is disabled")
            logger.warning(
                f"Attempting to set temperature {temperature}C with output DISABLED, ignoring"
            )
            return False

        command = SetTemperatureCommand(temperature)
        await self._send(command)
        self._state.setpoint = temperature
        logger.info(f"Temperature setpoint set to {temperature}C")
        return True

    async def read_temperature_value(self) -> float:
        """Read the actual temperature at the TEC in degrees C."""
        response = await self._send(ReadTemperatureCommand())
        return parse_value(response)

    def read_temperature_setpoint(self) -> Optional[float]:
        """Get the setpoint last sent, or None if never set."""
        return self._state.setpoint

    async def temperature_hysteresis(self, actual: Optional[float] = None) -> float:
        """Percent difference between actual temperature and setpoint.

        Args:
            actual: Temperature already read, to avoid another round trip

        Raises:
            InvalidStateError: If no setpoint has been set
        """
        setpoint = self._state.setpoint
        if setpoint is None:
            raise InvalidStateError("Temperature setpoint has not been set")
        if actual is None:
            actual = await self.read_temperature_value()

        mean = abs(setpoint + actual) / 2
        if mean == 0:
            return 0.0 if actual == setpoint else math.inf
        return abs(actual - setpoint) / mean * 100.0

    async def temperature_settled(self, actual: Optional[float] = None) -> bool:
        """Check whether the actual temperature has reached the setpoint.

        Raises:
            InvalidStateError: If no setpoint has been set
        """
        return await self.temperature_hysteresis(actual) < SETTLED_HYSTERESIS_PERCENT

    async def close_port(self) -> None:
        """Close the port. Any send still waiting fails."""
        if self._correlator:
            self._correlator.close()
        self._transport.remove_listener(self._buffer.add_bytes)
        self._buffer.clear()
        await self._transport.close()
        self._connected = False
        self._state = DeviceState()

    async def _send(self, command: Command) -> str:
        if not self._connected or self._correlator is None:
            raise TransportError("Session is not connected")
        return await self._correlator.send(command)

    async def __aenter__(self) -> "TECSession":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close_port()

    @property
    def stats(self) -> dict:
        """Get session statistics."""
        return {
            "connected": self._connected,
            "output_enabled": self._state.output_enabled,
            "setpoint": self._state.setpoint,
            "buffer": self._buffer.stats,
            "correlator": self._correlator.stats if self._correlator else None,
            "transport": self._transport.stats,
        }
