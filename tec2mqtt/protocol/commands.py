"""Command builders for the TC-720 ASCII protocol.

Every command on the wire has the form:

    *  OO  PPPP  CC  \\r

where OO is the 2-character opcode, PPPP the parameter as 4 lowercase hex
digits and CC the checksum of the 6-character body OOPPPP.
"""

from decimal import Decimal

from .checksum import checksum
from .constants import (
    START_CHAR,
    END_CHAR,
    OPCODE_LENGTH,
    PAYLOAD_LENGTH,
    ZERO_PAYLOAD,
    PARAMETER_SCALE,
    PARAMETER_RAW_MIN,
    PARAMETER_RAW_MAX,
    OPCODE_SET_TEMPERATURE,
    OPCODE_READ_TEMPERATURE,
    OPCODE_OUTPUT_ENABLE,
    OPCODE_PROPORTIONAL_BANDWIDTH,
    OPCODE_INTEGRAL_GAIN,
    OPCODE_DERIVATIVE_GAIN,
)
from ..exceptions import EncodingError, FramingError


def encode_parameter(value: float) -> str:
    """Encode a real-valued parameter as a 4-digit hex field.

    The value is multiplied by 100 and truncated toward zero. Negative
    values use 16-bit two's complement, so the upper half of the field
    (8000-ffff) is reserved for them and the largest positive value is
    327.67 even though 4 hex digits could hold up to 655.35.

    Args:
        value: Parameter value (e.g. degrees C or a PID gain)

    Returns:
        Four lowercase hex digits

    Raises:
        EncodingError: If the scaled value does not fit in 16 bits
    """
    try:
        # str() first so 1.15 scales to 115 rather than 114.99999999999999
        raw = int(Decimal(str(value)) * PARAMETER_SCALE)
    except (ArithmeticError, ValueError) as e:
        raise EncodingError(f"Cannot encode parameter {value!r}: {e}") from e

    if not (PARAMETER_RAW_MIN <= raw <= PARAMETER_RAW_MAX):
        raise EncodingError(
            f"Parameter {value} out of range "
            f"({PARAMETER_RAW_MIN / PARAMETER_SCALE} to {PARAMETER_RAW_MAX / PARAMETER_SCALE})"
        )

    return format(raw & 0xFFFF, "04x")


def decode_parameter(text: str) -> float:
    """Decode a 4-digit hex field back into a real value.

    Args:
        text: Four hex digits as sent by the device

    Returns:
        Signed value divided by 100

    Raises:
        FramingError: If text is not 4 hex digits
    """
    if len(text) != PAYLOAD_LENGTH:
        raise FramingError(f"Expected {PAYLOAD_LENGTH} hex digits, got {text!r}")
    try:
        raw = int(text, 16)
    except ValueError as e:
        raise FramingError(f"Invalid hex payload {text!r}") from e

    if raw > PARAMETER_RAW_MAX:
        raw -= 0x10000
    return raw / PARAMETER_SCALE


class Command:
    """Base class for TC-720 commands."""

    def __init__(self, opcode: str, payload: str = ZERO_PAYLOAD):
        """Initialize a command.

        Args:
            opcode: 2-character opcode
            payload: 4 hex digit parameter field

        Raises:
            FramingError: If opcode or payload have the wrong width
        """
        if len(opcode) != OPCODE_LENGTH:
            raise FramingError(f"Opcode must be {OPCODE_LENGTH} characters, got {opcode!r}")
        if len(payload) != PAYLOAD_LENGTH:
            raise FramingError(f"Payload must be {PAYLOAD_LENGTH} characters, got {payload!r}")
        self.opcode = opcode.lower()
        self.payload = payload.lower()

    @property
    def body(self) -> str:
        """Opcode + payload, the part covered by the checksum."""
        return self.opcode + self.payload

    @property
    def checksum(self) -> str:
        """Two hex digit checksum of the body."""
        return checksum(self.body)

    def to_frame(self) -> str:
        """Render the complete wire frame."""
        return START_CHAR + self.body + self.checksum + END_CHAR

    def to_bytes(self) -> bytes:
        """Render the complete wire frame as ASCII bytes."""
        return self.to_frame().encode("ascii")

    def __eq__(self, other) -> bool:
        if not isinstance(other, Command):
            return NotImplemented
        return self.body == other.body

    def __hash__(self) -> int:
        return hash(self.body)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(opcode={self.opcode}, payload={self.payload})"


class SetTemperatureCommand(Command):
    """Write the desired control setting (temperature setpoint, degrees C)."""

    def __init__(self, temperature: float):
        self.temperature = temperature
        super().__init__(OPCODE_SET_TEMPERATURE, encode_parameter(temperature))


class ReadTemperatureCommand(Command):
    """Read the input 1 (sensor) temperature."""

    def __init__(self):
        super().__init__(OPCODE_READ_TEMPERATURE, ZERO_PAYLOAD)


class OutputEnableCommand(Command):
    """Enable (1) or disable (0) the controller output.

    The flag is sent unscaled: 0001 or 0000.
    """

    def __init__(self, enabled: bool):
        self.enabled = enabled
        super().__init__(OPCODE_OUTPUT_ENABLE, format(int(bool(enabled)), "04x"))


class ProportionalBandwidthCommand(Command):
    """Set the proportional bandwidth (the P of PID). Factory default is 5C."""

    def __init__(self, value: float):
        self.value = value
        super().__init__(OPCODE_PROPORTIONAL_BANDWIDTH, encode_parameter(value))


class IntegralGainCommand(Command):
    """Set the integral gain (the I of PID). Factory default is 1."""

    def __init__(self, value: float):
        self.value = value
        super().__init__(OPCODE_INTEGRAL_GAIN, encode_parameter(value))


class DerivativeGainCommand(Command):
    """Set the derivative gain (the D of PID). Factory default is 0."""

    def __init__(self, value: float):
        self.value = value
        super().__init__(OPCODE_DERIVATIVE_GAIN, encode_parameter(value))
