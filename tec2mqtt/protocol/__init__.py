"""TC-720 protocol encoding and decoding."""

from .constants import (
    TERMINATOR,
    NAK_MARKER,
    OPCODE_SET_TEMPERATURE,
    OPCODE_READ_TEMPERATURE,
    OPCODE_OUTPUT_ENABLE,
    OPCODE_PROPORTIONAL_BANDWIDTH,
    OPCODE_INTEGRAL_GAIN,
    OPCODE_DERIVATIVE_GAIN,
)
from .checksum import checksum, validate
from .commands import (
    Command,
    SetTemperatureCommand,
    ReadTemperatureCommand,
    OutputEnableCommand,
    ProportionalBandwidthCommand,
    IntegralGainCommand,
    DerivativeGainCommand,
    encode_parameter,
    decode_parameter,
)
from .response import is_nak, extract_payload, parse_value

__all__ = [
    "TERMINATOR",
    "NAK_MARKER",
    "OPCODE_SET_TEMPERATURE",
    "OPCODE_READ_TEMPERATURE",
    "OPCODE_OUTPUT_ENABLE",
    "OPCODE_PROPORTIONAL_BANDWIDTH",
    "OPCODE_INTEGRAL_GAIN",
    "OPCODE_DERIVATIVE_GAIN",
    "checksum",
    "validate",
    "Command",
    "SetTemperatureCommand",
    "ReadTemperatureCommand",
    "OutputEnableCommand",
    "ProportionalBandwidthCommand",
    "IntegralGainCommand",
    "DerivativeGainCommand",
    "encode_parameter",
    "decode_parameter",
    "is_nak",
    "extract_payload",
    "parse_value",
]
