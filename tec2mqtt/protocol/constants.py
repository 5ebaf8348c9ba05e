"""Constants for the TC-720 ASCII serial protocol.

See Appendix B of the TC-720 manual for the command table.
"""

# Frame delimiters
START_CHAR = "*"
END_CHAR = "\r"
TERMINATOR = "^"
TERMINATOR_BYTE = ord(TERMINATOR)

# Device embeds this character in a response when it rejects a command
NAK_MARKER = "X"

# Field widths
OPCODE_LENGTH = 2
PAYLOAD_LENGTH = 4
BODY_LENGTH = OPCODE_LENGTH + PAYLOAD_LENGTH
CHECKSUM_LENGTH = 2

# Response layout: data payload sits at a fixed offset for read commands
RESPONSE_PAYLOAD_START = 1
RESPONSE_PAYLOAD_END = RESPONSE_PAYLOAD_START + PAYLOAD_LENGTH

# Opcodes
OPCODE_SET_TEMPERATURE = "1c"
OPCODE_READ_TEMPERATURE = "01"
OPCODE_OUTPUT_ENABLE = "30"
OPCODE_PROPORTIONAL_BANDWIDTH = "1d"
OPCODE_INTEGRAL_GAIN = "1e"
OPCODE_DERIVATIVE_GAIN = "1f"

ZERO_PAYLOAD = "0" * PAYLOAD_LENGTH

# Parameters are sent as value * 100 in a signed 16-bit field
PARAMETER_SCALE = 100
PARAMETER_RAW_MIN = -0x8000
PARAMETER_RAW_MAX = 0x7FFF
PARAMETER_MIN = PARAMETER_RAW_MIN / PARAMETER_SCALE
PARAMETER_MAX = PARAMETER_RAW_MAX / PARAMETER_SCALE

# Serial line settings
DEFAULT_BAUDRATE = 230400
DEFAULT_DATABITS = 8
DEFAULT_STOPBITS = 1
DEFAULT_PARITY = "none"

# Tuned PID values applied at connect time
DEFAULT_PROPORTIONAL_BANDWIDTH = 2.25
DEFAULT_INTEGRAL_GAIN = 1.0
DEFAULT_DERIVATIVE_GAIN = 10.0

# Settling criterion: percent deviation between actual and setpoint
SETTLED_HYSTERESIS_PERCENT = 0.2
