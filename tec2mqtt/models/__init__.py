"""Data models for TC-720 state and commands."""

from .tec import (
    PIDParameters,
    DeviceState,
    TECState,
)

from .commands import (
    SetSetpointCommand,
    SetOutputCommand,
    CommandResult,
    COMMAND_VALIDATORS,
    validate_command,
)

__all__ = [
    # State models
    "PIDParameters",
    "DeviceState",
    "TECState",
    # Command models
    "SetSetpointCommand",
    "SetOutputCommand",
    "CommandResult",
    "COMMAND_VALIDATORS",
    "validate_command",
]
