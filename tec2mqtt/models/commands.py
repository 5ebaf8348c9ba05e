"""Command validation models for MQTT input validation.

These Pydantic models validate incoming MQTT command payloads before
they are turned into session calls.
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator

from ..protocol.constants import PARAMETER_MIN, PARAMETER_MAX


class SetSetpointCommand(BaseModel):
    """Validate temperature setpoint change request."""

    value: float = Field(
        ...,
        ge=PARAMETER_MIN,
        le=PARAMETER_MAX,
        description=f"Temperature setpoint in C ({PARAMETER_MIN}-{PARAMETER_MAX})"
    )

    @field_validator('value', mode='before')
    @classmethod
    def parse_value(cls, v):
        """Parse string or numeric value."""
        if isinstance(v, str):
            return float(v)
        return v


class SetOutputCommand(BaseModel):
    """Validate output enable/disable command."""

    enabled: bool = Field(
        ...,
        description="Enable (true/ON) or disable (false/OFF) the output"
    )

    @field_validator('enabled', mode='before')
    @classmethod
    def parse_enabled(cls, v):
        """Parse string, boolean, or numeric value."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.strip().lower() in ('true', '1', 'yes', 'on')
        if isinstance(v, (int, float)):
            return bool(v)
        return v


class CommandResult(BaseModel):
    """Result of a command execution."""

    success: bool = Field(
        ...,
        description="Whether the command succeeded"
    )
    command: str = Field(
        ...,
        description="The command that was executed"
    )
    message: Optional[str] = Field(
        default=None,
        description="Optional message or error details"
    )
    value: Optional[str] = Field(
        default=None,
        description="The value that was set (if applicable)"
    )

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict."""
        result = {
            "success": self.success,
            "command": self.command,
        }
        if self.message:
            result["message"] = self.message
        if self.value is not None:
            result["value"] = self.value
        return result


# Mapping of topic suffixes to validation models
COMMAND_VALIDATORS = {
    "setpoint": SetSetpointCommand,
    "output": SetOutputCommand,
}


def validate_command(command_type: str, payload: str) -> BaseModel:
    """Validate a command payload.

    Args:
        command_type: The type of command ('setpoint' or 'output')
        payload: The raw payload string from MQTT

    Returns:
        Validated command model

    Raises:
        ValueError: If command_type is unknown
        pydantic.ValidationError: If payload is invalid
    """
    if command_type not in COMMAND_VALIDATORS:
        raise ValueError(f"Unknown command type: {command_type}")

    validator = COMMAND_VALIDATORS[command_type]

    # Output payload is just ON/OFF
    if command_type == "output":
        return validator(enabled=payload)

    return validator(value=payload)
