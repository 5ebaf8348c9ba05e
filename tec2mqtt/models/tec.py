"""Pydantic data models for TC-720 state."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from ..protocol.constants import (
    DEFAULT_PROPORTIONAL_BANDWIDTH,
    DEFAULT_INTEGRAL_GAIN,
    DEFAULT_DERIVATIVE_GAIN,
    PARAMETER_MIN,
    PARAMETER_MAX,
)


class PIDParameters(BaseModel):
    """PID tuning written to the controller at connect time."""

    proportional_bandwidth: float = Field(
        default=DEFAULT_PROPORTIONAL_BANDWIDTH,
        ge=0,
        le=PARAMETER_MAX,
        description="Proportional bandwidth in degrees C (factory default 5)"
    )
    integral_gain: float = Field(
        default=DEFAULT_INTEGRAL_GAIN,
        ge=0,
        le=PARAMETER_MAX,
        description="Integral gain in repeats/min (factory default 1)"
    )
    derivative_gain: float = Field(
        default=DEFAULT_DERIVATIVE_GAIN,
        ge=0,
        le=PARAMETER_MAX,
        description="Derivative gain in minutes (factory default 0)"
    )

    model_config = {"frozen": True}


class DeviceState(BaseModel):
    """State the session tracks on behalf of the controller."""

    setpoint: Optional[float] = Field(
        default=None,
        ge=PARAMETER_MIN,
        le=PARAMETER_MAX,
        description="Last temperature setpoint sent (None until set)"
    )
    output_enabled: bool = Field(
        default=False,
        description="Whether the controller output is enabled"
    )


class TECState(BaseModel):
    """Snapshot of the controller published to MQTT."""

    temperature: Optional[float] = Field(
        default=None,
        description="Input 1 temperature in degrees C"
    )
    setpoint: Optional[float] = Field(
        default=None,
        description="Temperature setpoint in degrees C"
    )
    output_enabled: bool = Field(
        default=False,
        description="Whether the controller output is enabled"
    )
    settled: Optional[bool] = Field(
        default=None,
        description="Temperature within the settling band (None without a setpoint)"
    )
    comms_lost: bool = Field(
        default=False,
        description="Communication with the controller lost"
    )
    last_update: Optional[datetime] = Field(
        default=None,
        description="Timestamp of last successful update"
    )

    @property
    def deviation(self) -> Optional[float]:
        """Temperature minus setpoint, if both are known."""
        if self.temperature is None or self.setpoint is None:
            return None
        return self.temperature - self.setpoint

    def to_mqtt_dict(self) -> dict:
        """Convert state to dictionary suitable for MQTT publishing."""
        deviation = self.deviation
        return {
            "temperature": (
                round(self.temperature, 2) if self.temperature is not None else None
            ),
            "setpoint": (
                round(self.setpoint, 2) if self.setpoint is not None else None
            ),
            "deviation": round(deviation, 2) if deviation is not None else None,
            "output_enabled": self.output_enabled,
            "settled": self.settled,
            "comms_lost": self.comms_lost,
            "last_update": (
                self.last_update.isoformat() if self.last_update else None
            ),
        }
