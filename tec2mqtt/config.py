"""Configuration management with Pydantic validation.

Supports three configuration sources (in priority order):
1. YAML config file
2. Environment variables (for Docker)
3. Default values
"""

import os
from pathlib import Path
from typing import Optional, Literal
import yaml
from pydantic import BaseModel, Field, field_validator

from .models.tec import PIDParameters
from .protocol.constants import (
    DEFAULT_BAUDRATE,
    DEFAULT_DATABITS,
    DEFAULT_STOPBITS,
    PARAMETER_MIN,
    PARAMETER_MAX,
)


class SerialConfig(BaseModel):
    """Serial port configuration for the TC-720 connection."""

    port: str = Field(
        default="/dev/ttyUSB0",
        description="Serial port device path"
    )
    baudrate: int = Field(
        default=DEFAULT_BAUDRATE,
        description="Baud rate"
    )
    databits: int = Field(
        default=DEFAULT_DATABITS,
        ge=5,
        le=8,
        description="Data bits"
    )
    parity: Literal["none", "even", "odd"] = Field(
        default="none",
        description="Parity setting"
    )
    stopbits: int = Field(
        default=DEFAULT_STOPBITS,
        ge=1,
        le=2,
        description="Stop bits"
    )

    @property
    def parity_char(self) -> str:
        """Get single-character parity for pyserial."""
        return {"none": "N", "even": "E", "odd": "O"}[self.parity]


class TECConfig(BaseModel):
    """TC-720 controller configuration."""

    poll_interval: float = Field(
        default=5.0,
        ge=0.5,
        le=300,
        description="Temperature polling interval in seconds"
    )
    response_timeout: float = Field(
        default=5.0,
        gt=0,
        le=60,
        description="Seconds to wait for each device response"
    )
    max_attempts: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Sends per command before a rejected command is reported"
    )
    strict_state: bool = Field(
        default=False,
        description="Raise instead of warning when setting temperature while disabled"
    )
    enable_on_start: bool = Field(
        default=False,
        description="Enable the output after connecting"
    )
    initial_setpoint: Optional[float] = Field(
        default=None,
        ge=PARAMETER_MIN,
        le=PARAMETER_MAX,
        description="Setpoint applied after enabling on start (degrees C)"
    )
    pid: PIDParameters = Field(
        default_factory=PIDParameters,
        description="PID tuning applied at connect time"
    )


class MQTTConfig(BaseModel):
    """MQTT broker configuration."""

    host: Optional[str] = Field(
        default=None,
        description="MQTT broker hostname or IP (None = log-only mode)"
    )
    port: int = Field(
        default=1883,
        ge=1,
        le=65535,
        description="MQTT broker port"
    )
    username: Optional[str] = Field(
        default=None,
        description="MQTT username (optional)"
    )
    password: Optional[str] = Field(
        default=None,
        description="MQTT password (optional)"
    )
    client_id: str = Field(
        default="tec2mqtt",
        description="MQTT client identifier"
    )
    discovery_prefix: str = Field(
        default="homeassistant",
        description="Home Assistant MQTT discovery prefix"
    )
    topic_prefix: str = Field(
        default="tec2mqtt",
        description="Topic prefix for state publishing"
    )
    retain: bool = Field(
        default=True,
        description="Retain MQTT messages"
    )
    qos: int = Field(
        default=1,
        ge=0,
        le=2,
        description="MQTT QoS level"
    )

    @field_validator("host", "username", "password", mode="before")
    @classmethod
    def empty_str_to_none(cls, v):
        """Convert empty strings to None."""
        if v == "":
            return None
        return v

    @property
    def enabled(self) -> bool:
        """Check if MQTT is enabled (host is configured)."""
        return self.host is not None


class ControlConfig(BaseModel):
    """Remote control (MQTT command) configuration."""

    enabled: bool = Field(
        default=False,
        description="Accept setpoint/output commands over MQTT"
    )
    rate_limit_seconds: float = Field(
        default=1.0,
        ge=0,
        le=60,
        description="Minimum seconds between commands"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )
    file: Optional[Path] = Field(
        default=None,
        description="Log file path (optional)"
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format"
    )


class AppConfig(BaseModel):
    """Complete application configuration."""

    serial: SerialConfig = Field(
        default_factory=SerialConfig,
        description="Serial port settings"
    )
    tec: TECConfig = Field(
        default_factory=TECConfig,
        description="TC-720 controller settings"
    )
    mqtt: MQTTConfig = Field(
        default_factory=MQTTConfig,
        description="MQTT broker settings"
    )
    control: ControlConfig = Field(
        default_factory=ControlConfig,
        description="Remote control settings"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging settings"
    )


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes", "on")


# Environment variable mapping
ENV_MAPPING = {
    # Serial
    "SERIAL_PORT": ("serial", "port"),
    "SERIAL_BAUDRATE": ("serial", "baudrate", int),

    # TC-720
    "TEC_POLL_INTERVAL": ("tec", "poll_interval", float),
    "TEC_RESPONSE_TIMEOUT": ("tec", "response_timeout", float),
    "TEC_MAX_ATTEMPTS": ("tec", "max_attempts", int),
    "TEC_STRICT_STATE": ("tec", "strict_state", _parse_bool),
    "TEC_ENABLE_ON_START": ("tec", "enable_on_start", _parse_bool),
    "TEC_INITIAL_SETPOINT": ("tec", "initial_setpoint", float),

    # MQTT
    "MQTT_HOST": ("mqtt", "host"),
    "MQTT_PORT": ("mqtt", "port", int),
    "MQTT_USERNAME": ("mqtt", "username"),
    "MQTT_PASSWORD": ("mqtt", "password"),
    "MQTT_CLIENT_ID": ("mqtt", "client_id"),
    "MQTT_DISCOVERY_PREFIX": ("mqtt", "discovery_prefix"),
    "MQTT_TOPIC_PREFIX": ("mqtt", "topic_prefix"),
    "MQTT_RETAIN": ("mqtt", "retain", _parse_bool),
    "MQTT_QOS": ("mqtt", "qos", int),

    # Control
    "CONTROL_ENABLED": ("control", "enabled", _parse_bool),
    "CONTROL_RATE_LIMIT": ("control", "rate_limit_seconds", float),

    # Logging
    "LOG_LEVEL": ("logging", "level"),
}


def _get_env_value(env_var: str, mapping: tuple):
    """Get environment variable value with optional type conversion."""
    value = os.environ.get(env_var)
    if value is None:
        return None

    # Apply type conversion if specified
    if len(mapping) > 2:
        converter = mapping[2]
        try:
            return converter(value)
        except (ValueError, TypeError):
            return value
    return value


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables.

    Returns:
        AppConfig with values from environment (or defaults)
    """
    config_dict = {
        "serial": {},
        "tec": {},
        "mqtt": {},
        "control": {},
        "logging": {},
    }

    for env_var, mapping in ENV_MAPPING.items():
        value = _get_env_value(env_var, mapping)
        if value is not None:
            section = mapping[0]
            key = mapping[1]
            config_dict[section][key] = value

    return AppConfig(**config_dict)


def load_config(config_path: str) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Validated AppConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config validation fails
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path, "r") as f:
        raw_config = yaml.safe_load(f) or {}

    # Support environment variable substitution
    raw_config = _substitute_env_vars(raw_config)

    return AppConfig(**raw_config)


def get_config(config_path: Optional[str] = None) -> AppConfig:
    """Get configuration from config file or environment variables.

    Priority:
    1. Config file (if path provided and file exists)
    2. Environment variables
    3. Default values (log-only mode if no MQTT_HOST)

    Args:
        config_path: Optional path to YAML config file

    Returns:
        Validated AppConfig instance
    """
    if config_path:
        path = Path(config_path)
        if path.exists():
            return load_config(config_path)

    return load_config_from_env()


def _substitute_env_vars(config):
    """Recursively substitute environment variables in config values.

    Environment variables are referenced as ${VAR_NAME} or $VAR_NAME.
    """
    if isinstance(config, dict):
        return {k: _substitute_env_vars(v) for k, v in config.items()}
    elif isinstance(config, list):
        return [_substitute_env_vars(item) for item in config]
    elif isinstance(config, str):
        # Handle ${VAR_NAME} format
        if config.startswith("${") and config.endswith("}"):
            var_name = config[2:-1]
            return os.environ.get(var_name, config)
        # Handle $VAR_NAME format
        elif config.startswith("$") and not config.startswith("${"):
            var_name = config[1:]
            return os.environ.get(var_name, config)
        return config
    else:
        return config


def create_default_config() -> str:
    """Generate default configuration as YAML string."""
    config = AppConfig()
    return yaml.dump(
        config.model_dump(mode="json", exclude_none=True),
        default_flow_style=False,
        sort_keys=False,
    )


def print_env_help() -> str:
    """Generate help text for environment variables."""
    lines = [
        "Environment Variables:",
        "",
        "  Serial Port:",
        "    SERIAL_PORT          Serial device path (default: /dev/ttyUSB0)",
        f"    SERIAL_BAUDRATE      Baud rate (default: {DEFAULT_BAUDRATE})",
        "",
        "  TC-720:",
        "    TEC_POLL_INTERVAL     Poll interval seconds (default: 5)",
        "    TEC_RESPONSE_TIMEOUT  Response timeout seconds (default: 5)",
        "    TEC_MAX_ATTEMPTS      Sends per command on device rejects (default: 5)",
        "    TEC_STRICT_STATE      Error on set while disabled (default: false)",
        "    TEC_ENABLE_ON_START   Enable output after connect (default: false)",
        "    TEC_INITIAL_SETPOINT  Setpoint in C applied on start (optional)",
        "",
        "  MQTT (omit MQTT_HOST for log-only mode):",
        "    MQTT_HOST             Broker hostname/IP",
        "    MQTT_PORT             Broker port (default: 1883)",
        "    MQTT_USERNAME         Username (optional)",
        "    MQTT_PASSWORD         Password (optional)",
        "    MQTT_CLIENT_ID        Client ID (default: tec2mqtt)",
        "    MQTT_DISCOVERY_PREFIX HA discovery prefix (default: homeassistant)",
        "    MQTT_TOPIC_PREFIX     Topic prefix (default: tec2mqtt)",
        "",
        "  Control:",
        "    CONTROL_ENABLED       Accept MQTT commands (default: false)",
        "    CONTROL_RATE_LIMIT    Seconds between commands (default: 1)",
        "",
        "  Logging:",
        "    LOG_LEVEL            DEBUG, INFO, WARNING, ERROR (default: INFO)",
    ]
    return "\n".join(lines)
