"""Tests for configuration loading."""

import pytest
import yaml
from pydantic import ValidationError

from tec2mqtt.config import (
    AppConfig,
    get_config,
    load_config,
    load_config_from_env,
    create_default_config,
    print_env_help,
)


class TestDefaults:
    """Tests for default configuration values."""

    def test_serial_defaults(self):
        """Test the TC-720 line settings: 230400 8N1."""
        config = AppConfig()
        assert config.serial.baudrate == 230400
        assert config.serial.databits == 8
        assert config.serial.stopbits == 1
        assert config.serial.parity_char == "N"

    def test_tec_defaults(self):
        """Test controller defaults."""
        tec = AppConfig().tec
        assert tec.response_timeout == 5.0
        assert tec.max_attempts == 5
        assert tec.strict_state is False
        assert tec.pid.proportional_bandwidth == 2.25

    def test_mqtt_disabled_without_host(self):
        """Test log-only mode is the default."""
        assert not AppConfig().mqtt.enabled

    def test_invalid_max_attempts(self):
        """Test at least one attempt is required."""
        with pytest.raises(ValidationError):
            AppConfig(tec={"max_attempts": 0})


class TestEnvironment:
    """Tests for environment variable configuration."""

    def test_env_values(self, monkeypatch):
        """Test values are read and converted from the environment."""
        monkeypatch.setenv("SERIAL_PORT", "/dev/ttyACM0")
        monkeypatch.setenv("TEC_MAX_ATTEMPTS", "3")
        monkeypatch.setenv("TEC_STRICT_STATE", "yes")
        monkeypatch.setenv("MQTT_HOST", "broker.local")
        monkeypatch.setenv("CONTROL_ENABLED", "true")

        config = load_config_from_env()
        assert config.serial.port == "/dev/ttyACM0"
        assert config.tec.max_attempts == 3
        assert config.tec.strict_state is True
        assert config.mqtt.enabled
        assert config.control.enabled

    def test_empty_host_means_disabled(self, monkeypatch):
        """Test an empty MQTT_HOST keeps log-only mode."""
        monkeypatch.setenv("MQTT_HOST", "")
        assert not load_config_from_env().mqtt.enabled


class TestYamlFile:
    """Tests for YAML configuration files."""

    def test_load_config(self, tmp_path, monkeypatch):
        """Test a YAML file with environment substitution."""
        monkeypatch.setenv("TEC_PORT", "/dev/ttyS9")
        path = tmp_path / "config.yaml"
        path.write_text(
            "serial:\n"
            "  port: ${TEC_PORT}\n"
            "tec:\n"
            "  poll_interval: 2\n"
            "  pid:\n"
            "    derivative_gain: 0\n"
        )

        config = load_config(str(path))
        assert config.serial.port == "/dev/ttyS9"
        assert config.tec.poll_interval == 2
        assert config.tec.pid.derivative_gain == 0
        assert config.tec.pid.integral_gain == 1.0

    def test_missing_file(self, tmp_path):
        """Test a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_get_config_falls_back_to_env(self, tmp_path, monkeypatch):
        """Test a missing file path falls back to the environment."""
        monkeypatch.setenv("SERIAL_PORT", "/dev/ttyENV")
        config = get_config(str(tmp_path / "nope.yaml"))
        assert config.serial.port == "/dev/ttyENV"

    def test_default_config_round_trips(self, tmp_path):
        """Test the generated default file loads back."""
        text = create_default_config()
        assert yaml.safe_load(text)["serial"]["baudrate"] == 230400

        path = tmp_path / "config.yaml"
        path.write_text(text)
        assert load_config(str(path)) == AppConfig()


def test_env_help_mentions_variables():
    """Test the help text lists the TC-720 variables."""
    text = print_env_help()
    assert "SERIAL_PORT" in text
    assert "TEC_MAX_ATTEMPTS" in text
