"""TC-720 thermoelectric cooler controller driver and MQTT bridge."""

__version__ = "0.1.0"
