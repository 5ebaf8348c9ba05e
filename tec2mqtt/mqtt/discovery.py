"""Home Assistant MQTT Discovery configuration."""

import logging
from typing import Any

from ..config import MQTTConfig
from ..protocol.constants import PARAMETER_MIN, PARAMETER_MAX
from .client import MQTTClient

logger = logging.getLogger(__name__)

SENSORS = [
    {
        "name": "Temperature",
        "entity_id": "temperature",
        "state_key": "temperature",
        "unit_of_measurement": "°C",
        "device_class": "temperature",
        "state_class": "measurement",
    },
    {
        "name": "Setpoint",
        "entity_id": "setpoint",
        "state_key": "setpoint",
        "unit_of_measurement": "°C",
        "device_class": "temperature",
        "icon": "mdi:target",
    },
    {
        "name": "Deviation",
        "entity_id": "deviation",
        "state_key": "deviation",
        "unit_of_measurement": "°C",
        "state_class": "measurement",
        "icon": "mdi:delta",
    },
]

BINARY_SENSORS = [
    {
        "name": "Output Enabled",
        "entity_id": "output_enabled",
        "state_key": "output_enabled",
        "device_class": "running",
    },
    {
        "name": "Temperature Settled",
        "entity_id": "settled",
        "state_key": "settled",
        "icon": "mdi:thermometer-check",
    },
    {
        "name": "Communication Lost",
        "entity_id": "comms_lost",
        "state_key": "comms_lost",
        "device_class": "problem",
    },
]


class DiscoveryManager:
    """Manager for Home Assistant MQTT Discovery.

    Publishes discovery configs so the controller shows up as a device
    in Home Assistant.
    """

    def __init__(
        self,
        mqtt_client: MQTTClient,
        config: MQTTConfig,
        control_enabled: bool = False,
    ):
        """Initialize the discovery manager.

        Args:
            mqtt_client: Connected MQTT client
            config: MQTT configuration
            control_enabled: Whether to publish setpoint/output controls
        """
        self.client = mqtt_client
        self.config = config
        self.control_enabled = control_enabled
        self._node_id = config.client_id
        self._device_info = {
            "identifiers": [self._node_id],
            "name": "TC-720 TEC Controller",
            "manufacturer": "TE Technology",
            "model": "TC-720",
        }

    def _discovery_topic(self, component: str, entity_id: str) -> str:
        """Build {discovery_prefix}/{component}/{node}/{entity}/config."""
        return f"{self.config.discovery_prefix}/{component}/{self._node_id}/{entity_id}/config"

    def _base_config(self, name: str, entity_id: str) -> dict[str, Any]:
        """Build the fields shared by every entity."""
        return {
            "name": name,
            "unique_id": f"{self._node_id}_{entity_id}",
            "availability_topic": self.client.availability_topic,
            "payload_available": "online",
            "payload_not_available": "offline",
            "device": self._device_info,
        }

    def build_configs(self) -> list[tuple[str, dict[str, Any]]]:
        """Build (topic, config) pairs for every entity."""
        configs = []

        for sensor in SENSORS:
            config = self._base_config(sensor["name"], sensor["entity_id"])
            config["state_topic"] = self.client.topic(sensor["state_key"])
            for key in ("unit_of_measurement", "device_class", "state_class", "icon"):
                if key in sensor:
                    config[key] = sensor[key]
            configs.append((self._discovery_topic("sensor", sensor["entity_id"]), config))

        for sensor in BINARY_SENSORS:
            config = self._base_config(sensor["name"], sensor["entity_id"])
            config["state_topic"] = self.client.topic(sensor["state_key"])
            config["payload_on"] = "true"
            config["payload_off"] = "false"
            for key in ("device_class", "icon"):
                if key in sensor:
                    config[key] = sensor[key]
            configs.append((self._discovery_topic("binary_sensor", sensor["entity_id"]), config))

        if self.control_enabled:
            number = self._base_config("Setpoint Control", "setpoint_control")
            number.update({
                "command_topic": self.client.command_topic("setpoint"),
                "state_topic": self.client.topic("setpoint"),
                "min": PARAMETER_MIN,
                "max": PARAMETER_MAX,
                "step": 0.01,
                "unit_of_measurement": "°C",
                "mode": "box",
                "icon": "mdi:thermometer",
            })
            configs.append((self._discovery_topic("number", "setpoint_control"), number))

            switch = self._base_config("Output", "output_switch")
            switch.update({
                "command_topic": self.client.command_topic("output"),
                "state_topic": self.client.topic("output_enabled"),
                "payload_on": "ON",
                "payload_off": "OFF",
                "state_on": "true",
                "state_off": "false",
                "icon": "mdi:power",
            })
            configs.append((self._discovery_topic("switch", "output_switch"), switch))

        return configs

    async def publish_discovery_configs(self) -> None:
        """Publish all discovery configs to Home Assistant."""
        logger.info("Publishing Home Assistant discovery configs")
        configs = self.build_configs()
        for topic, config in configs:
            await self.client.publish_json(topic, config, retain=True)
        logger.info(f"Published {len(configs)} discovery configs")

    async def remove_discovery_configs(self) -> None:
        """Remove all discovery configs from Home Assistant."""
        logger.info("Removing Home Assistant discovery configs")
        for topic, _ in self.build_configs():
            await self.client.publish(topic, "", retain=True)
