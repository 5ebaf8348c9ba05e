"""Tests for MQTT topics, discovery and state publishing."""

import asyncio
import json

import pytest

from tec2mqtt.config import MQTTConfig
from tec2mqtt.models import CommandResult, TECState
from tec2mqtt.mqtt.client import MQTTClient
from tec2mqtt.mqtt.discovery import DiscoveryManager
from tec2mqtt.mqtt.publisher import StatePublisher


class RecordingClient(MQTTClient):
    """MQTT client that records publishes instead of talking to a broker."""

    def __init__(self, config=None):
        super().__init__(config or MQTTConfig(host="localhost"))
        self.published = []

    async def publish(self, topic, payload, retain=None, qos=None):
        self.published.append((topic, self.encode_payload(payload), retain))

    def payloads(self):
        return {topic: payload for topic, payload, _ in self.published}


class TestTopics:
    """Tests for topic construction."""

    def test_topic_layout(self):
        """Test state, command and availability topics."""
        client = MQTTClient(MQTTConfig(topic_prefix="lab"))
        assert client.topic("temperature") == "lab/tec/temperature"
        assert client.command_topic("setpoint") == "lab/tec/set/setpoint"
        assert client.availability_topic == "lab/tec/availability"

    def test_extract_command_name(self):
        """Test command names are recognised only under the set tree."""
        client = MQTTClient(MQTTConfig())
        assert client.extract_command_name("tec2mqtt/tec/set/output") == "output"
        assert client.extract_command_name("tec2mqtt/tec/set/") is None
        assert client.extract_command_name("tec2mqtt/tec/status") is None

    def test_encode_payload(self):
        """Test payload rendering for Home Assistant."""
        assert MQTTClient.encode_payload(True) == "true"
        assert MQTTClient.encode_payload(None) == ""
        assert MQTTClient.encode_payload(25.04) == "25.04"
        assert json.loads(MQTTClient.encode_payload({"a": 1})) == {"a": 1}

    def test_publish_requires_connection(self):
        """Test publishing before connect raises ConnectionError."""
        client = MQTTClient(MQTTConfig(host="localhost"))

        with pytest.raises(ConnectionError):
            asyncio.run(client.publish("x", "y"))


class TestDiscovery:
    """Tests for Home Assistant discovery configs."""

    def test_read_only_entities(self):
        """Test sensors only when control is disabled."""
        client = RecordingClient()
        configs = dict(DiscoveryManager(client, client.config).build_configs())
        assert "homeassistant/sensor/tec2mqtt/temperature/config" in configs
        assert "homeassistant/binary_sensor/tec2mqtt/settled/config" in configs
        assert not any("/number/" in topic for topic in configs)

        temperature = configs["homeassistant/sensor/tec2mqtt/temperature/config"]
        assert temperature["state_topic"] == "tec2mqtt/tec/temperature"
        assert temperature["availability_topic"] == "tec2mqtt/tec/availability"

    def test_control_entities(self):
        """Test setpoint number and output switch when control is enabled."""
        client = RecordingClient()
        manager = DiscoveryManager(client, client.config, control_enabled=True)
        configs = dict(manager.build_configs())

        number = configs["homeassistant/number/tec2mqtt/setpoint_control/config"]
        assert number["command_topic"] == "tec2mqtt/tec/set/setpoint"
        switch = configs["homeassistant/switch/tec2mqtt/output_switch/config"]
        assert switch["command_topic"] == "tec2mqtt/tec/set/output"

    def test_publish_and_remove(self):
        """Test configs are published retained and removed with empty payloads."""
        client = RecordingClient()
        manager = DiscoveryManager(client, client.config)

        async def scenario():
            await manager.publish_discovery_configs()
            await manager.remove_discovery_configs()

        asyncio.run(scenario())
        count = len(manager.build_configs())
        assert len(client.published) == 2 * count
        assert all(retain for _, _, retain in client.published)
        assert all(payload == "" for _, payload, _ in client.published[count:])


class TestStatePublisher:
    """Tests for StatePublisher."""

    def test_publish_state(self):
        """Test the JSON status and individual keys are published."""
        client = RecordingClient()
        publisher = StatePublisher(client)
        state = TECState(temperature=25.04, setpoint=25.0, output_enabled=True, settled=True)

        asyncio.run(publisher.publish_state(state))
        payloads = client.payloads()
        status = json.loads(payloads["tec2mqtt/tec/status"])
        assert status["temperature"] == 25.04
        assert status["last_update"] is not None
        assert payloads["tec2mqtt/tec/temperature"] == "25.04"
        assert payloads["tec2mqtt/tec/output_enabled"] == "true"
        assert publisher.last_state is state

    def test_comms_error_marks_last_state(self):
        """Test a comms error republishes the last state with comms_lost."""
        client = RecordingClient()
        publisher = StatePublisher(client)

        async def scenario():
            await publisher.publish_state(TECState(temperature=20.0))
            await publisher.publish_comms_error()

        asyncio.run(scenario())
        assert client.published[-2][:2] == ("tec2mqtt/tec/comms_lost", "true")
        assert json.loads(client.published[-1][1])["comms_lost"] is True

    def test_command_result_not_retained(self):
        """Test command results are published without retain."""
        client = RecordingClient()
        publisher = StatePublisher(client)
        result = CommandResult(success=True, command="output", value="ON")

        asyncio.run(publisher.publish_command_result(result))
        topic, payload, retain = client.published[0]
        assert topic == "tec2mqtt/tec/command_result"
        assert json.loads(payload) == {"success": True, "command": "output", "value": "ON"}
        assert retain is False
