"""Async MQTT client wrapper."""

import json
import logging
from typing import Optional, Any, Callable, Awaitable

import aiomqtt

from ..config import MQTTConfig

logger = logging.getLogger(__name__)

# Type alias for message callback
MessageCallback = Callable[[str, bytes], Awaitable[None]]

# Every topic lives under {topic_prefix}/tec/...
DEVICE_NODE = "tec"


class MQTTClient:
    """Async MQTT client for the TEC bridge.

    Wraps aiomqtt with a last-will availability topic, JSON publishing and
    the command topic tree under ``{prefix}/tec/set``.
    """

    def __init__(self, config: MQTTConfig):
        """Initialize the MQTT client.

        Args:
            config: MQTT configuration
        """
        self.config = config
        self._client: Optional[aiomqtt.Client] = None
        self._connected = False

    @property
    def connected(self) -> bool:
        """Check if connected to MQTT broker."""
        return self._connected

    def topic(self, *parts: str) -> str:
        """Build a device topic: {prefix}/tec/{parts...}."""
        return "/".join([self.config.topic_prefix, DEVICE_NODE, *parts])

    def command_topic(self, command: str) -> str:
        """Build a command topic: {prefix}/tec/set/{command}."""
        return self.topic("set", command)

    @property
    def availability_topic(self) -> str:
        """Get the availability topic."""
        return self.topic("availability")

    async def connect(self) -> None:
        """Connect to the MQTT broker.

        Raises:
            MqttError: If connection fails
        """
        logger.info(f"Connecting to MQTT broker at {self.config.host}:{self.config.port}")

        self._client = aiomqtt.Client(
            hostname=self.config.host,
            port=self.config.port,
            username=self.config.username,
            password=self.config.password,
            identifier=self.config.client_id,
            will=aiomqtt.Will(
                topic=self.availability_topic,
                payload="offline",
                qos=self.config.qos,
                retain=True,
            ),
        )
        try:
            await self._client.__aenter__()
        except aiomqtt.MqttError as e:
            logger.error(f"Failed to connect to MQTT broker: {e}")
            self._client = None
            raise

        self._connected = True
        logger.info("Connected to MQTT broker")

    async def disconnect(self) -> None:
        """Publish offline availability and disconnect."""
        if not self._client:
            return

        try:
            await self.publish_availability("offline")
        except aiomqtt.MqttError as e:
            logger.warning(f"Could not publish offline status: {e}")

        try:
            await self._client.__aexit__(None, None, None)
        except aiomqtt.MqttError as e:
            logger.warning(f"Error while disconnecting from MQTT broker: {e}")

        self._client = None
        self._connected = False
        logger.info("Disconnected from MQTT broker")

    async def reconnect(self) -> None:
        """Drop the current connection and connect again."""
        await self.disconnect()
        await self.connect()

    @staticmethod
    def encode_payload(payload: Any) -> str:
        """Render a payload the way Home Assistant expects it."""
        if isinstance(payload, (dict, list)):
            return json.dumps(payload)
        if isinstance(payload, bool):
            return "true" if payload else "false"
        if payload is None:
            return ""
        return str(payload)

    async def publish(
        self,
        topic: str,
        payload: Any,
        retain: Optional[bool] = None,
        qos: Optional[int] = None,
    ) -> None:
        """Publish a message to a topic.

        Args:
            topic: MQTT topic
            payload: Message payload (JSON-encoded if dict/list)
            retain: Whether to retain the message (default from config)
            qos: QoS level (default from config)
        """
        if not self._client or not self._connected:
            raise ConnectionError("Not connected to MQTT broker")

        payload_str = self.encode_payload(payload)
        await self._client.publish(
            topic,
            payload=payload_str,
            qos=self.config.qos if qos is None else qos,
            retain=self.config.retain if retain is None else retain,
        )
        logger.debug(f"Published to {topic}: {payload_str[:100]}")

    async def publish_json(
        self,
        topic: str,
        data: dict,
        retain: Optional[bool] = None,
    ) -> None:
        """Publish a dictionary as JSON."""
        await self.publish(topic, data, retain=retain)

    async def publish_availability(self, status: str) -> None:
        """Publish availability status ("online" or "offline")."""
        await self.publish(self.availability_topic, status, retain=True)
        logger.info(f"Published availability: {status}")

    async def subscribe_commands(self) -> None:
        """Subscribe to {prefix}/tec/set/#."""
        if not self._client or not self._connected:
            raise ConnectionError("Not connected to MQTT broker")

        topic = self.command_topic("#")
        await self._client.subscribe(topic, qos=self.config.qos)
        logger.info(f"Subscribed to command topics: {topic}")

    def extract_command_name(self, topic: str) -> Optional[str]:
        """Get 'setpoint' out of '{prefix}/tec/set/setpoint', else None."""
        prefix = self.command_topic("")
        if topic.startswith(prefix) and len(topic) > len(prefix):
            return topic[len(prefix):]
        return None

    async def message_loop(self, callback: MessageCallback) -> None:
        """Feed command messages to a callback until disconnected.

        Args:
            callback: Async function called with (topic, payload)
        """
        if not self._client or not self._connected:
            raise ConnectionError("Not connected to MQTT broker")

        logger.debug("Starting MQTT message loop")

        async for message in self._client.messages:
            topic = str(message.topic)
            if self.extract_command_name(topic) is None:
                continue

            if isinstance(message.payload, bytes):
                payload = message.payload
            else:
                payload = str(message.payload).encode()

            logger.debug(f"Received message on {topic}: {payload[:100]}")

            try:
                await callback(topic, payload)
            except Exception as e:
                logger.error(f"Error processing message on {topic}: {e}")
