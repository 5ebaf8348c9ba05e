"""State publisher for MQTT."""

import logging
from datetime import datetime
from typing import Optional

from ..models.tec import TECState
from ..models.commands import CommandResult
from .client import MQTTClient

logger = logging.getLogger(__name__)


class StatePublisher:
    """Publisher for TC-720 state to MQTT.

    Publishes both individual values and a complete JSON state object.
    """

    def __init__(self, mqtt_client: MQTTClient):
        """Initialize the state publisher.

        Args:
            mqtt_client: Connected MQTT client
        """
        self.client = mqtt_client
        self._last_state: Optional[TECState] = None

    async def publish_state(self, state: TECState) -> None:
        """Publish the complete controller state.

        Args:
            state: Current TC-720 state
        """
        state.last_update = datetime.now()
        data = state.to_mqtt_dict()

        await self.client.publish_json(self.client.topic("status"), data)

        for key in ("temperature", "setpoint", "deviation", "output_enabled", "settled", "comms_lost"):
            await self.client.publish(self.client.topic(key), data[key])

        self._last_state = state
        logger.debug("Published TC-720 state")

    async def publish_comms_error(self) -> None:
        """Publish communication error state.

        Called when the controller doesn't respond within timeout.
        """
        logger.warning("Publishing communication error state")

        await self.client.publish(self.client.topic("comms_lost"), True)

        if self._last_state:
            self._last_state.comms_lost = True
            await self.client.publish_json(
                self.client.topic("status"),
                self._last_state.to_mqtt_dict(),
            )

    async def publish_comms_restored(self) -> None:
        """Publish communication restored state."""
        logger.info("Communication restored")
        await self.client.publish(self.client.topic("comms_lost"), False)

    async def publish_command_result(self, result: CommandResult) -> None:
        """Publish the outcome of an MQTT command."""
        await self.client.publish_json(
            self.client.topic("command_result"),
            result.to_json(),
            retain=False,
        )

    @property
    def last_state(self) -> Optional[TECState]:
        """Get the last published state."""
        return self._last_state
