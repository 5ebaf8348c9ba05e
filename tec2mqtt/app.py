"""Main application orchestrator for TEC2MQTT."""

import asyncio
import logging
import signal
from datetime import datetime
from typing import Optional, Union

import aiomqtt
from pydantic import BaseModel

from .config import AppConfig, get_config
from .exceptions import TECError
from .models import TECState, CommandResult
from .mqtt.client import MQTTClient
from .mqtt.command_handler import CommandHandler
from .mqtt.discovery import DiscoveryManager
from .mqtt.publisher import StatePublisher
from .session import TECSession
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)


def _resolve_config(config: Union[AppConfig, str, None]) -> AppConfig:
    if isinstance(config, AppConfig):
        return config
    return get_config(config)


class TEC2MQTT:
    """Main application class.

    Polls the TC-720 over serial and publishes its state to MQTT, and
    applies setpoint/output commands received over MQTT.
    """

    def __init__(
        self,
        config: Union[AppConfig, str, None] = None,
        session: Optional[TECSession] = None,
    ):
        """Initialize the application.

        Args:
            config: AppConfig instance, path to YAML config file, or None for env/defaults
            session: Session to use instead of one built from the config
        """
        self.config = _resolve_config(config)
        self.session = session or TECSession(self.config.serial, self.config.tec)

        self.running = False
        self._shutdown_event = asyncio.Event()
        self._mqtt_enabled = self.config.mqtt.enabled
        self._control_enabled = self.config.control.enabled

        # Components (initialized in start())
        self.mqtt: Optional[MQTTClient] = None
        self.discovery: Optional[DiscoveryManager] = None
        self.publisher: Optional[StatePublisher] = None
        self.command_handler: Optional[CommandHandler] = None

        self._last_state: Optional[TECState] = None
        self._stats = {
            "polls": 0,
            "successful_polls": 0,
            "failed_polls": 0,
            "commands_applied": 0,
            "commands_failed": 0,
            "last_success": None,
            "start_time": None,
        }

    async def start(self) -> None:
        """Start the application.

        Connects to the MQTT broker (if configured) and the controller,
        then runs the polling loop until shutdown.
        """
        setup_logging(
            level=self.config.logging.level,
            log_file=self.config.logging.file,
            format_string=self.config.logging.format,
        )

        logger.info("Starting TEC2MQTT")
        self._stats["start_time"] = datetime.now()
        self.running = True

        if not self._mqtt_enabled:
            logger.info("MQTT not configured - running in LOG-ONLY mode")

        self._setup_signal_handlers()

        try:
            if self._mqtt_enabled:
                await self._start_mqtt()

            await self.session.connect(self.config.serial.port)
            await self._apply_startup_state()

            logger.info(f"Starting poll loop (interval={self.config.tec.poll_interval}s)")
            if self.command_handler:
                # The MQTT message loop never ends on its own
                message_task = asyncio.create_task(self._message_loop())
                try:
                    await self._poll_loop()
                finally:
                    message_task.cancel()
                    await asyncio.gather(message_task, return_exceptions=True)
            else:
                await self._poll_loop()

        except asyncio.CancelledError:
            logger.info("Application cancelled")
        except Exception as e:
            logger.error(f"Application error: {e}", exc_info=True)
            raise
        finally:
            await self.stop()

    async def _start_mqtt(self) -> None:
        self.mqtt = MQTTClient(self.config.mqtt)
        await self.mqtt.connect()
        await self.mqtt.publish_availability("online")

        self.discovery = DiscoveryManager(
            self.mqtt,
            self.config.mqtt,
            control_enabled=self._control_enabled,
        )
        await self.discovery.publish_discovery_configs()
        self.publisher = StatePublisher(self.mqtt)

        if self._control_enabled:
            logger.info("Control features ENABLED")
            self.command_handler = CommandHandler(self.config.control)
            self.command_handler.set_execute_callback(self.execute_command)
            self.command_handler.set_result_callback(self._publish_command_result)
            await self.mqtt.subscribe_commands()

    async def _apply_startup_state(self) -> None:
        tec = self.config.tec
        if not tec.enable_on_start:
            return
        await self.session.enable()
        if tec.initial_setpoint is not None:
            await self.session.set_temperature(tec.initial_setpoint)

    async def poll_once(self) -> TECState:
        """Read the controller once and build a state snapshot."""
        temperature = await self.session.read_temperature_value()
        setpoint = self.session.read_temperature_setpoint()
        settled = None
        if setpoint is not None:
            settled = await self.session.temperature_settled(temperature)

        return TECState(
            temperature=temperature,
            setpoint=setpoint,
            output_enabled=self.session.enabled,
            settled=settled,
        )

    async def _poll_loop(self) -> None:
        """Periodically read the controller and publish the result."""
        was_comms_lost = False

        while self.running and not self._shutdown_event.is_set():
            self._stats["polls"] += 1

            try:
                state = await self.poll_once()
                self._stats["successful_polls"] += 1
                self._stats["last_success"] = datetime.now()
                self._last_state = state

                logger.info(
                    f"T={state.temperature:.2f}C setpoint={state.setpoint} "
                    f"output={'ON' if state.output_enabled else 'OFF'} settled={state.settled}"
                )

                if self.publisher:
                    await self.publisher.publish_state(state)
                    if was_comms_lost:
                        await self.publisher.publish_comms_restored()
                was_comms_lost = False

            except TECError as e:
                logger.warning(f"Poll failed: {e}")
                self._stats["failed_polls"] += 1
                if self.publisher and not was_comms_lost:
                    await self.publisher.publish_comms_error()
                was_comms_lost = True

            except aiomqtt.MqttError as e:
                logger.error(f"MQTT error during poll: {e}")
                try:
                    logger.info("Attempting MQTT reconnection...")
                    await self.mqtt.reconnect()
                    await self.mqtt.publish_availability("online")
                    logger.info("MQTT reconnection successful")
                except aiomqtt.MqttError as reconnect_error:
                    logger.error(f"MQTT reconnection failed: {reconnect_error}")

            try:
                await asyncio.wait_for(
                    self._shutdown_event.wait(),
                    timeout=self.config.tec.poll_interval,
                )
                break
            except asyncio.TimeoutError:
                continue

    async def _message_loop(self) -> None:
        """Process MQTT commands alongside the poll loop."""
        try:
            await self.mqtt.message_loop(self.command_handler.handle_message)
        except asyncio.CancelledError:
            logger.debug("Message loop cancelled")
        except aiomqtt.MqttError as e:
            logger.error(f"Message loop error: {e}")

    async def execute_command(self, command_type: str, validated: BaseModel) -> bool:
        """Apply a validated MQTT command to the session.

        Returns:
            True if the controller accepted the change
        """
        try:
            if command_type == "output":
                if validated.enabled:
                    await self.session.enable()
                else:
                    await self.session.disable()
                applied = True
            elif command_type == "setpoint":
                applied = await self.session.set_temperature(validated.value)
            else:
                raise ValueError(f"Unsupported command: {command_type}")
        except Exception:
            self._stats["commands_failed"] += 1
            raise

        if applied:
            self._stats["commands_applied"] += 1
        return applied

    async def _publish_command_result(self, result: CommandResult) -> None:
        if not self.publisher:
            return
        try:
            await self.publisher.publish_command_result(result)
        except aiomqtt.MqttError as e:
            logger.error(f"Failed to publish command result: {e}")

    async def stop(self) -> None:
        """Stop the application, leaving the controller output disabled."""
        logger.info("Stopping TEC2MQTT")
        self.running = False
        self._shutdown_event.set()

        if self.session.connected:
            try:
                await self.session.disable()
            except TECError as e:
                logger.error(f"Could not disable output on shutdown: {e}")
            await self.session.close_port()

        if self.mqtt:
            await self.mqtt.disconnect()
            self.mqtt = None

        logger.info(
            f"Statistics: polls={self._stats['polls']}, "
            f"success={self._stats['successful_polls']}, "
            f"failed={self._stats['failed_polls']}"
        )
        logger.info("TEC2MQTT stopped")

    def request_shutdown(self) -> None:
        """Ask the poll loop to finish."""
        self._shutdown_event.set()

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        def signal_handler(sig):
            logger.info(f"Received signal {sig.name}, initiating shutdown")
            self.request_shutdown()

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
            except NotImplementedError:
                logger.debug(f"Signal handlers not supported for {sig.name}")

    @property
    def last_state(self) -> Optional[TECState]:
        """Get the last polled state."""
        return self._last_state

    @property
    def stats(self) -> dict:
        """Get application statistics."""
        return {
            **self._stats,
            "uptime": (
                str(datetime.now() - self._stats["start_time"])
                if self._stats["start_time"]
                else None
            ),
            "session": self.session.stats,
        }


async def run_app(config: Union[AppConfig, str, None] = None) -> None:
    """Run the bridge until interrupted."""
    app = TEC2MQTT(config)
    await app.start()


async def run_demo(
    temperature: float,
    config: Union[AppConfig, str, None] = None,
    session: Optional[TECSession] = None,
) -> float:
    """Connect, enable, set a temperature, read it back once and close.

    Returns:
        The temperature read back from the controller
    """
    config = _resolve_config(config)
    setup_logging(level=config.logging.level, format_string=config.logging.format)

    tec = session or TECSession(config.serial, config.tec)
    await tec.connect(config.serial.port)
    try:
        await tec.enable()
        await tec.set_temperature(temperature)
        actual = await tec.read_temperature_value()
        logger.info(f"Setpoint {temperature}C, actual {actual}C")
        await tec.disable()
        return actual
    finally:
        await tec.close_port()
