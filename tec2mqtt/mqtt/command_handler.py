"""MQTT command handler for TC-720 control operations.

Processes incoming MQTT commands, validates them, and hands them to the
session through a callback.
"""

import asyncio
import logging
import time
from typing import Optional, Callable, Awaitable

from pydantic import BaseModel, ValidationError

from ..config import ControlConfig
from ..models import CommandResult, validate_command

logger = logging.getLogger(__name__)

# Called with (command_type, validated model); returns True if applied
ExecuteCommandCallback = Callable[[str, BaseModel], Awaitable[bool]]


class CommandHandler:
    """Handle incoming MQTT commands and route them to the session.

    Validates commands and applies rate limiting between them.
    """

    SUPPORTED_COMMANDS = {
        "setpoint",
        "output",
    }

    def __init__(self, config: ControlConfig):
        """Initialize the command handler.

        Args:
            config: Control configuration
        """
        self._config = config
        self._last_command_time: Optional[float] = None
        self._execute_callback: Optional[ExecuteCommandCallback] = None
        self._result_callback: Optional[Callable[[CommandResult], Awaitable[None]]] = None

    def set_execute_callback(self, callback: ExecuteCommandCallback) -> None:
        """Set the callback that applies a validated command."""
        self._execute_callback = callback

    def set_result_callback(
        self,
        callback: Callable[[CommandResult], Awaitable[None]],
    ) -> None:
        """Set the callback for publishing command results."""
        self._result_callback = callback

    async def handle_message(self, topic: str, payload: bytes) -> Optional[CommandResult]:
        """Handle an incoming MQTT command message.

        Args:
            topic: MQTT topic (e.g., 'tec2mqtt/tec/set/setpoint')
            payload: Raw payload bytes

        Returns:
            CommandResult if command was processed, None if ignored
        """
        # Expected format: {prefix}/tec/set/{command_type}
        parts = topic.split("/")
        if len(parts) < 4 or parts[-2] != "set":
            logger.debug(f"Ignoring non-command topic: {topic}")
            return None

        command_type = parts[-1]

        if not self._config.enabled:
            logger.warning(f"Control disabled, ignoring command: {command_type}")
            return await self._finish(CommandResult(
                success=False,
                command=command_type,
                message="Control features are disabled",
            ))

        if command_type not in self.SUPPORTED_COMMANDS:
            logger.warning(f"Unknown command type: {command_type}")
            return await self._finish(CommandResult(
                success=False,
                command=command_type,
                message=f"Unknown command: {command_type}",
            ))

        try:
            payload_str = payload.decode("utf-8").strip()
        except UnicodeDecodeError:
            logger.error(f"Invalid UTF-8 payload for {command_type}")
            return await self._finish(CommandResult(
                success=False,
                command=command_type,
                message="Invalid payload encoding",
            ))

        logger.info(f"Received command: {command_type} = {payload_str}")

        try:
            validated = validate_command(command_type, payload_str)
        except (ValueError, ValidationError) as e:
            logger.error(f"Validation error for {command_type}: {e}")
            return await self._finish(CommandResult(
                success=False,
                command=command_type,
                message=str(e),
                value=payload_str,
            ))

        await self._rate_limit(command_type)

        if not self._execute_callback:
            logger.error("No execute callback configured")
            return await self._finish(CommandResult(
                success=False,
                command=command_type,
                message="No execute callback configured",
                value=payload_str,
            ))

        try:
            applied = await self._execute_callback(command_type, validated)
        except Exception as e:
            logger.error(f"Error executing command {command_type}: {e}")
            result = CommandResult(
                success=False,
                command=command_type,
                message=f"Execution error: {e}",
                value=payload_str,
            )
        else:
            result = CommandResult(
                success=applied,
                command=command_type,
                message="Command applied" if applied else "Command ignored by controller state",
                value=payload_str,
            )
        finally:
            self._last_command_time = time.monotonic()

        return await self._finish(result)

    async def _rate_limit(self, command_type: str) -> None:
        if self._last_command_time is None:
            return
        elapsed = time.monotonic() - self._last_command_time
        if elapsed < self._config.rate_limit_seconds:
            wait_time = self._config.rate_limit_seconds - elapsed
            logger.warning(f"Rate limit: waiting {wait_time:.1f}s before {command_type}")
            await asyncio.sleep(wait_time)

    async def _finish(self, result: CommandResult) -> CommandResult:
        if self._result_callback:
            await self._result_callback(result)
        return result
