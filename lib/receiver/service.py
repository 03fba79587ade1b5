"""Long-running receiver service with health checks and reconnect."""

import asyncio
import signal
import time
from typing import Any

from lib.receiver.async_client import AsyncReceiverClient
from lib.receiver.codec import parse_value
from lib.receiver.commands import COMMANDS, available_commands, build_command, is_operator_valid
from lib.receiver.config import ReceiverConfig, load_config
from lib.receiver.exceptions import (
    CommandError,
    ConnectError,
    StreamError,
    TelnetError,
    TimeoutError,
    UnsupportedCommandError,
)
from lib.receiver.logging import log_error, log_info, log_success, log_warn


class ReceiverService:
    """Long-running service owning the connection to one receiver."""

    def __init__(self, config: ReceiverConfig | None = None) -> None:
        """Initialize receiver service.

        Parameters
        ----------
        config : ReceiverConfig | None, optional
            Service configuration, by default None (loads from environment)

        Raises
        ------
        ConnectError
            If no receiver host is configured
        """
        self.config = config or load_config()
        device = self.config.device
        if not device.host:
            raise ConnectError("No receiver host configured (set RECEIVER_DEVICE__HOST)")

        self.client = AsyncReceiverClient(
            host=device.host,
            port=device.port,
            timeout=device.timeout,
            drain_timeout=device.drain_timeout,
            max_drain_frames=device.max_drain_frames,
            introspect=device.introspect,
        )
        self._running = False
        self._shutdown_event = asyncio.Event()
        self._health_check_task: asyncio.Task | None = None
        self._last_health_check: float | None = None

    @property
    def host(self) -> str:
        """Receiver host."""
        return self.client.host

    @property
    def available_commands(self) -> frozenset[str]:
        """Registry commands the receiver supports.

        Without introspection every registry command is available.
        """
        supported = self.client.supported_commands
        if supported is None:
            return frozenset(COMMANDS) if self.client.connected else frozenset()
        return available_commands(supported)

    async def start(self) -> None:
        """Start the service.

        A receiver that cannot be reached is logged and left to the health
        check loop to reconnect.
        """
        if self._running:
            return

        log_info("Starting receiver service...", device_ip=self.host)
        self._running = True
        self._shutdown_event.clear()

        try:
            await self.client.connect()
        except TelnetError as e:
            log_error(f"Initial connection failed: {e.message}", device_ip=self.host)

        self._health_check_task = asyncio.create_task(self._health_check_loop())
        log_success("Receiver service started", device_ip=self.host)

    async def stop(self) -> None:
        """Stop the service."""
        if not self._running:
            return

        log_info("Stopping receiver service...", device_ip=self.host)
        self._running = False
        self._shutdown_event.set()

        await self.stop_health_checks()
        await self.client.disconnect()

        log_success("Receiver service stopped", device_ip=self.host)

    async def query(self, command_name: str) -> str | None:
        """Query the current value of ``command_name``.

        Returns
        -------
        str | None
            Value reported by the receiver, or None if the reply held no line
            for this command
        """
        response = await self.client.send_command(build_command(command_name, "?"))
        return parse_value(response, command_name)

    async def modify(
        self,
        command_name: str,
        operator: str,
        value: str | None = None,
    ) -> str | None:
        """Set, increment or decrement ``command_name``.

        Some receivers do not echo set commands, so when nothing comes back or
        the reply has no line for the command, its value is queried instead.

        Raises
        ------
        CommandError
            If the operator is not valid for the command, or ``=`` has no value
        """
        if not is_operator_valid(command_name, operator):
            raise CommandError(
                f"Operator '{operator}' is not valid for {command_name}",
                host=self.host,
                command=command_name,
            )
        if operator == "=" and value is None:
            raise CommandError(
                "Operator '=' requires a value",
                host=self.host,
                command=command_name,
            )

        command = build_command(command_name, operator, value)
        try:
            response = await self.client.send_command(command)
        except TimeoutError:
            log_info(f"No confirmation for {command}, querying", device_ip=self.host)
            response = ""

        result = parse_value(response, command_name)
        if result is not None:
            return result

        return await self.query(command_name)

    async def reconnect(self) -> None:
        """Reconnect to the receiver."""
        await self.client.reconnect()

    async def health_check(self) -> bool:
        """Probe the receiver.

        ``health_check_timeout`` only stops waiting: a probe that overruns it
        keeps the worker thread until the connection's own read timeout ends
        it, and a following reconnect queues behind it.

        Returns
        -------
        bool
            True if the connection is open and the probe command was answered
        """
        if not self.client.connected:
            return False

        timeout = self.config.service.health_check_timeout
        try:
            await asyncio.wait_for(
                self.client.send_command(self.config.service.health_check_command),
                timeout=timeout,
            )
        except UnsupportedCommandError:
            log_warn(
                f"Health check command {self.config.service.health_check_command} "
                "is not supported by the receiver",
                device_ip=self.host,
            )
        except (TimeoutError, StreamError, ConnectError, asyncio.TimeoutError) as e:
            log_warn(f"Health check failed: {e}", device_ip=self.host)
            return False

        self._last_health_check = time.time()
        return True

    async def _health_check_loop(self) -> None:
        """Background task for periodic health checks."""
        while self._running:
            try:
                await asyncio.sleep(self.config.service.health_check_interval)

                if await self.health_check():
                    continue

                await asyncio.sleep(self.config.service.reconnect_delay)
                try:
                    await self.client.reconnect()
                except TelnetError as e:
                    log_error(f"Reconnect failed: {e.message}", device_ip=self.host)

            except asyncio.CancelledError:
                break

    async def stop_health_checks(self) -> None:
        """Stop health check background task."""
        if self._health_check_task:
            self._health_check_task.cancel()
            try:
                await self._health_check_task
            except asyncio.CancelledError:
                pass
            self._health_check_task = None

    async def get_status(self) -> dict[str, Any]:
        """Get service status.

        Returns
        -------
        dict[str, Any]
            Service status
        """
        supported = self.client.supported_commands
        return {
            "running": self._running,
            "device": {
                "host": self.client.host,
                "port": self.client.port,
                "connected": self.client.connected,
                "model": self.client.model,
                "introspected": supported is not None,
                "supported_commands": sorted(supported) if supported is not None else None,
                "available_commands": sorted(self.available_commands),
                "reconnect_count": self.client.reconnect_count,
            },
            "health_check_running": self._health_check_task is not None,
            "last_health_check": self._last_health_check,
        }

    def _signal_handler(self) -> None:
        """Handle shutdown signals."""
        asyncio.create_task(self.stop())

    async def run(self) -> None:
        """Run the service until SIGINT/SIGTERM (blocking)."""
        await self.start()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._signal_handler)

        try:
            await self._shutdown_event.wait()
        finally:
            await self.stop()
