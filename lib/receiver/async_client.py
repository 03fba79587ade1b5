"""Asynchronous wrapper around the receiver connection manager."""

import asyncio
from concurrent.futures import ThreadPoolExecutor

from lib.receiver.connection import (
    DEFAULT_DRAIN_TIMEOUT,
    DEFAULT_MAX_DRAIN_FRAMES,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    Connection,
)
from lib.receiver.exceptions import TelnetError
from lib.receiver.slot import ConnectionSlot


class AsyncReceiverClient:
    """Asynchronous receiver client.

    Non-blocking wrapper around :class:`Connection`. Blocking calls run on a
    single worker thread and the connection lives in a
    :class:`ConnectionSlot`, so commands reach the receiver one at a time.
    """

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_TIMEOUT,
        drain_timeout: float = DEFAULT_DRAIN_TIMEOUT,
        max_drain_frames: int = DEFAULT_MAX_DRAIN_FRAMES,
        introspect: bool = True,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        """Initialize asynchronous receiver client.

        Parameters
        ----------
        host : str
            Receiver host name or IP address
        port : int, optional
            Telnet port, by default 23
        timeout : float, optional
            Connect and first-reply timeout in seconds, by default 2.0
        drain_timeout : float, optional
            Idle gap in seconds that ends a burst, by default 0.5
        max_drain_frames : int, optional
            Upper bound on frames collected per burst, by default 1000
        introspect : bool, optional
            Discover supported commands after connecting, by default True
        executor : ThreadPoolExecutor | None, optional
            Thread pool executor for running blocking operations, by default None
        """
        self.host = host
        self.port = port
        self.timeout = timeout
        self.drain_timeout = drain_timeout
        self.max_drain_frames = max_drain_frames
        self.introspect = introspect
        self.reconnect_count = 0

        self._slot = ConnectionSlot()
        self._executor = executor or ThreadPoolExecutor(max_workers=1)
        self._lock = asyncio.Lock()

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, func, *args)

    def _open(self) -> Connection:
        connection = Connection(
            self.host,
            port=self.port,
            timeout=self.timeout,
            drain_timeout=self.drain_timeout,
            max_drain_frames=self.max_drain_frames,
        ).connect()
        if self.introspect:
            try:
                connection.introspect()
            except TelnetError:
                connection.disconnect()
                raise
        return connection

    def _connect_blocking(self) -> None:
        current = self._slot.connection
        if current is not None and current.connected:
            return
        self._slot.replace(self._open())

    def _send_blocking(self, command: str) -> str:
        with self._slot.hold() as connection:
            return connection.send_command(command)

    def _reconnect_blocking(self) -> None:
        if self._slot.connection is None:
            self._slot.replace(self._open())
        else:
            self._slot.reconnect()

    async def connect(self) -> None:
        """Connect (and introspect, if enabled) unless already connected."""
        async with self._lock:
            await self._run(self._connect_blocking)

    async def send_command(self, command: str) -> str:
        """Send a raw command and return the drained reply.

        Raises
        ------
        ConnectError
            If not connected
        """
        async with self._lock:
            return await self._run(self._send_blocking, command)

    async def reconnect(self) -> None:
        """Replace the connection with a new one to the same receiver."""
        async with self._lock:
            await self._run(self._reconnect_blocking)
            self.reconnect_count += 1

    async def disconnect(self) -> None:
        """Disconnect from the receiver."""
        async with self._lock:
            await self._run(self._slot.clear)

    @property
    def connection(self) -> Connection | None:
        """Current connection, if any."""
        return self._slot.connection

    @property
    def connected(self) -> bool:
        """Whether a connection is open."""
        connection = self._slot.connection
        return connection is not None and connection.connected

    @property
    def model(self) -> str | None:
        """Receiver model reported in the greeting."""
        connection = self._slot.connection
        return connection.model if connection else None

    @property
    def supported_commands(self) -> frozenset[str] | None:
        """Commands discovered by introspection, or None."""
        connection = self._slot.connection
        return connection.supported_commands if connection else None

    async def __aenter__(self) -> "AsyncReceiverClient":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.disconnect()
