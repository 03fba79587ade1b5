"""Connection manager for receiver telnet sessions.

Protocol details:

- The receiver pushes ``Main.Model=<model>`` as soon as the TCP session opens.
- A bare ``?`` makes it dump every ``Name=Value`` pair it knows, with no
  terminator or length prefix.
- Replies may be preceded or interleaved by unsolicited telemetry lines.

Because bursts have no explicit end, replies are drained: frames are read
until the line has been idle for ``drain_timeout`` seconds. Only a timeout on
the first read of a command counts as a failure.
"""

import time

from lib.receiver.codec import (
    FRAME_END,
    INTROSPECT,
    parse_command_name,
    parse_introspection_set,
    parse_value,
    unwrap_response,
    wrap_command,
)
from lib.receiver.exceptions import (
    ConnectError,
    StreamError,
    TelnetError,
    TimeoutError,
    UnsupportedCommandError,
)
from lib.receiver.logging import log_debug, log_info, log_success, log_warn
from lib.receiver.transport import Transport

DEFAULT_PORT = 23
DEFAULT_TIMEOUT = 2.0
DEFAULT_DRAIN_TIMEOUT = 0.5
DEFAULT_MAX_DRAIN_FRAMES = 1000


class Connection:
    """Live session to one receiver.

    Not thread-safe: at most one command may be in flight at a time. Callers
    sharing a receiver between threads hold it in a
    :class:`~lib.receiver.slot.ConnectionSlot`.
    """

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_TIMEOUT,
        drain_timeout: float = DEFAULT_DRAIN_TIMEOUT,
        max_drain_frames: int = DEFAULT_MAX_DRAIN_FRAMES,
    ) -> None:
        """Initialize connection.

        Parameters
        ----------
        host : str
            Receiver host name or IP address
        port : int, optional
            Telnet port, by default 23
        timeout : float, optional
            Connect timeout and first-reply timeout in seconds, by default 2.0
        drain_timeout : float, optional
            Idle gap in seconds that ends a multi-line burst, by default 0.5
        max_drain_frames : int, optional
            Upper bound on frames collected per burst, by default 1000
        """
        self.host = host
        self.port = port
        self.timeout = timeout
        self.drain_timeout = drain_timeout
        self.max_drain_frames = max_drain_frames
        self.transport: Transport | None = None
        self.model: str | None = None
        self.supported_commands: frozenset[str] | None = None
        self.introspected = False

    @property
    def connected(self) -> bool:
        """Whether the transport is open."""
        return self.transport is not None and self.transport.is_open

    def connect(self) -> "Connection":
        """Open the transport and read the receiver's greeting.

        Returns
        -------
        Connection
            This connection, with ``model`` set when the greeting parsed

        Raises
        ------
        ConnectError
            If the TCP connection fails or no greeting arrives
        """
        transport = Transport(self.host, self.port, self.timeout)
        transport.connect()

        try:
            greeting = unwrap_response(transport.read_until(FRAME_END, self.timeout))
        except (TimeoutError, StreamError) as e:
            transport.close()
            raise ConnectError(f"No greeting from receiver: {e.message}", host=self.host) from e

        self.transport = transport
        self.model = parse_value(greeting)
        if self.model is None:
            log_warn(f"Unparsable greeting {greeting!r}", device_ip=self.host)

        log_success(f"Connected to {self.host}:{self.port} (model {self.model})", device_ip=self.host)
        return self

    def introspect(self) -> "Connection":
        """Discover the receiver's command set with a bare ``?``.

        Returns
        -------
        Connection
            This connection, with ``supported_commands`` set

        Raises
        ------
        ConnectError
            If not connected
        StreamError
            If the stream fails during the dump
        """
        transport = self._require_transport()
        transport.write(wrap_command(INTROSPECT))

        lines = self._drain(transport, require_reply=False)
        if not lines:
            log_warn("Receiver sent nothing for introspection", device_ip=self.host)

        self.supported_commands = parse_introspection_set("\n".join(lines))
        self.introspected = True
        log_info(
            f"Discovered {len(self.supported_commands)} commands",
            device_ip=self.host,
        )
        return self

    def send_command(self, command: str) -> str:
        """Send a raw command such as ``"Main.Power?"`` and drain the reply.

        Parameters
        ----------
        command : str
            Command string without line endings

        Returns
        -------
        str
            Every line received, joined with ``\\n``. Use
            :func:`~lib.receiver.codec.parse_value` with the command name
            to pick out the reply.

        Raises
        ------
        UnsupportedCommandError
            If the connection was introspected and the command's name is not
            in ``supported_commands``; nothing is sent
        ConnectError
            If not connected
        TimeoutError
            If nothing arrives within ``timeout``
        StreamError
            If the stream fails
        """
        if self.supported_commands is not None:
            name = parse_command_name(command)
            if name not in self.supported_commands:
                raise UnsupportedCommandError(
                    f"Command not supported by receiver: {command}",
                    host=self.host,
                    command=command,
                )

        transport = self._require_transport()
        started = time.monotonic()
        transport.write(wrap_command(command))

        try:
            lines = self._drain(transport, require_reply=True)
        except TimeoutError as e:
            raise TimeoutError(
                f"No reply to {command}",
                host=self.host,
                timeout=e.timeout,
                command=command,
            ) from e

        log_debug(
            f"{command} -> {len(lines)} line(s)",
            device_ip=self.host,
            command=command,
            duration=round(time.monotonic() - started, 3),
        )
        return "\n".join(lines)

    def reconnect(self, introspect: bool | None = None) -> "Connection":
        """Close this connection and return a freshly connected one.

        The replacement has the same host, port and timeouts. This connection
        stays closed.

        Parameters
        ----------
        introspect : bool | None, optional
            Whether to introspect the replacement. By default (None) it is
            introspected only if this connection was, so a connection that
            never discovered its command set keeps sending unchecked.

        Raises
        ------
        ConnectError
            If the new connection cannot be established
        """
        if introspect is None:
            introspect = self.introspected

        log_info(f"Reconnecting to {self.host}:{self.port}", device_ip=self.host)
        self.disconnect()

        replacement = Connection(
            self.host,
            port=self.port,
            timeout=self.timeout,
            drain_timeout=self.drain_timeout,
            max_drain_frames=self.max_drain_frames,
        )
        replacement.connect()
        if introspect:
            try:
                replacement.introspect()
            except TelnetError:
                replacement.disconnect()
                raise
        return replacement

    def disconnect(self) -> None:
        """Close the transport. Safe to call more than once."""
        if self.transport is None:
            return

        self.transport.close()
        self.transport = None
        log_info(f"Disconnected from {self.host}:{self.port}", device_ip=self.host)

    def _require_transport(self) -> Transport:
        if self.transport is None or not self.transport.is_open:
            raise ConnectError("Not connected to receiver", host=self.host)
        return self.transport

    def _drain(self, transport: Transport, require_reply: bool) -> list[str]:
        """Collect frames until the line goes idle.

        The first read waits ``timeout``; later reads wait ``drain_timeout``
        and a timeout there ends the burst. With ``require_reply``, a timeout
        on the first read is raised.
        """
        lines: list[str] = []
        received = False

        for _ in range(self.max_drain_frames):
            read_timeout = self.drain_timeout if received else self.timeout
            try:
                frame = transport.read_until(FRAME_END, read_timeout)
            except TimeoutError:
                if require_reply and not received:
                    raise
                return lines

            received = True
            line = unwrap_response(frame)
            if line:
                lines.append(line)

        log_warn(
            f"Stopped draining after {self.max_drain_frames} frames",
            device_ip=self.host,
        )
        return lines

    def __enter__(self) -> "Connection":
        """Context manager entry."""
        if not self.connected:
            self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.disconnect()


def connect(
    host: str,
    port: int = DEFAULT_PORT,
    timeout: float = DEFAULT_TIMEOUT,
    drain_timeout: float = DEFAULT_DRAIN_TIMEOUT,
    max_drain_frames: int = DEFAULT_MAX_DRAIN_FRAMES,
) -> Connection:
    """Open a connection to a receiver.

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

    Returns
    -------
    Connection
        Connected connection with ``model`` read from the greeting
    """
    return Connection(
        host,
        port=port,
        timeout=timeout,
        drain_timeout=drain_timeout,
        max_drain_frames=max_drain_frames,
    ).connect()
