"""TCP transport for receiver telnet sessions."""

import socket

import pexpect
from pexpect import fdpexpect

from lib.receiver.codec import FRAME_END
from lib.receiver.exceptions import ConnectError, StreamError, TimeoutError
from lib.receiver.logging import log_debug


class Transport:
    """Byte stream to one receiver with bounded blocking.

    Reads go through a single pexpect reader created when the socket is
    opened. It holds any bytes received past a delimiter, so it must live
    exactly as long as the socket: a fresh reader per read would lose them.
    """

    def __init__(self, host: str, port: int = 23, timeout: float = 2.0) -> None:
        """Initialize transport.

        Parameters
        ----------
        host : str
            Receiver host name or IP address
        port : int, optional
            Telnet port, by default 23
        timeout : float, optional
            Connect and default read timeout in seconds, by default 2.0
        """
        self.host = host
        self.port = port
        self.timeout = timeout
        self._socket: socket.socket | None = None
        self._reader: fdpexpect.fdspawn | None = None

    @property
    def is_open(self) -> bool:
        """Whether the socket is open."""
        return self._socket is not None

    def connect(self) -> None:
        """Open the TCP connection.

        Raises
        ------
        ConnectError
            If the connection is refused, the host cannot be resolved, or
            the connect times out
        """
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except socket.timeout as e:
            raise ConnectError(
                f"Connection to port {self.port} timed out after {self.timeout}s",
                host=self.host,
            ) from e
        except OSError as e:
            raise ConnectError(f"Connection to port {self.port} failed: {e}", host=self.host) from e

        self._socket = sock
        self._reader = fdpexpect.fdspawn(
            sock,
            timeout=self.timeout,
            encoding="utf-8",
            codec_errors="replace",
        )
        log_debug(f"Socket open to port {self.port}", device_ip=self.host)

    def read_until(self, delimiter: str = FRAME_END, timeout: float | None = None) -> str:
        """Read up to ``delimiter``.

        Parameters
        ----------
        delimiter : str, optional
            Delimiter to stop at, by default ``"\\r"``
        timeout : float | None, optional
            Read timeout in seconds, uses the transport timeout if None

        Returns
        -------
        str
            Text read, without the delimiter. If the device closes the
            stream after sending an unterminated tail, the tail is returned.

        Raises
        ------
        TimeoutError
            If no delimiter arrives in time
        StreamError
            If the stream is closed or fails
        """
        reader = self._reader
        if reader is None:
            raise StreamError("Transport is closed", host=self.host, operation="read")

        read_timeout = self.timeout if timeout is None else timeout

        try:
            index = reader.expect_exact([delimiter, pexpect.EOF], timeout=read_timeout)
        except pexpect.TIMEOUT as e:
            if self._reader is None:
                raise StreamError("Transport closed during read", host=self.host, operation="read") from e
            raise TimeoutError(
                f"No data within {read_timeout}s",
                host=self.host,
                timeout=read_timeout,
            ) from e
        except (OSError, ValueError) as e:
            # Socket reset, or closed from another thread while blocked
            raise StreamError(f"Read failed: {e}", host=self.host, operation="read") from e

        if self._reader is None:
            raise StreamError("Transport closed during read", host=self.host, operation="read")

        data = reader.before
        if index == 1 and not data:
            raise StreamError("Connection closed by device", host=self.host, operation="read")

        log_debug(f"<<< {data!r}", device_ip=self.host)
        return data

    def write(self, data: str) -> None:
        """Write ``data`` and return once it has been handed to the socket.

        Raises
        ------
        StreamError
            If the transport is closed or the write fails
        """
        if self._socket is None:
            raise StreamError("Transport is closed", host=self.host, operation="write")

        log_debug(f">>> {data!r}", device_ip=self.host)
        try:
            self._socket.sendall(data.encode("utf-8"))
        except OSError as e:
            raise StreamError(f"Write failed: {e}", host=self.host, operation="write") from e

    def close(self) -> None:
        """Close the socket. Closing a closed transport does nothing."""
        sock = self._socket
        self._socket = None
        # The reader shares the socket's descriptor, so it is dropped rather
        # than closed to keep the descriptor from being closed twice.
        self._reader = None
        if sock is None:
            return

        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        finally:
            sock.close()
        log_debug(f"Socket to port {self.port} closed", device_ip=self.host)

    def __enter__(self) -> "Transport":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
