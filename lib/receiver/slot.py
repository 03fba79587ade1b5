"""Thread-safe holder for the current receiver connection."""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from lib.receiver.connection import Connection
from lib.receiver.exceptions import ConnectError


class ConnectionSlot:
    """Single-writer holder for one receiver connection.

    The whole connection is replaced at once, and the lock is held for the
    duration of a reconnect, so a command issued through :meth:`hold` runs
    on either the old connection or the new one, never on a closed
    connection waiting to be replaced. The same lock serialises commands,
    since the wire format cannot tell replies to concurrent requests apart.
    Reading :attr:`connection` does not take the lock.
    """

    def __init__(self, connection: Connection | None = None) -> None:
        """Initialize slot.

        Parameters
        ----------
        connection : Connection | None, optional
            Initial connection, by default None
        """
        self._connection = connection
        self._lock = threading.RLock()

    @property
    def connection(self) -> Connection | None:
        """Current connection; never waits for an in-flight command."""
        return self._connection

    @contextmanager
    def hold(self) -> Iterator[Connection]:
        """Hold the lock and yield the current connection.

        Raises
        ------
        ConnectError
            If the slot is empty
        """
        with self._lock:
            if self._connection is None:
                raise ConnectError("No receiver connection")
            yield self._connection

    def replace(self, connection: Connection | None) -> Connection | None:
        """Swap in ``connection`` and return the previous one (not closed)."""
        with self._lock:
            previous = self._connection
            self._connection = connection
            return previous

    def reconnect(self) -> Connection:
        """Reconnect the held connection and swap in the replacement.

        Until the swap, :attr:`connection` still returns the old connection.

        Raises
        ------
        ConnectError
            If the slot is empty or reconnecting fails. On failure the slot
            is left empty, since the old connection has been closed.
        """
        with self._lock:
            current = self._connection
            if current is None:
                raise ConnectError("No receiver connection to reconnect")

            try:
                replacement = current.reconnect()
            except Exception:
                self._connection = None
                raise

            self._connection = replacement
            return replacement

    def clear(self) -> None:
        """Disconnect and empty the slot. Safe on an empty slot."""
        with self._lock:
            if self._connection is not None:
                self._connection.disconnect()
                self._connection = None
