"""Custom exceptions for the receiver telnet bridge."""


class TelnetError(Exception):
    """Base exception for all receiver telnet errors."""

    def __init__(self, message: str, host: str | None = None) -> None:
        """Initialize telnet error.

        Parameters
        ----------
        message : str
            Error message
        host : str | None, optional
            Receiver host if applicable, by default None
        """
        super().__init__(message)
        self.message = message
        self.host = host

    def __str__(self) -> str:
        """Return string representation of error."""
        if self.host:
            return f"[{self.host}] {self.message}"
        return self.message


class ConnectError(TelnetError):
    """Raised when a connection to the receiver cannot be established or used."""

    pass


class TimeoutError(TelnetError):
    """Raised when the receiver does not answer in time."""

    def __init__(
        self,
        message: str,
        host: str | None = None,
        timeout: float | None = None,
        command: str | None = None,
    ) -> None:
        """Initialize timeout error.

        Parameters
        ----------
        message : str
            Error message
        host : str | None, optional
            Receiver host if applicable, by default None
        timeout : float | None, optional
            Timeout value in seconds, by default None
        command : str | None, optional
            Command that was waiting for a reply, by default None
        """
        super().__init__(message, host)
        self.timeout = timeout
        self.command = command


class StreamError(TelnetError):
    """Raised when the stream is closed or reset mid-read or mid-write."""

    def __init__(
        self,
        message: str,
        host: str | None = None,
        operation: str | None = None,
    ) -> None:
        """Initialize stream error.

        Parameters
        ----------
        message : str
            Error message
        host : str | None, optional
            Receiver host if applicable, by default None
        operation : str | None, optional
            Operation that failed ("read", "write"), by default None
        """
        super().__init__(message, host)
        self.operation = operation


class CommandError(TelnetError):
    """Raised when a command is malformed or uses an invalid operator."""

    def __init__(
        self,
        message: str,
        host: str | None = None,
        command: str | None = None,
    ) -> None:
        """Initialize command error.

        Parameters
        ----------
        message : str
            Error message
        host : str | None, optional
            Receiver host if applicable, by default None
        command : str | None, optional
            Offending command, by default None
        """
        super().__init__(message, host)
        self.command = command


class UnsupportedCommandError(CommandError):
    """Raised when a command is not in the receiver's discovered command set."""

    pass
