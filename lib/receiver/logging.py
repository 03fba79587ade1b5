"""Structured logging for the receiver telnet bridge."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Default logger
_logger: logging.Logger | None = None
_json_mode = False

LOGGER_NAME = "lib.receiver"


def setup_logging(
    level: int = logging.INFO,
    json_output: bool = False,
    log_file: str | None = None,
) -> None:
    """Set up logging configuration.

    Parameters
    ----------
    level : int, optional
        Logging level, by default logging.INFO
    json_output : bool, optional
        Enable JSON output format, by default False
    log_file : str | None, optional
        Log file path, by default None (stdout)
    """
    global _logger, _json_mode

    _json_mode = json_output
    _logger = logging.getLogger(LOGGER_NAME)
    _logger.setLevel(level)
    _logger.handlers.clear()

    formatter: logging.Formatter = JsonFormatter() if json_output else TextFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        _logger.addHandler(file_handler)

    _logger.addHandler(handler)


def get_logger() -> logging.Logger:
    """Get the bridge logger.

    Returns
    -------
    logging.Logger
        Logger instance
    """
    global _logger

    if _logger is None:
        setup_logging()

    return _logger


def level_from_name(name: str) -> int:
    """Translate a level name such as ``"DEBUG"`` into a logging level."""
    level = logging.getLevelName(name.upper())
    if isinstance(level, int):
        return level
    return logging.INFO


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Parameters
        ----------
        record : logging.LogRecord
            Log record

        Returns
        -------
        str
            JSON-formatted log entry
        """
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields
        for field in ("device_ip", "command", "duration"):
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class TextFormatter(logging.Formatter):
    """Plain text formatter with an optional device prefix."""

    def __init__(self) -> None:
        """Initialize text formatter."""
        super().__init__(
            fmt="[%(asctime)s] [%(levelname)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as text.

        Parameters
        ----------
        record : logging.LogRecord
            Log record

        Returns
        -------
        str
            Text-formatted log entry
        """
        # Work on a copy so the file and stream handlers don't both prefix it
        if hasattr(record, "device_ip"):
            record = logging.makeLogRecord(record.__dict__)
            record.msg = f"[{record.device_ip}] {record.msg}"

        return super().format(record)


def _log(level: int, message: str, device_ip: str | None, fields: dict[str, Any]) -> None:
    logger = get_logger()
    extra = fields.copy()
    if device_ip:
        extra["device_ip"] = device_ip
    logger.log(level, message, extra=extra)


def log_debug(message: str, device_ip: str | None = None, **kwargs: Any) -> None:
    """Log debug message (wire frames and other chatter)."""
    _log(logging.DEBUG, message, device_ip, kwargs)


def log_info(message: str, device_ip: str | None = None, **kwargs: Any) -> None:
    """Log info message.

    Parameters
    ----------
    message : str
        Log message
    device_ip : str | None, optional
        Receiver host, by default None
    **kwargs : Any
        Additional log fields
    """
    _log(logging.INFO, message, device_ip, kwargs)


def log_error(message: str, device_ip: str | None = None, **kwargs: Any) -> None:
    """Log error message.

    Parameters
    ----------
    message : str
        Log message
    device_ip : str | None, optional
        Receiver host, by default None
    **kwargs : Any
        Additional log fields
    """
    _log(logging.ERROR, message, device_ip, kwargs)


def log_warn(message: str, device_ip: str | None = None, **kwargs: Any) -> None:
    """Log warning message.

    Parameters
    ----------
    message : str
        Log message
    device_ip : str | None, optional
        Receiver host, by default None
    **kwargs : Any
        Additional log fields
    """
    _log(logging.WARNING, message, device_ip, kwargs)


def log_success(message: str, device_ip: str | None = None, **kwargs: Any) -> None:
    """Log success message at info level with a ``SUCCESS:`` marker."""
    _log(logging.INFO, f"SUCCESS: {message}", device_ip, kwargs)
