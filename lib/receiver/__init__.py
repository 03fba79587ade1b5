"""Telnet protocol engine and REST bridge for audio receivers.

This package talks the line-oriented ``Domain.Command<op>[value]`` telnet
protocol of audio receivers: framing, command discovery by introspection,
connection lifecycle, and a REST API on top.
"""

__version__ = "0.1.0"

from lib.receiver.async_client import AsyncReceiverClient
from lib.receiver.codec import (
    parse_command_name,
    parse_introspection_set,
    parse_value,
    unwrap_response,
    wrap_command,
)
from lib.receiver.commands import (
    COMMANDS,
    CommandDefinition,
    CommandRegistry,
    available_commands,
    build_command,
    is_operator_valid,
)
from lib.receiver.connection import Connection, connect
from lib.receiver.exceptions import (
    CommandError,
    ConnectError,
    StreamError,
    TelnetError,
    TimeoutError,
    UnsupportedCommandError,
)
from lib.receiver.slot import ConnectionSlot
from lib.receiver.transport import Transport

__all__ = [
    "Connection",
    "connect",
    "ConnectionSlot",
    "AsyncReceiverClient",
    "Transport",
    "COMMANDS",
    "CommandDefinition",
    "CommandRegistry",
    "available_commands",
    "build_command",
    "is_operator_valid",
    "wrap_command",
    "unwrap_response",
    "parse_value",
    "parse_command_name",
    "parse_introspection_set",
    "TelnetError",
    "ConnectError",
    "TimeoutError",
    "StreamError",
    "CommandError",
    "UnsupportedCommandError",
]
