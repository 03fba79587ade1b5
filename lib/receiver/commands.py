"""Command registry for receiver telnet commands.

Commands are keyed by their wire name (``"Main.Power"``, ``"Zone2.Volume"``).
The registry is static: it is built once at import time and never mutated.
"""

from collections.abc import Iterable
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict

from lib.receiver.exceptions import CommandError


class ValueRange(BaseModel):
    """Inclusive numeric range accepted by a command."""

    model_config = ConfigDict(frozen=True)

    min: int
    max: int


class CommandDefinition(BaseModel):
    """Static definition of a single receiver command."""

    model_config = ConfigDict(frozen=True)

    name: str
    operators: frozenset[str]
    description: str
    example: str
    values: frozenset[str] | ValueRange | None = None


_STANDARD = frozenset({"?", "=", "+", "-"})
_QUERY_ONLY = frozenset({"?"})
_ON_OFF = frozenset({"On", "Off"})


def _define(
    name: str,
    operators: frozenset[str],
    description: str,
    example: str,
    values: frozenset[str] | ValueRange | None = None,
) -> tuple[str, CommandDefinition]:
    return name, CommandDefinition(
        name=name,
        operators=operators,
        description=description,
        example=example,
        values=values,
    )


COMMANDS: MappingProxyType[str, CommandDefinition] = MappingProxyType(
    dict(
        [
            # Main zone
            _define("Main.Power", _STANDARD, "Turn the Main Power On/Off", "Main.Power=On", _ON_OFF),
            _define(
                "Main.Volume",
                _STANDARD,
                "Set Main Volume (range depends on levels, trims, etc)",
                "Main.Volume=-48",
                ValueRange(min=-99, max=19),
            ),
            _define("Main.Source", _STANDARD, "Set Main Source", "Main.Source=1", ValueRange(min=1, max=10)),
            _define("Main.Mute", _STANDARD, "Set Mute", "Main.Mute=On", _ON_OFF),
            _define("Main.Model", _QUERY_ONLY, "Query AVR Model", "Main.Model?"),
            _define("Main.Version", _QUERY_ONLY, "Query Main MCU Version", "Main.Version?"),
            # Zone 2
            _define("Zone2.Power", _STANDARD, "Set Zone 2 Power", "Zone2.Power=On", _ON_OFF),
            _define(
                "Zone2.Volume",
                _STANDARD,
                "Set Zone 2 Volume",
                "Zone2.Volume=-48",
                ValueRange(min=-99, max=19),
            ),
            _define("Zone2.Source", _STANDARD, "Set Zone 2 Source", "Zone2.Source=1", ValueRange(min=1, max=11)),
            _define("Zone2.Mute", _STANDARD, "Set Zone 2 Mute", "Zone2.Mute=On", _ON_OFF),
        ]
    )
)


class CommandRegistry:
    """Read-only access to the command registry."""

    @staticmethod
    def get(name: str) -> CommandDefinition:
        """Get a command definition by name.

        Parameters
        ----------
        name : str
            Command name, e.g. ``"Main.Power"``

        Returns
        -------
        CommandDefinition
            Command definition

        Raises
        ------
        CommandError
            If the command is not in the registry
        """
        if name not in COMMANDS:
            raise CommandError(f"Unknown command: {name}", command=name)
        return COMMANDS[name]

    @staticmethod
    def list_commands() -> list[str]:
        """List all registered command names, sorted."""
        return sorted(COMMANDS)


def is_operator_valid(command_name: str, operator: str) -> bool:
    """Return True if ``operator`` is valid for the registered ``command_name``."""
    definition = COMMANDS.get(command_name)
    return definition is not None and operator in definition.operators


def build_command(command_name: str, operator: str, value: str | None = None) -> str:
    """Build the command string without line endings.

    No validation is done here; ``build_command("Main.Volume", "+")`` gives
    ``"Main.Volume+"``.
    """
    return f"{command_name}{operator}{value or ''}"


def available_commands(supported: Iterable[str] | None) -> frozenset[str]:
    """Intersect a receiver's supported command names with the registry."""
    if not supported:
        return frozenset()
    return frozenset(supported) & frozenset(COMMANDS)
