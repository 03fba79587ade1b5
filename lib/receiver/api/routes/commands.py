"""Receiver command API routes.

Each command that is both in the registry and supported by the receiver is
reachable at ``/api/{command}``: ``GET`` queries it, ``POST`` applies one of
the ``=``, ``+`` and ``-`` operators.
"""

from fastapi import APIRouter, HTTPException

from lib.receiver.api.models import (
    CommandInfo,
    CommandListResponse,
    ModifyRequest,
    ModifyResponse,
    QueryResponse,
)
from lib.receiver.commands import COMMANDS, CommandDefinition, ValueRange
from lib.receiver.exceptions import (
    CommandError,
    TelnetError,
    TimeoutError,
    UnsupportedCommandError,
)

router = APIRouter(prefix="/api", tags=["commands"])

# Store service instance (set by app)
_service = None


def set_service(service) -> None:
    """Set the receiver service instance.

    Parameters
    ----------
    service
        ReceiverService instance
    """
    global _service
    _service = service


def _error(status_code: int, error: str, message: str, **extra) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error": error, "message": message, **extra})


def _require_service():
    if not _service:
        raise _error(503, "service-unavailable", "Service not available")
    return _service


def _require_available(command: str) -> None:
    if command not in _require_service().available_commands:
        raise _error(404, "not-found", "Command not found")


def _device_error(e: TelnetError) -> HTTPException:
    """Map an engine error to the HTTP error the caller sees."""
    if isinstance(e, TimeoutError):
        return _error(504, "timeout", "Device did not respond")
    if isinstance(e, UnsupportedCommandError):
        return _error(404, "not-found", e.message)
    return _error(503, "connection-error", str(e))


def _command_info(definition: CommandDefinition) -> CommandInfo:
    values: list[str] | dict[str, int] | None
    if isinstance(definition.values, ValueRange):
        values = definition.values.model_dump()
    elif definition.values is not None:
        values = sorted(definition.values)
    else:
        values = None

    return CommandInfo(
        name=definition.name,
        operators=sorted(definition.operators),
        description=definition.description,
        example=definition.example,
        values=values,
    )


@router.get("", response_model=CommandListResponse)
async def list_commands() -> CommandListResponse:
    """List the commands available on the connected receiver.

    Returns
    -------
    CommandListResponse
        Available commands with their registry definitions
    """
    service = _require_service()
    commands = [_command_info(COMMANDS[name]) for name in sorted(service.available_commands)]
    return CommandListResponse(commands=commands, total=len(commands))


@router.get("/{command}", response_model=QueryResponse)
async def query_command(command: str) -> QueryResponse:
    """Query the current value of a command.

    Parameters
    ----------
    command : str
        Command name, e.g. ``Main.Power``

    Returns
    -------
    QueryResponse
        Command and value
    """
    _require_available(command)

    try:
        value = await _service.query(command)
    except TelnetError as e:
        raise _device_error(e) from e

    return QueryResponse(command=command, value=value)


@router.post("/{command}", response_model=ModifyResponse)
async def modify_command(command: str, request: ModifyRequest) -> ModifyResponse:
    """Set, increment or decrement a command's value.

    Parameters
    ----------
    command : str
        Command name, e.g. ``Main.Volume``
    request : ModifyRequest
        Operator and optional value

    Returns
    -------
    ModifyResponse
        Command, operator and the value after the change
    """
    _require_available(command)

    operator = request.operator
    if operator is None:
        raise _error(400, "missing-operator", "Request body must include 'operator'")

    definition = COMMANDS[command]
    if operator not in definition.operators:
        raise _error(
            400,
            "invalid-operator",
            f"Operator '{operator}' is not valid for {command}",
            valid_operators=sorted(definition.operators),
        )

    if operator == "=" and request.value is None:
        raise _error(400, "missing-value", "Operator '=' requires a 'value'")

    try:
        value = await _service.modify(command, operator, request.value)
    except CommandError as e:
        if isinstance(e, UnsupportedCommandError):
            raise _device_error(e) from e
        raise _error(400, "invalid-command", e.message) from e
    except TelnetError as e:
        raise _device_error(e) from e

    return ModifyResponse(command=command, operator=operator, value=value)
