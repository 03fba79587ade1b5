"""Wire framing and parsing for the receiver telnet protocol.

Outbound frames are ``\\n<Domain>.<Command><op>[value]\\r``. Inbound frames
start with ``\\n`` and end with ``\\r``; a burst read from the device may hold
several ``Name=Value`` lines when unsolicited telemetry is interleaved with
the reply. Nothing in here does I/O.
"""

OPERATORS = ("?", "=", "+", "-")

FRAME_START = "\n"
FRAME_END = "\r"

INTROSPECT = "?"


def wrap_command(command: str, operator: str = "", value: str | None = None) -> str:
    """Frame a command for sending.

    Parameters
    ----------
    command : str
        Command name, or a full command string such as ``"Main.Power?"``
    operator : str, optional
        Operator appended to the name, by default ""
    value : str | None, optional
        Value appended after the operator, by default None

    Returns
    -------
    str
        Wire frame, e.g. ``"\\nMain.Power=On\\r"``
    """
    return f"{FRAME_START}{command}{operator}{value or ''}{FRAME_END}"


def unwrap_response(raw: str) -> str:
    """Strip one leading ``\\n`` and one trailing ``\\r``, whichever are present."""
    if raw.startswith(FRAME_START):
        raw = raw[len(FRAME_START):]
    if raw.endswith(FRAME_END):
        raw = raw[: -len(FRAME_END)]
    return raw


def parse_value(response: str, command_name: str | None = None) -> str | None:
    """Extract a value from a response.

    Without ``command_name`` the text after the first ``=`` is returned. With
    it, the response is scanned line by line for ``command_name=value`` and
    the first exact match wins, so telemetry lines pushed by the device in
    the same burst are skipped.

    Parameters
    ----------
    response : str
        Unwrapped response, possibly several ``\\n``-separated lines
    command_name : str | None, optional
        Bare command name to look for, by default None

    Returns
    -------
    str | None
        The value, or None when there is no ``=`` or no matching line
    """
    if command_name is None:
        _, sep, value = response.partition("=")
        return value if sep else None

    for line in response.split("\n"):
        name, sep, value = unwrap_response(line).partition("=")
        if sep and name == command_name:
            return value

    return None


def parse_command_name(command: str) -> str | None:
    """Return the bare name of a command string.

    ``"Main.Volume=-48"`` gives ``"Main.Volume"``. Returns None for strings
    without any operator character or with nothing before the operator.
    """
    positions = [command.find(op) for op in OPERATORS if op in command]
    if not positions:
        return None

    name = command[: min(positions)]
    return name or None


def parse_introspection_set(response: str) -> frozenset[str]:
    """Collect the names of every ``Name=Value`` line of an introspection dump.

    Lines without ``=`` are dropped.
    """
    names = set()
    for line in response.split("\n"):
        name, sep, _ = unwrap_response(line).partition("=")
        if sep and name:
            names.add(name)
    return frozenset(names)
