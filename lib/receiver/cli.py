"""Click-based CLI for talking to a receiver."""

import json
import logging
import sys
from typing import Any, Callable

import click

from lib.receiver import __version__
from lib.receiver.codec import parse_command_name, parse_value
from lib.receiver.commands import COMMANDS, CommandRegistry, available_commands, build_command
from lib.receiver.connection import Connection
from lib.receiver.exceptions import TelnetError
from lib.receiver.logging import setup_logging


def common_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator for common CLI options.

    Parameters
    ----------
    func : Callable[..., Any]
        Function to decorate

    Returns
    -------
    Callable[..., Any]
        Decorated function
    """
    func = click.option(
        "--host",
        "-H",
        required=True,
        envvar="RECEIVER_DEVICE__HOST",
        help="Receiver host name or IP address",
    )(func)
    func = click.option(
        "--port",
        default=23,
        type=int,
        help="Telnet port",
    )(func)
    func = click.option(
        "--timeout",
        default=2.0,
        type=float,
        help="Connect and reply timeout in seconds",
    )(func)
    func = click.option(
        "--drain-timeout",
        default=0.5,
        type=float,
        help="Idle gap in seconds that ends a multi-line reply",
    )(func)
    func = click.option(
        "--json",
        "json_output",
        is_flag=True,
        help="Output in JSON format",
    )(func)
    func = click.option(
        "--verbose",
        "-v",
        is_flag=True,
        help="Verbose output (logs wire frames)",
    )(func)
    func = click.option(
        "--quiet",
        "-q",
        is_flag=True,
        help="Quiet output (errors only)",
    )(func)
    return func


def setup_cli_logging(verbose: bool, quiet: bool, json_output: bool) -> None:
    """Set up logging for CLI.

    Parameters
    ----------
    verbose : bool
        Enable verbose logging
    quiet : bool
        Enable quiet logging
    json_output : bool
        Enable JSON output
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    setup_logging(level=level, json_output=json_output)


def _emit(json_output: bool, result: dict[str, Any], text: str) -> None:
    if json_output:
        click.echo(json.dumps(result))
    else:
        click.echo(text)


def _fail(json_output: bool, host: str, error: Exception, **fields: Any) -> None:
    if json_output:
        click.echo(json.dumps({"host": host, **fields, "error": str(error), "success": False}))
    else:
        click.echo(f"Error: {error}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """Control an audio receiver over its telnet protocol."""
    pass


@cli.command()
@common_options
def model(
    host: str,
    port: int,
    timeout: float,
    drain_timeout: float,
    json_output: bool,
    verbose: bool,
    quiet: bool,
) -> None:
    """Connect and print the model from the receiver's greeting."""
    setup_cli_logging(verbose, quiet, json_output)

    try:
        with Connection(host, port=port, timeout=timeout, drain_timeout=drain_timeout) as conn:
            _emit(
                json_output,
                {"host": host, "model": conn.model, "success": True},
                conn.model or "",
            )
    except TelnetError as e:
        _fail(json_output, host, e)


@cli.command()
@common_options
def introspect(
    host: str,
    port: int,
    timeout: float,
    drain_timeout: float,
    json_output: bool,
    verbose: bool,
    quiet: bool,
) -> None:
    """List the commands the receiver reports, marking those in the registry."""
    setup_cli_logging(verbose, quiet, json_output)

    try:
        with Connection(host, port=port, timeout=timeout, drain_timeout=drain_timeout) as conn:
            supported = conn.introspect().supported_commands or frozenset()
    except TelnetError as e:
        _fail(json_output, host, e)
        return

    known = available_commands(supported)
    lines = [f"{'*' if name in known else ' '} {name}" for name in sorted(supported)]
    _emit(
        json_output,
        {
            "host": host,
            "supported_commands": sorted(supported),
            "available_commands": sorted(known),
            "success": True,
        },
        "\n".join(lines),
    )


@cli.command()
@common_options
@click.argument("name", required=True)
def query(
    host: str,
    port: int,
    timeout: float,
    drain_timeout: float,
    json_output: bool,
    verbose: bool,
    quiet: bool,
    name: str,
) -> None:
    """Query the current value of NAME (e.g. Main.Power)."""
    setup_cli_logging(verbose, quiet, json_output)

    try:
        with Connection(host, port=port, timeout=timeout, drain_timeout=drain_timeout) as conn:
            response = conn.send_command(build_command(name, "?"))
    except TelnetError as e:
        _fail(json_output, host, e, command=name)
        return

    value = parse_value(response, name)
    _emit(
        json_output,
        {"host": host, "command": name, "value": value, "success": True},
        value if value is not None else "",
    )


@cli.command()
@common_options
@click.option(
    "--introspect",
    "check_supported",
    is_flag=True,
    help="Refuse commands the receiver does not report as supported",
)
@click.argument("command", required=True)
def send(
    host: str,
    port: int,
    timeout: float,
    drain_timeout: float,
    json_output: bool,
    verbose: bool,
    quiet: bool,
    check_supported: bool,
    command: str,
) -> None:
    """Send a raw COMMAND (e.g. Main.Volume+) and print the reply.

    The full reply, including any telemetry lines, is printed unless the
    command's own line is found in it.
    """
    setup_cli_logging(verbose, quiet, json_output)

    try:
        with Connection(host, port=port, timeout=timeout, drain_timeout=drain_timeout) as conn:
            if check_supported:
                conn.introspect()
            response = conn.send_command(command)
    except TelnetError as e:
        _fail(json_output, host, e, command=command)
        return

    name = parse_command_name(command)
    value = parse_value(response, name) if name else None
    _emit(
        json_output,
        {"host": host, "command": command, "response": response, "value": value, "success": True},
        response if value is None else value,
    )


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
def commands(json_output: bool) -> None:
    """List the commands in the registry."""
    names = CommandRegistry.list_commands()
    if json_output:
        click.echo(json.dumps([COMMANDS[name].model_dump(mode="json") for name in names]))
        return

    for name in names:
        definition = COMMANDS[name]
        click.echo(f"{name:<14} {''.join(sorted(definition.operators)):<5} {definition.description}")


@cli.command()
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(dir_okay=False),
    help="YAML configuration file",
)
@click.option("--bind", help="API bind address (overrides config)")
@click.option("--api-port", type=int, help="API port (overrides config)")
def serve(config_file: str | None, bind: str | None, api_port: int | None) -> None:
    """Connect to the configured receiver and serve the REST API."""
    import uvicorn

    from lib.receiver.api.app import create_app
    from lib.receiver.config import load_config

    config = load_config(config_file)
    try:
        app = create_app(config)
    except TelnetError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    uvicorn.run(
        app,
        host=bind or config.service.api_host,
        port=api_port or config.service.api_port,
    )


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
