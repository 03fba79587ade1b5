"""Tests for the command line interface."""

import json
import logging

import pytest
from click.testing import CliRunner

from lib.receiver.cli import cli
from lib.receiver.logging import LOGGER_NAME
from tests.mock_receiver import MockReceiver


@pytest.fixture(autouse=True)
def reset_logging() -> None:
    """Drop handlers bound to the runner's output streams."""
    yield
    logging.getLogger(LOGGER_NAME).handlers.clear()


@pytest.fixture
def mock_receiver() -> MockReceiver:
    """Create mock receiver fixture."""
    receiver = MockReceiver()
    receiver.start()
    yield receiver
    receiver.stop()


def _invoke(receiver: MockReceiver, *args: str):
    target = ["--host", "127.0.0.1", "--port", str(receiver.actual_port), "--drain-timeout", "0.1"]
    return CliRunner().invoke(cli, [args[0], *target, "-q", *args[1:]])


def test_model(mock_receiver: MockReceiver) -> None:
    """Test printing the model."""
    result = _invoke(mock_receiver, "model")
    assert result.exit_code == 0
    assert result.output.strip() == "T778"


def test_model_json(mock_receiver: MockReceiver) -> None:
    """Test JSON output."""
    result = _invoke(mock_receiver, "model", "--json")
    assert result.exit_code == 0
    assert json.loads(result.output) == {"host": "127.0.0.1", "model": "T778", "success": True}


def test_query(mock_receiver: MockReceiver) -> None:
    """Test querying a value."""
    result = _invoke(mock_receiver, "query", "Main.Volume")
    assert result.exit_code == 0
    assert result.output.strip() == "-48"


def test_send(mock_receiver: MockReceiver) -> None:
    """Test sending a raw command."""
    result = _invoke(mock_receiver, "send", "Main.Volume+")
    assert result.exit_code == 0
    assert result.output.strip() == "-47"


def test_send_unsupported(mock_receiver: MockReceiver) -> None:
    """Test the introspection gate on send."""
    result = _invoke(mock_receiver, "send", "--introspect", "Zone2.Power?", "--json")
    assert result.exit_code == 1
    data = json.loads(result.output)
    assert data["success"] is False
    assert data["command"] == "Zone2.Power?"
    assert "Zone2.Power?" not in mock_receiver.received


def test_introspect(mock_receiver: MockReceiver) -> None:
    """Test listing discovered commands."""
    result = _invoke(mock_receiver, "introspect", "--json")
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["supported_commands"] == [
        "Main.Model",
        "Main.Mute",
        "Main.Power",
        "Main.Source",
        "Main.Volume",
    ]
    assert data["available_commands"] == data["supported_commands"]


def test_connect_failure() -> None:
    """Test exit code when the receiver is unreachable."""
    with MockReceiver() as receiver:
        port = receiver.actual_port

    result = CliRunner().invoke(
        cli, ["model", "--host", "127.0.0.1", "--port", str(port), "--timeout", "0.5", "-q"]
    )
    assert result.exit_code == 1


def test_host_required() -> None:
    """Test --host is mandatory."""
    result = CliRunner().invoke(cli, ["model"], env={"RECEIVER_DEVICE__HOST": None})
    assert result.exit_code != 0


def test_commands() -> None:
    """Test listing the registry without a receiver."""
    result = CliRunner().invoke(cli, ["commands"])
    assert result.exit_code == 0
    assert "Main.Volume" in result.output
    assert "Zone2.Mute" in result.output


def test_commands_json() -> None:
    """Test listing the registry as JSON."""
    result = CliRunner().invoke(cli, ["commands", "--json"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert len(data) == 10
    assert {"name", "operators", "description", "example", "values"} <= set(data[0])
