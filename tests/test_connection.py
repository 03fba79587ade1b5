"""Tests for the receiver connection manager."""

import socket
import time

import pytest

from lib.receiver.codec import parse_value
from lib.receiver.connection import Connection, connect
from lib.receiver.exceptions import (
    ConnectError,
    StreamError,
    TimeoutError,
    UnsupportedCommandError,
)
from tests.mock_receiver import MockReceiver


def _connect(receiver: MockReceiver, **kwargs) -> Connection:
    kwargs.setdefault("timeout", 2.0)
    kwargs.setdefault("drain_timeout", 0.2)
    return connect("127.0.0.1", receiver.actual_port, **kwargs)


def test_connect_reads_model(mock_receiver: MockReceiver) -> None:
    """Test the greeting populates the model."""
    conn = _connect(mock_receiver)
    try:
        assert conn.connected
        assert conn.model == "T778"
        assert conn.supported_commands is None
        assert not conn.introspected
    finally:
        conn.disconnect()


def test_connect_unparsable_greeting() -> None:
    """Test a greeting without '=' leaves the model unset."""
    with MockReceiver(greeting="\nHello\r") as receiver:
        conn = _connect(receiver)
        try:
            assert conn.connected
            assert conn.model is None
        finally:
            conn.disconnect()


def test_connect_without_greeting() -> None:
    """Test a silent device fails the handshake."""
    with MockReceiver(greeting="") as receiver:
        with pytest.raises(ConnectError):
            _connect(receiver, timeout=0.3)


def test_connect_refused() -> None:
    """Test connection refusal."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]

    with pytest.raises(ConnectError):
        connect("127.0.0.1", port, timeout=1.0)


def test_disconnect_is_idempotent(mock_receiver: MockReceiver) -> None:
    """Test disconnecting twice."""
    conn = _connect(mock_receiver)
    conn.disconnect()
    assert not conn.connected
    conn.disconnect()
    assert not conn.connected


def test_send_query(mock_receiver: MockReceiver) -> None:
    """Test a query returns the reply line."""
    with _connect(mock_receiver) as conn:
        assert conn.send_command("Main.Power?") == "Main.Power=On"


def test_send_set(mock_receiver: MockReceiver) -> None:
    """Test a set command is echoed."""
    with _connect(mock_receiver) as conn:
        assert conn.send_command("Main.Power=Off") == "Main.Power=Off"
    assert mock_receiver.state["Main.Power"] == "Off"


def test_send_increment() -> None:
    """Test connect, then increment volume, end to end."""
    with MockReceiver(state={"Main.Model": "T778", "Main.Volume": "-48"}) as receiver:
        with _connect(receiver) as conn:
            assert conn.model == "T778"
            response = conn.send_command("Main.Volume+")
            assert parse_value(response, "Main.Volume") == "-47"


def test_send_with_telemetry() -> None:
    """Test unsolicited telemetry is drained along with the reply."""
    with MockReceiver(telemetry=["Main.Temp.PSU=32"]) as receiver:
        with _connect(receiver) as conn:
            response = conn.send_command("Main.Power?")
            assert response == "Main.Temp.PSU=32\nMain.Power=On"
            assert parse_value(response, "Main.Power") == "On"
            assert parse_value(response, "Unknown.Cmd") is None


def test_send_timeout(mock_receiver: MockReceiver) -> None:
    """Test a command without any reply times out."""
    with _connect(mock_receiver, timeout=0.3) as conn:
        with pytest.raises(TimeoutError) as exc_info:
            conn.send_command("Main.Bass?")
        assert exc_info.value.command == "Main.Bass?"


def test_send_not_connected() -> None:
    """Test sending on a connection that was never opened."""
    conn = Connection("127.0.0.1")
    with pytest.raises(ConnectError):
        conn.send_command("Main.Power?")


def test_send_after_device_drop(mock_receiver: MockReceiver) -> None:
    """Test the stream failing under a command."""
    with _connect(mock_receiver) as conn:
        time.sleep(0.1)
        mock_receiver.drop_clients()
        time.sleep(0.1)
        with pytest.raises(StreamError):
            conn.send_command("Main.Power?")


def test_introspect() -> None:
    """Test discovery drops lines without '='."""
    state = {"Main.Model": "T778", "Main.Power": "Off", "Main.Volume": "-48"}
    with MockReceiver(state=state, introspection_extra=["InvalidLine"]) as receiver:
        with _connect(receiver) as conn:
            assert conn.introspect() is conn
            assert conn.introspected
            assert conn.supported_commands == {"Main.Model", "Main.Power", "Main.Volume"}


def test_introspect_empty() -> None:
    """Test a receiver answering nothing to introspection."""
    with MockReceiver() as receiver:
        receiver.set_command_handler(lambda command: "" if command == "?" else None)
        with _connect(receiver, timeout=0.3) as conn:
            conn.introspect()
            assert conn.introspected
            assert conn.supported_commands == frozenset()


def test_unsupported_command_never_sent(mock_receiver: MockReceiver) -> None:
    """Test the validation gate after introspection."""
    with _connect(mock_receiver) as conn:
        conn.introspect()
        with pytest.raises(UnsupportedCommandError) as exc_info:
            conn.send_command("Zone2.Power?")
        assert exc_info.value.command == "Zone2.Power?"

    assert "Zone2.Power?" not in mock_receiver.received


def test_unknown_command_allowed_before_introspection() -> None:
    """Test commands pass unchecked before introspection."""
    with MockReceiver() as receiver:
        receiver.set_command_handler(
            lambda command: "\nZone2.Power=Off\r" if command == "Zone2.Power?" else None
        )
        with _connect(receiver) as conn:
            assert conn.send_command("Zone2.Power?") == "Zone2.Power=Off"

        assert "Zone2.Power?" in receiver.received


def test_invalid_command_rejected_after_introspection(mock_receiver: MockReceiver) -> None:
    """Test a command without an operator cannot match the supported set."""
    with _connect(mock_receiver) as conn:
        conn.introspect()
        with pytest.raises(UnsupportedCommandError):
            conn.send_command("Main.Power")


def test_drain_frame_limit() -> None:
    """Test a burst is cut off at max_drain_frames."""
    with MockReceiver() as receiver:
        burst = "".join(f"\nMain.Temp.{i}=30\r" for i in range(10))
        receiver.set_command_handler(lambda command: burst if command == "Main.Power?" else None)
        with _connect(receiver, max_drain_frames=3) as conn:
            response = conn.send_command("Main.Power?")
            assert response.split("\n") == ["Main.Temp.0=30", "Main.Temp.1=30", "Main.Temp.2=30"]


def test_reconnect(mock_receiver: MockReceiver) -> None:
    """Test reconnect returns a new introspected connection."""
    conn = _connect(mock_receiver)
    conn.introspect()

    new_conn = conn.reconnect()
    try:
        assert new_conn is not conn
        assert not conn.connected
        assert new_conn.connected
        assert new_conn.model == "T778"
        assert new_conn.introspected
        assert new_conn.supported_commands == conn.supported_commands
        assert new_conn.send_command("Main.Power?") == "Main.Power=On"
        assert mock_receiver.connection_count == 2
    finally:
        new_conn.disconnect()


def test_reconnect_without_introspection(mock_receiver: MockReceiver) -> None:
    """Test reconnect does not introspect a connection that never was."""
    conn = _connect(mock_receiver)
    new_conn = conn.reconnect()
    try:
        assert new_conn.supported_commands is None
        assert "?" not in mock_receiver.received
    finally:
        new_conn.disconnect()


def test_reconnect_with_introspection(mock_receiver: MockReceiver) -> None:
    """Test reconnect can be asked to introspect the replacement."""
    conn = _connect(mock_receiver)
    new_conn = conn.reconnect(introspect=True)
    try:
        assert new_conn.introspected
        assert "Main.Power" in new_conn.supported_commands
    finally:
        new_conn.disconnect()


def test_reconnect_after_device_drop(mock_receiver: MockReceiver) -> None:
    """Test recovering after the device dropped the session."""
    conn = _connect(mock_receiver)
    time.sleep(0.1)
    mock_receiver.drop_clients()

    new_conn = conn.reconnect()
    try:
        assert new_conn.send_command("Main.Volume?") == "Main.Volume=-48"
    finally:
        new_conn.disconnect()


def test_reconnect_fails_when_device_gone(mock_receiver: MockReceiver) -> None:
    """Test reconnect surfaces connection failures."""
    conn = _connect(mock_receiver)
    mock_receiver.stop()

    with pytest.raises(ConnectError):
        conn.reconnect()
    assert not conn.connected


@pytest.fixture
def mock_receiver() -> MockReceiver:
    """Create mock receiver fixture."""
    receiver = MockReceiver()
    receiver.start()
    yield receiver
    receiver.stop()
