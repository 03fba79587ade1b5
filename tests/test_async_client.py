"""Tests for the asynchronous receiver client."""

import asyncio
import time

import pytest

from lib.receiver.async_client import AsyncReceiverClient
from lib.receiver.exceptions import ConnectError, TimeoutError
from tests.mock_receiver import MockReceiver


def _client(receiver: MockReceiver, **kwargs) -> AsyncReceiverClient:
    kwargs.setdefault("timeout", 1.0)
    kwargs.setdefault("drain_timeout", 0.1)
    return AsyncReceiverClient("127.0.0.1", port=receiver.actual_port, **kwargs)


@pytest.mark.asyncio
async def test_connect_and_send(mock_receiver: MockReceiver) -> None:
    """Test connecting, introspecting and sending."""
    async with _client(mock_receiver) as client:
        assert client.connected
        assert client.model == "T778"
        assert "Main.Power" in client.supported_commands
        assert await client.send_command("Main.Power?") == "Main.Power=On"

    assert not client.connected


@pytest.mark.asyncio
async def test_send_not_connected(mock_receiver: MockReceiver) -> None:
    """Test sending before connecting."""
    client = _client(mock_receiver)
    with pytest.raises(ConnectError):
        await client.send_command("Main.Power?")


@pytest.mark.asyncio
async def test_status_does_not_wait_for_command(mock_receiver: MockReceiver) -> None:
    """Test status properties answer while a command is in flight."""
    async with _client(mock_receiver, timeout=1.5, introspect=False) as client:
        pending = asyncio.create_task(client.send_command("Main.Bass?"))
        await asyncio.sleep(0.2)
        assert not pending.done()

        started = time.monotonic()
        assert client.connected
        assert client.model == "T778"
        assert client.supported_commands is None
        assert time.monotonic() - started < 0.1

        with pytest.raises(TimeoutError):
            await pending


@pytest.mark.asyncio
async def test_reconnect(mock_receiver: MockReceiver) -> None:
    """Test reconnect replaces the connection and counts."""
    async with _client(mock_receiver) as client:
        first = client.connection
        await client.reconnect()
        assert client.connection is not first
        assert client.connected
        assert client.reconnect_count == 1
        assert mock_receiver.connection_count == 2


@pytest.mark.asyncio
async def test_reconnect_from_empty(mock_receiver: MockReceiver) -> None:
    """Test reconnect opens a connection when none is held."""
    client = _client(mock_receiver)
    await client.reconnect()
    try:
        assert client.connected
        assert client.reconnect_count == 1
    finally:
        await client.disconnect()


@pytest.fixture
def mock_receiver() -> MockReceiver:
    """Create mock receiver fixture."""
    receiver = MockReceiver()
    receiver.start()
    yield receiver
    receiver.stop()
