"""Tests for the command executor."""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from fleetsh.errors import ConnectionTimeoutError, RemoteCommandError
from fleetsh.models import SessionConfig, Target
from fleetsh.services.executors import execute_on, format_command_header, run_command


@pytest.fixture
def target() -> Target:
    return Target(instance_id="i-0abc", ip="10.0.0.5", name="web-1")


@pytest.fixture
def mock_connection() -> AsyncMock:
    """Create a mock SSH connection."""
    conn = AsyncMock()
    conn.run.return_value = MagicMock(stdout="up 3 days\n", stderr="", returncode=0)
    return conn


def test_format_command_header_layout(target: Target) -> None:
    """Header has a fixed line layout between ten-dash separators."""
    header = format_command_header(target, "uptime", now=datetime(2024, 3, 9, 7, 5, 1))

    assert header == (
        "----------\n"
        "Time: 2024-03-09 07:05:01\n"
        "ID: i-0abc\n"
        "Name: web-1\n"
        "IP: 10.0.0.5\n"
        "Command: uptime\n"
        "----------\n"
    )


def test_format_command_header_unnamed_target() -> None:
    """Targets without a name show the placeholder."""
    header = format_command_header(Target(instance_id="i-1", ip="10.0.0.1"), "ls")
    assert "Name: -\n" in header


@pytest.mark.asyncio
async def test_execute_on_without_header(mock_connection: AsyncMock, target: Target) -> None:
    """Output is stdout plus a trailing newline."""
    output = await execute_on(mock_connection, target, "uptime")

    assert output == "up 3 days\n\n"


@pytest.mark.asyncio
async def test_execute_on_with_header(mock_connection: AsyncMock, target: Target) -> None:
    """Header precedes the captured output."""
    output = await execute_on(mock_connection, target, "uptime", display_header=True)

    assert output.startswith("----------\nTime: ")
    assert "Command: uptime\n----------\nup 3 days\n\n" in output


@pytest.mark.asyncio
async def test_execute_on_records_success(mock_connection: AsyncMock, target: Target) -> None:
    """Successful executions are audited with no error."""
    audit = MagicMock()

    await execute_on(mock_connection, target, "uptime", audit=audit)

    audit.record.assert_called_once_with(target, "uptime", None)


@pytest.mark.asyncio
async def test_execute_on_records_failure(mock_connection: AsyncMock, target: Target) -> None:
    """Failed executions are audited and re-raised."""
    mock_connection.run.return_value = MagicMock(stdout="", stderr="boom", returncode=1)
    audit = MagicMock()

    with pytest.raises(RemoteCommandError):
        await execute_on(mock_connection, target, "false", audit=audit)

    recorded_target, command, error = audit.record.call_args[0]
    assert recorded_target == target
    assert command == "false"
    assert isinstance(error, RemoteCommandError)


@pytest.mark.asyncio
async def test_run_command_closes_connection(mock_connection: AsyncMock, target: Target) -> None:
    """Connection is closed after a successful command."""
    mock_connection.close = MagicMock()

    with patch("fleetsh.services.executors.open_connection", new_callable=AsyncMock) as mock_open:
        mock_open.return_value = mock_connection
        output = await run_command(SessionConfig(), target, "uptime")

    assert "Command: uptime" in output
    mock_open.assert_called_once()
    mock_connection.close.assert_called_once()


@pytest.mark.asyncio
async def test_run_command_closes_connection_on_failure(mock_connection: AsyncMock, target: Target) -> None:
    """Connection is closed when the command fails."""
    mock_connection.run.return_value = MagicMock(stdout="", stderr="", returncode=127)
    mock_connection.close = MagicMock()

    with patch("fleetsh.services.executors.open_connection", new_callable=AsyncMock) as mock_open:
        mock_open.return_value = mock_connection
        with pytest.raises(RemoteCommandError):
            await run_command(SessionConfig(), target, "nope")

    mock_connection.close.assert_called_once()


@pytest.mark.asyncio
async def test_run_command_audits_connection_failure(target: Target) -> None:
    """Connection failures are audited against the command."""
    audit = MagicMock()
    error = ConnectionTimeoutError(target.ip, 5)

    with patch("fleetsh.services.executors.open_connection", new_callable=AsyncMock) as mock_open:
        mock_open.side_effect = error
        with pytest.raises(ConnectionTimeoutError):
            await run_command(SessionConfig(), target, "uptime", audit=audit)

    audit.record.assert_called_once_with(target, "uptime", error)
