"""Command executor: run one command on one target."""

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from fleetsh.errors import FleetError
from fleetsh.services.session import open_connection, run_remote

if TYPE_CHECKING:
    import asyncssh

    from fleetsh.models import SessionConfig, Target
    from fleetsh.services.audit import AuditLog

logger = logging.getLogger(__name__)

SEPARATOR = "-" * 10
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_header(
    target: "Target",
    fields: list[tuple[str, str]],
    now: datetime | None = None,
) -> str:
    """Format the transcript header block for one target.

    Args:
        target: Host the action ran on
        fields: Action-specific (label, value) lines after the target identity
        now: Timestamp to print (defaults to the current local time)

    Returns:
        Header text, newline-terminated
    """
    now = now or datetime.now()
    lines = [
        SEPARATOR,
        f"Time: {now.strftime(TIME_FORMAT)}",
        f"ID: {target.instance_id}",
        f"Name: {target.display_name}",
        f"IP: {target.ip}",
    ]
    lines.extend(f"{label}: {value}" for label, value in fields)
    lines.append(SEPARATOR)
    return "\n".join(lines) + "\n"


def format_command_header(
    target: "Target",
    command: str,
    now: datetime | None = None,
) -> str:
    """Format the header printed above a command's output."""
    return format_header(target, [("Command", command)], now)


async def execute_on(
    conn: "asyncssh.SSHClientConnection",
    target: "Target",
    command: str,
    display_header: bool = False,
    audit: "AuditLog | None" = None,
) -> str:
    """Run a command on an already-open connection.

    Args:
        conn: Open SSH connection to the target
        target: Host the connection belongs to
        command: Shell command to run
        display_header: Prefix the output with the header block
        audit: Audit log to record the execution in

    Returns:
        Optional header, captured stdout, and a trailing newline

    Raises:
        RemoteCommandError: If the command fails
    """
    try:
        stdout = await run_remote(conn, command)
    except FleetError as e:
        logger.debug("Command failed on %s: %s", target.ip, e)
        if audit is not None:
            audit.record(target, command, e)
        raise

    if audit is not None:
        audit.record(target, command, None)

    header = format_command_header(target, command) if display_header else ""
    return f"{header}{stdout}\n"


async def run_command(
    config: "SessionConfig",
    target: "Target",
    command: str,
    display_header: bool = True,
    audit: "AuditLog | None" = None,
) -> str:
    """Connect to a target, run one command, and disconnect.

    Returns:
        Formatted output (see ``execute_on``)

    Raises:
        ConfigError: If the private key is unusable
        ConnectionError: If the connection cannot be established
        RemoteCommandError: If the command fails
    """
    try:
        conn = await open_connection(target.ip, config)
    except FleetError as e:
        if audit is not None:
            audit.record(target, command, e)
        raise

    try:
        return await execute_on(conn, target, command, display_header, audit)
    finally:
        conn.close()
