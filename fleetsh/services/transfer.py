"""Transfer executor: copy one local file to one target.

Every step runs in order on a single connection and the first failure aborts
the rest:

1. connect and open an SFTP channel
2. open the local source file
3. check the destination directory, creating it when asked
4. upload the file and apply the permission bits
5. write the header block
6. optionally decompress the file on the remote
7. list the result
"""

import logging
import posixpath
from contextlib import AsyncExitStack
from datetime import datetime
from typing import TYPE_CHECKING

import asyncssh

from fleetsh.errors import PreconditionError, TransferError, UnsupportedArchiveError
from fleetsh.services.executors import execute_on, format_header
from fleetsh.services.probes import command_available, directory_exists
from fleetsh.services.session import session
from fleetsh.utils.shell import quote_path

if TYPE_CHECKING:
    from fleetsh.models import SessionConfig, Target, TransferRequest
    from fleetsh.services.audit import AuditLog

logger = logging.getLogger(__name__)

# Longest suffix first: ".tar.gz" must win over ".gz".
DECOMPRESSORS = (
    (".tar.gz", "tar -xzf"),
    (".tar", "tar -xf"),
    (".gz", "gunzip -df"),
    (".zip", "unzip"),
)


def _decompressor(path: str) -> str:
    for suffix, invocation in DECOMPRESSORS:
        if path.endswith(suffix):
            return invocation
    raise UnsupportedArchiveError(path)


def decompress_command(path: str) -> str:
    """Build the shell command that unpacks a remote file in place.

    Args:
        path: Remote path of the archive

    Returns:
        Command that changes into the file's directory and unpacks it

    Raises:
        UnsupportedArchiveError: If the extension has no known decompressor

    Examples:
        >>> decompress_command("/d/a.tar.gz")
        'cd /d && tar -xzf a.tar.gz'
    """
    invocation = _decompressor(path)
    directory = posixpath.dirname(path) or "."
    filename = posixpath.basename(path)
    return f"cd {quote_path(directory)} && {invocation} {quote_path(filename)}"


def decompress_tool(path: str) -> str:
    """Get the executable that ``decompress_command`` relies on."""
    return _decompressor(path).split()[0]


def format_transfer_header(
    target: "Target",
    request: "TransferRequest",
    now: datetime | None = None,
) -> str:
    """Format the header printed above a transfer's listing."""
    fields = [
        ("Source", request.source),
        ("Destination", request.destination),
        ("Permission", request.permission),
    ]
    return format_header(target, fields, now)


async def _ensure_directory(
    conn: asyncssh.SSHClientConnection,
    target: "Target",
    request: "TransferRequest",
    audit: "AuditLog | None",
) -> None:
    directory = request.destination_dir
    if await directory_exists(conn, target, directory, audit=audit):
        return

    if not request.create_dir:
        raise PreconditionError(
            f"destination directory {directory} does not exist on {target.ip}"
        )

    logger.info("Creating %s on %s", directory, target.ip)
    await execute_on(conn, target, f"mkdir -p {quote_path(directory)}", audit=audit)


async def _decompress(
    conn: asyncssh.SSHClientConnection,
    target: "Target",
    request: "TransferRequest",
    audit: "AuditLog | None",
) -> str:
    command = decompress_command(request.destination)
    tool = decompress_tool(request.destination)

    if not await command_available(conn, target, tool, audit=audit):
        raise PreconditionError("decompression command not available on remote")

    return await execute_on(conn, target, command, audit=audit)


async def transfer_file(
    config: "SessionConfig",
    target: "Target",
    request: "TransferRequest",
    audit: "AuditLog | None" = None,
) -> str:
    """Copy a local file to one target.

    Args:
        config: Shared session configuration
        target: Host to copy to
        request: Source, destination, permission and options
        audit: Audit log for the remote commands run along the way

    Returns:
        Header block followed by the outputs of the remote commands

    Raises:
        ConfigError: If the private key is unusable
        ConnectionError: If the connection cannot be established
        TransferError: If the source cannot be read or the upload fails
        PreconditionError: If the destination directory or the
            decompression tool is missing
        UnsupportedArchiveError: If decompression is requested for an
            unknown extension
        ProbeProtocolError: If the directory probe misbehaves
        RemoteCommandError: If a remote step fails
    """
    parts: list[str] = []

    async with AsyncExitStack() as stack:
        conn = await stack.enter_async_context(session(target, config))
        try:
            sftp = await stack.enter_async_context(conn.start_sftp_client())
        except (OSError, asyncssh.Error) as e:
            raise TransferError(f"failed to open SFTP session: {e}") from e

        try:
            stack.enter_context(open(request.source, "rb"))
        except OSError as e:
            raise TransferError(f"failed to open file: {e}") from e

        await _ensure_directory(conn, target, request, audit)

        try:
            await sftp.put(request.source, request.destination)
            await sftp.chmod(request.destination, request.mode)
        except (OSError, asyncssh.Error) as e:
            raise TransferError(f"error while copying file: {e}") from e

        logger.info("Copied %s to %s:%s", request.source, target.ip, request.destination)
        parts.append(format_transfer_header(target, request))

        if request.decompress:
            parts.append(await _decompress(conn, target, request, audit))
            listing = f"ls -lart {quote_path(request.destination_dir)}"
        else:
            listing = f"ls -ltr {quote_path(request.destination)}"

        parts.append(await execute_on(conn, target, listing, audit=audit))

    return "".join(parts)
