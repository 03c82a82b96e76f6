"""SSH transport sessions with a bounded connection phase.

One connection per target pipeline. Each command runs on its own channel,
opened and closed in sequence on that connection. Callers release the
connection through ``session()``, which closes it on every exit path.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import asyncssh

from fleetsh.errors import ConfigError, ConnectionError, ConnectionTimeoutError, RemoteCommandError

if TYPE_CHECKING:
    from fleetsh.models import SessionConfig, Target

logger = logging.getLogger(__name__)


def load_client_key(path: str) -> asyncssh.SSHKey:
    """Read and parse the private key used for authentication.

    Args:
        path: Path to the private key file (``~`` already expanded)

    Returns:
        Parsed private key

    Raises:
        ConfigError: If the key cannot be read or parsed
    """
    try:
        return asyncssh.read_private_key(path)
    except OSError as e:
        raise ConfigError(f"failed to read private key from {path}: {e}") from e
    except (asyncssh.KeyImportError, asyncssh.KeyEncryptionError) as e:
        raise ConfigError(f"failed to parse private key: {e}") from e


async def open_connection(
    address: str,
    config: "SessionConfig",
) -> asyncssh.SSHClientConnection:
    """Open an authenticated SSH connection.

    Key loading happens before the dial. The dial itself is bounded by
    ``config.connect_timeout``.

    Args:
        address: IP address or hostname to dial
        config: Shared session configuration

    Returns:
        Open SSH connection; the caller must close it

    Raises:
        ConfigError: If the private key is unusable
        ConnectionTimeoutError: If the dial did not finish in time
        ConnectionError: If the dial failed
    """
    client_key = load_client_key(config.key_path)

    logger.debug(
        "Opening SSH connection to %s@%s:%d",
        config.user,
        address,
        config.port,
    )
    try:
        conn = await asyncio.wait_for(
            asyncssh.connect(
                address,
                port=config.port,
                username=config.user,
                client_keys=[client_key],
                known_hosts=config.known_hosts,
                agent_path=None,
                preferred_auth="publickey",
            ),
            timeout=config.connect_timeout,
        )
    except asyncio.TimeoutError as e:
        logger.warning(
            "SSH connection to %s timed out after %gs", address, config.connect_timeout
        )
        raise ConnectionTimeoutError(address, config.connect_timeout) from e
    except (OSError, asyncssh.Error) as e:
        logger.warning("SSH connection to %s failed: %s", address, e)
        raise ConnectionError(address, e) from e

    logger.debug("SSH connection established to %s:%d", address, config.port)
    return conn


@asynccontextmanager
async def session(
    target: "Target",
    config: "SessionConfig",
) -> AsyncIterator[asyncssh.SSHClientConnection]:
    """Open a connection to a target and close it when the block exits."""
    conn = await open_connection(target.ip, config)
    try:
        yield conn
    finally:
        conn.close()
        logger.debug("Closed SSH connection to %s", target.ip)


def _decode(data: str | bytes | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


async def run_remote(conn: asyncssh.SSHClientConnection, command: str) -> str:
    """Run one command on a new channel and capture its standard output.

    Args:
        conn: Open SSH connection
        command: Shell command to run

    Returns:
        Captured stdout as text

    Raises:
        RemoteCommandError: If the command exits nonzero or the channel fails
    """
    try:
        result = await conn.run(command, check=False)
    except (OSError, asyncssh.Error) as e:
        raise RemoteCommandError(command, reason=str(e)) from e

    if result.returncode is None:
        raise RemoteCommandError(command, reason="channel closed without exit status")
    if result.returncode != 0:
        raise RemoteCommandError(
            command,
            exit_status=result.returncode,
            stderr=_decode(result.stderr),
        )

    return _decode(result.stdout)
