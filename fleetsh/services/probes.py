"""Read-only probes of remote state.

Probes run without a header; their output is classified, never shown.
"""

import logging
from typing import TYPE_CHECKING

from fleetsh.errors import FleetError, ProbeProtocolError
from fleetsh.services.executors import execute_on
from fleetsh.utils.shell import quote_arg, quote_path

if TYPE_CHECKING:
    import asyncssh

    from fleetsh.models import Target
    from fleetsh.services.audit import AuditLog

logger = logging.getLogger(__name__)

EXISTS = "exists"
NOT_EXISTS = "not exists"


def directory_probe_command(path: str) -> str:
    return f"[ -d {quote_path(path)} ] && echo '{EXISTS}' || echo '{NOT_EXISTS}'"


async def directory_exists(
    conn: "asyncssh.SSHClientConnection",
    target: "Target",
    path: str,
    audit: "AuditLog | None" = None,
) -> bool:
    """Check whether a directory exists on the target.

    Returns:
        True for ``exists``, False for ``not exists``

    Raises:
        ProbeProtocolError: If the probe printed anything else
        RemoteCommandError: If the probe could not run
    """
    output = await execute_on(conn, target, directory_probe_command(path), audit=audit)
    output = output.strip()

    if output == EXISTS:
        return True
    if output == NOT_EXISTS:
        return False
    raise ProbeProtocolError(output)


async def command_available(
    conn: "asyncssh.SSHClientConnection",
    target: "Target",
    name: str,
    audit: "AuditLog | None" = None,
) -> bool:
    """Check whether an executable is on the target's PATH.

    A probe that fails to run counts as "not available"; the two cases are
    not distinguished.
    """
    try:
        output = await execute_on(conn, target, f"command -v {quote_arg(name)}", audit=audit)
    except FleetError as e:
        logger.debug("Availability probe for %s failed on %s: %s", name, target.ip, e)
        return False
    return output.strip() != ""
