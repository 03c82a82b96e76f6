"""Services for fleetsh."""

from fleetsh.services.audit import AuditLog
from fleetsh.services.discovery import discover_targets, parse_tags
from fleetsh.services.dispatcher import (
    command_action,
    dispatch,
    format_failure_report,
    transfer_action,
)
from fleetsh.services.executors import execute_on, run_command
from fleetsh.services.probes import command_available, directory_exists
from fleetsh.services.session import open_connection, run_remote, session
from fleetsh.services.transfer import decompress_command, transfer_file

__all__ = [
    "AuditLog",
    "command_action",
    "command_available",
    "decompress_command",
    "directory_exists",
    "discover_targets",
    "dispatch",
    "execute_on",
    "format_failure_report",
    "open_connection",
    "parse_tags",
    "run_command",
    "run_remote",
    "session",
    "transfer_action",
    "transfer_file",
]
