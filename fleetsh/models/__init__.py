"""Data models for fleetsh."""

from fleetsh.models.command import CommandRequest
from fleetsh.models.outcome import ExecutionOutcome
from fleetsh.models.ssh import SessionConfig
from fleetsh.models.target import Target
from fleetsh.models.transfer import TransferRequest, parse_permission

__all__ = [
    "CommandRequest",
    "ExecutionOutcome",
    "SessionConfig",
    "Target",
    "TransferRequest",
    "parse_permission",
]
