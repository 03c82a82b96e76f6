"""Command execution data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CommandRequest:
    """Run one shell command on every target."""

    command: str
