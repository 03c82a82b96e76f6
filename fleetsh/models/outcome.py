"""Per-target execution results."""

from dataclasses import dataclass

from fleetsh.models.target import Target


@dataclass
class ExecutionOutcome:
    """Result from a single target in a fan-out."""

    target: Target
    output: str = ""
    error: Exception | None = None

    @property
    def success(self) -> bool:
        return self.error is None
