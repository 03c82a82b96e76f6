"""Fleet target data models."""

from dataclasses import dataclass

NAME_PLACEHOLDER = "-"


@dataclass(frozen=True)
class Target:
    """One remote host resolved by discovery.

    Immutable and hashable so it can key per-target result maps.
    """

    instance_id: str
    ip: str
    name: str | None = None

    @property
    def display_name(self) -> str:
        """Get the name to show in headers and reports.

        Returns:
            The instance name, or a placeholder when it has none
        """
        return self.name or NAME_PLACEHOLDER
