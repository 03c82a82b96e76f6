"""File transfer data models."""

import posixpath
from dataclasses import dataclass

from fleetsh.errors import ConfigError

DEFAULT_PERMISSION = "0644"


def parse_permission(permission: str) -> int:
    """Parse an octal permission string such as ``0644``.

    Args:
        permission: Octal mode string, with or without a leading zero

    Returns:
        Permission bits as an integer

    Raises:
        ConfigError: If the string is not an octal mode
    """
    try:
        mode = int(permission, 8)
    except (TypeError, ValueError):
        raise ConfigError(f"invalid permission: {permission!r}") from None
    if not 0 <= mode <= 0o7777:
        raise ConfigError(f"invalid permission: {permission!r}")
    return mode


@dataclass(frozen=True)
class TransferRequest:
    """Copy one local file to the same remote path on every target."""

    source: str
    destination: str
    permission: str = DEFAULT_PERMISSION
    decompress: bool = False
    create_dir: bool = False

    def __post_init__(self) -> None:
        # Fail before any connection is opened.
        parse_permission(self.permission)

    @property
    def mode(self) -> int:
        """Get the permission bits to apply to the destination file."""
        return parse_permission(self.permission)

    @property
    def destination_dir(self) -> str:
        """Get the parent directory of the destination path."""
        return posixpath.dirname(self.destination) or "."
