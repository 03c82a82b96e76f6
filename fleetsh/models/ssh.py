"""SSH-related data models."""

import os
from dataclasses import dataclass

DEFAULT_CONNECT_TIMEOUT = 5.0


@dataclass(frozen=True)
class SessionConfig:
    """Connection settings shared read-only by every branch of a run."""

    private_key_path: str = "~/.ssh/id_rsa"
    user: str = "ec2-user"
    port: int = 22
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    known_hosts: str | None = None

    @property
    def key_path(self) -> str:
        """Get the private key path with ``~`` expanded."""
        return os.path.expanduser(self.private_key_path)

    @property
    def verifies_host_keys(self) -> bool:
        """Check if host keys are verified against a known_hosts file."""
        return self.known_hosts is not None
