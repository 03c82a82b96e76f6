"""SSH host key verification.

Verification is off unless a known_hosts file is configured. Fleet hosts are
usually short-lived cloud instances whose keys are not known ahead of time.
"""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class HostKeyVerifier:
    """SSH host key verification manager.

    Resolves the FLEETSH_KNOWN_HOSTS setting into a known_hosts path, or
    None when verification is disabled.
    """

    def __init__(
        self,
        known_hosts_path: str | None = None,
        strict_checking: bool = True,
    ):
        """Initialize host key verifier.

        Args:
            known_hosts_path: Path to known_hosts file, or None/'none' to disable
            strict_checking: Raise when a configured file is missing

        Raises:
            FileNotFoundError: If strict mode and file missing
        """
        self.strict_checking = strict_checking
        self._known_hosts = self._resolve_known_hosts(known_hosts_path)

    @classmethod
    def from_env(cls) -> "HostKeyVerifier":
        """Create verifier from FLEETSH_KNOWN_HOSTS and FLEETSH_STRICT_HOST_KEY_CHECKING."""
        strict = os.getenv("FLEETSH_STRICT_HOST_KEY_CHECKING", "true").lower()
        return cls(
            known_hosts_path=os.getenv("FLEETSH_KNOWN_HOSTS"),
            strict_checking=strict in ("1", "true", "yes", "on"),
        )

    def _resolve_known_hosts(self, value: str | None) -> str | None:
        """Resolve known_hosts path.

        Returns:
            Path to known_hosts file or None to disable verification

        Raises:
            FileNotFoundError: If strict mode and file missing
        """
        if not value or value.lower() == "none":
            logger.warning(
                "SSH host key verification DISABLED - vulnerable to MITM attacks. "
                "Set FLEETSH_KNOWN_HOSTS to a known_hosts file to enable it."
            )
            return None

        path = Path(os.path.expanduser(value))
        if not path.exists():
            if self.strict_checking:
                raise FileNotFoundError(
                    f"SSH host key verification requested but "
                    f"known_hosts file not found: {path}\n\n"
                    f"To fix this:\n"
                    f"1. Add host keys: ssh-keyscan <ip> >> {path}\n"
                    f"2. Or disable verification: unset FLEETSH_KNOWN_HOSTS"
                )
            logger.warning(
                "known_hosts not found at %s, verification disabled. "
                "This is insecure!",
                path,
            )
            return None

        logger.info("SSH host key verification enabled (known_hosts=%s)", path)
        return str(path)

    def get_known_hosts_path(self) -> str | None:
        """Get path to known_hosts file.

        Returns:
            Path string or None if verification disabled
        """
        return self._known_hosts

    def is_enabled(self) -> bool:
        """Check if host key verification is enabled."""
        return self._known_hosts is not None
