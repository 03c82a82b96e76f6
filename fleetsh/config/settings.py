"""Application settings from environment variables.

Centralized environment variable parsing and validation. Command-line flags
override these values; the resulting configuration is built once per run.
"""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

IP_TYPES = ("public", "private")


@dataclass(frozen=True)
class Settings:
    """Application settings from environment.

    Handles parsing, validation, and defaults for all env vars.
    """

    # SSH
    user: str = field(default="ec2-user")
    private_key: str = field(default="~/.ssh/id_rsa")
    port: int = field(default=22)
    connect_timeout: float = field(default=5.0)

    # Discovery
    region: str = field(default="ap-northeast-1")
    ip_type: str = field(default="private")

    # Audit log
    history_file: str = field(default="~/.fleetsh_history")

    # Logging
    log_level: str = field(default="WARNING")
    log_colors: bool = field(default=True)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from FLEETSH_* environment variables.

        Returns:
            Settings instance with values from environment
        """
        return cls(
            user=os.getenv("FLEETSH_USER", "ec2-user"),
            private_key=os.getenv("FLEETSH_PRIVATE_KEY", "~/.ssh/id_rsa"),
            port=cls._get_int("FLEETSH_PORT", 22),
            connect_timeout=cls._get_float("FLEETSH_CONNECT_TIMEOUT", 5.0),
            region=os.getenv("FLEETSH_REGION", "ap-northeast-1"),
            ip_type=cls._get_ip_type(),
            history_file=os.getenv("FLEETSH_HISTORY_FILE", "~/.fleetsh_history"),
            log_level=os.getenv("FLEETSH_LOG_LEVEL", "WARNING").upper(),
            log_colors=cls._get_bool("FLEETSH_LOG_COLORS", True),
        )

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Get integer from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Integer value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

    @staticmethod
    def _get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        if value is None:
            return default

        try:
            parsed = float(value)
        except ValueError:
            logger.warning("Invalid number for %s: %s, using default %g", key, value, default)
            return default
        if parsed <= 0:
            logger.warning("%s must be > 0, got %s. Using default: %g", key, value, default)
            return default
        return parsed

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _get_ip_type() -> str:
        """Get IP address class from environment with validation.

        Returns:
            "public" or "private"
        """
        ip_type = os.getenv("FLEETSH_IP_TYPE", "").lower()
        if ip_type in IP_TYPES:
            return ip_type
        if ip_type:
            logger.warning("Invalid FLEETSH_IP_TYPE: %s, using default private", ip_type)
        return "private"
