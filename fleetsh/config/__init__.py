"""Configuration module for fleetsh.

- Settings: Environment variable configuration
- HostKeyVerifier: Opt-in SSH host key verification
"""

from fleetsh.config.host_keys import HostKeyVerifier
from fleetsh.config.settings import IP_TYPES, Settings

__all__ = ["HostKeyVerifier", "IP_TYPES", "Settings"]
