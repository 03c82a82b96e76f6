"""Error types raised by the fleet execution pipeline.

All errors are local to one target's pipeline. The dispatcher collects them
per target; nothing here propagates across branches.
"""


class FleetError(Exception):
    """Base class for fleetsh errors."""


class ConfigError(FleetError):
    """Missing or unusable local configuration (private key, permission)."""


class ConnectionError(FleetError):
    """Failed to establish SSH connection."""

    def __init__(self, address: str, original_error: Exception | str):
        """Initialize connection error.

        Args:
            address: Address that was dialed
            original_error: Underlying error or message
        """
        self.address = address
        self.original_error = original_error
        super().__init__(f"Cannot connect to {address}: {original_error}")


class ConnectionTimeoutError(ConnectionError):
    """No connection result arrived within the dial timeout."""

    def __init__(self, address: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            address, f"ssh connection timed out after {timeout:g} seconds"
        )


class RemoteCommandError(FleetError):
    """Remote command exited nonzero or its channel failed."""

    def __init__(
        self,
        command: str,
        exit_status: int | None = None,
        stderr: str = "",
        reason: str | None = None,
    ):
        self.command = command
        self.exit_status = exit_status
        self.stderr = stderr
        if reason is None:
            reason = f"exit status {exit_status}"
            if stderr.strip():
                reason += f": {stderr.strip()}"
        super().__init__(f"failed to run command {command!r}: {reason}")


class ProbeProtocolError(FleetError):
    """A probe produced output outside its expected vocabulary."""

    def __init__(self, output: str):
        self.output = output
        super().__init__(f"unexpected output: {output}")


class PreconditionError(FleetError):
    """A remote precondition (directory, tool) does not hold."""


class UnsupportedArchiveError(FleetError):
    """No decompression command is known for a file extension."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"unsupported file extension for {path}")


class TransferError(FleetError):
    """Local source could not be read or the upload failed."""


class DiscoveryError(FleetError):
    """Target discovery failed or matched nothing."""

