"""fleetsh: run a command or copy a file on a fleet of hosts concurrently."""

__version__ = "0.1.0"
