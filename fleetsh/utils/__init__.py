"""Utilities for fleetsh."""

from fleetsh.utils.console import ColorfulFormatter, configure_logging
from fleetsh.utils.shell import quote_arg, quote_path

__all__ = [
    "ColorfulFormatter",
    "configure_logging",
    "quote_arg",
    "quote_path",
]
