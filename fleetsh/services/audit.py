"""Append-only audit log of remote command executions.

Each record is one JSON object per line, written through a dedicated
``logging`` handler so that audit records never mix with console logs.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fleetsh.models import Target

DEFAULT_HISTORY_FILE = "~/.fleetsh_history"

SUCCESS_MESSAGE = "Successfully executed SSH command"
FAILURE_MESSAGE = "Failed executing SSH command"

_AUDIT_FIELDS = ("ip", "name", "command", "error")


class JsonAuditFormatter(logging.Formatter):
    """Render audit records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "msg": record.getMessage(),
        }
        fields = getattr(record, "audit", {})
        for key in _AUDIT_FIELDS:
            if fields.get(key) is not None:
                payload[key] = fields[key]
        return json.dumps(payload, ensure_ascii=False)


class AuditLog:
    """Structured sink for command executions.

    Example:
        >>> audit = AuditLog("~/.fleetsh_history")
        >>> audit.record(target, "uptime", None)
    """

    def __init__(self, path: str = DEFAULT_HISTORY_FILE) -> None:
        """Open the audit log for appending.

        Args:
            path: Log file path; ``~`` is expanded and the file is created if needed
        """
        self.path = os.path.expanduser(path)
        self._handler = logging.FileHandler(self.path, mode="a", encoding="utf-8")
        self._handler.setFormatter(JsonAuditFormatter())

        # One logger per file; a reopened file replaces any handler still attached.
        self._logger = logging.getLogger(f"fleetsh.audit.{self.path}")
        for stale in list(self._logger.handlers):
            self._logger.removeHandler(stale)
            stale.close()
        self._logger.setLevel(logging.INFO)
        self._logger.addHandler(self._handler)
        self._logger.propagate = False

    def record(self, target: "Target", command: str, error: Exception | None) -> None:
        """Append one execution record.

        Args:
            target: Host the command ran on
            command: Command text
            error: Failure, or None on success
        """
        fields = {
            "ip": target.ip,
            "name": target.display_name,
            "command": command,
            "error": str(error) if error is not None else None,
        }
        message = FAILURE_MESSAGE if error is not None else SUCCESS_MESSAGE
        self._logger.info(message, extra={"audit": fields})

    def close(self) -> None:
        """Flush and detach the file handler."""
        self._logger.removeHandler(self._handler)
        self._handler.close()

    def __enter__(self) -> "AuditLog":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
