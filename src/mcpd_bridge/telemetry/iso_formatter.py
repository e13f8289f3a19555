"""JSONL log formatting with ISO 8601 timestamps."""

from __future__ import annotations

__all__ = ["ISO8601Formatter"]

import json
import logging
from datetime import datetime, timezone


class ISO8601Formatter(logging.Formatter):
    """Formatter that writes one JSON object per record, timestamped in UTC.

    Format: YYYY-MM-DDTHH:MM:SS.sssZ
    Example: 2026-03-14T09:12:45.318Z
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as a JSONL line.

        Args:
            record: The log record to format.

        Returns:
            str: JSON-formatted log entry with "time" as the first field.
        """
        timestamp = (
            datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z")
        )

        if isinstance(record.msg, dict):
            log_data = record.msg
        else:
            log_data = {"message": record.getMessage()}

        log_entry = {"time": timestamp, "level": record.levelname, **log_data}
        return json.dumps(log_entry, default=str)
