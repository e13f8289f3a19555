"""System logger for operational events.

Every component (supervisor, translator, stdio bridge, gateway) logs through
one singleton logger so operators get a single stream of events.

Logging strategy:
- Console (stderr): INFO and above. stdout is never used because the stdio
  bridge reserves it for protocol frames.
- File (JSONL): WARNING and above, added via configure_system_logger_file()
  once a log location is known.

Log entries are dicts with at least an "event" key; use log_event() with a
SystemEvent model rather than building dicts by hand.
"""

from __future__ import annotations

__all__ = [
    "ConsoleFormatter",
    "configure_system_logger_file",
    "get_system_logger",
    "log_event",
    "quiet_http_loggers",
]

import logging
import sys
from pathlib import Path

from mcpd_bridge.constants import APP_NAME
from mcpd_bridge.models import SystemEvent
from mcpd_bridge.telemetry.iso_formatter import ISO8601Formatter

# Third-party loggers that are noisy at INFO
_NOISY_LOGGERS: tuple[str, ...] = (
    "httpx",
    "httpcore",
    "uvicorn.access",
    "mcp.server.lowlevel.server",
)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for console output.

    Extracts the 'message' or 'event' field from dict messages.
    """

    def format(self, record: logging.LogRecord) -> str:
        if isinstance(record.msg, dict):
            msg = record.msg.get("message") or record.msg.get("event", "")
            return f"{record.levelname}: {msg}"
        return f"{record.levelname}: {record.getMessage()}"


_system_logger: logging.Logger | None = None
_file_handler_configured: bool = False


def get_system_logger() -> logging.Logger:
    """Get the singleton system logger instance.

    Creates the logger on first call with a stderr handler only.

    Returns:
        logging.Logger: Configured system logger instance.

    Example:
        >>> logger = get_system_logger()
        >>> logger.warning({"event": "server_tools_failed", "message": "..."})
    """
    global _system_logger

    if _system_logger is not None:
        return _system_logger

    _system_logger = logging.getLogger(f"{APP_NAME}.system")
    _system_logger.setLevel(logging.INFO)
    _system_logger.propagate = False

    for handler in _system_logger.handlers:
        handler.close()
    _system_logger.handlers.clear()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.INFO)
    stderr_handler.setFormatter(ConsoleFormatter())
    _system_logger.addHandler(stderr_handler)

    return _system_logger


def configure_system_logger_file(log_path: Path) -> None:
    """Add a JSONL file handler (WARNING and above) to the system logger.

    Only the first call has an effect. Failure to create the file is logged
    to stderr and otherwise ignored; console logging keeps working.

    Args:
        log_path: Path of the JSONL log file.
    """
    global _file_handler_configured

    if _file_handler_configured:
        return

    logger = get_system_logger()

    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    except OSError as e:
        log_event(
            logging.WARNING,
            SystemEvent(
                event="file_logging_failed",
                message=f"Failed to configure file logging at {log_path}",
                error_type=type(e).__name__,
                error_message=str(e),
            ),
        )
        return

    file_handler.setLevel(logging.WARNING)
    file_handler.setFormatter(ISO8601Formatter())
    logger.addHandler(file_handler)
    _file_handler_configured = True


def log_event(level: int, event: SystemEvent) -> None:
    """Log a SystemEvent at the specified level.

    Args:
        level: Logging level (e.g., logging.INFO, logging.WARNING).
        event: The event to log.
    """
    get_system_logger().log(level, event.model_dump(exclude_none=True))


def quiet_http_loggers() -> None:
    """Raise third-party HTTP/server loggers to WARNING."""
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
