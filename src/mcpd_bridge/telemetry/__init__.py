"""Operational logging for mcpd-bridge."""

from mcpd_bridge.telemetry.system_logger import (
    configure_system_logger_file,
    get_system_logger,
    log_event,
    quiet_http_loggers,
)

__all__ = [
    "configure_system_logger_file",
    "get_system_logger",
    "log_event",
    "quiet_http_loggers",
]
