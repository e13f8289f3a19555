"""Application-wide constants for mcpd-bridge.

Constants that define application behavior.
For user-configurable settings per deployment, see config.py.
"""

from __future__ import annotations

__all__ = [
    # Application identity
    "APP_NAME",
    "DAEMON_BINARY_NAME",
    # Daemon API
    "DEFAULT_MCPD_URL",
    "MCPD_API_PREFIX",
    "DEFAULT_REQUEST_TIMEOUT_SECONDS",
    "HEALTH_CHECK_TIMEOUT_SECONDS",
    "BACKEND_API_KEY_HEADER",
    # Namespacing
    "NAMESPACE_DELIMITER",
    # Daemon supervisor
    "DAEMON_LOG_FILENAME",
    "DAEMON_CONFIG_FILENAME",
    "SYSTEM_LOG_FILENAME",
    "INITIAL_DAEMON_CONFIG",
    "SYSTEM_DAEMON_PATHS",
    "EXTRA_TOOL_PATHS",
    "NODE_MODULE_PATHS",
    "PORT_IN_USE_PATTERN",
    "STARTUP_PROBE_DELAY_SECONDS",
    "STARTUP_ABSOLUTE_TIMEOUT_SECONDS",
    "PORT_CONFLICT_PROBE_DELAY_SECONDS",
    "RESTART_GRACE_SECONDS",
    "STOP_TIMEOUT_SECONDS",
    "STDERR_DRAIN_TIMEOUT_SECONDS",
    "DAEMON_PROCESS_PATTERN",
    # Gateway
    "DEFAULT_GATEWAY_PORT",
    "DEFAULT_MCP_PORT",
    "DEFAULT_GATEWAY_API_KEY",
    "DEFAULT_RATE_LIMIT_REQUESTS",
    "DEFAULT_RATE_LIMIT_WINDOW_SECONDS",
    "MAX_REQUEST_BYTES",
    "MCP_PROTOCOL_VERSION",
]

# ============================================================================
# Application Identity
# ============================================================================

# Application name used for directory names and logger names
APP_NAME: str = "mcpd-bridge"

# Name of the daemon executable when resolved through PATH
DAEMON_BINARY_NAME: str = "mcpd"

# ============================================================================
# Daemon API
# ============================================================================

DEFAULT_MCPD_URL: str = "http://localhost:8090"

# All daemon endpoints live under this prefix
MCPD_API_PREFIX: str = "/api/v1"

# Bounded timeout for every outbound call to the daemon (seconds)
DEFAULT_REQUEST_TIMEOUT_SECONDS: float = 10.0

# Health probes should fail fast so status() stays responsive
HEALTH_CHECK_TIMEOUT_SECONDS: float = 3.0

BACKEND_API_KEY_HEADER: str = "X-API-Key"

# ============================================================================
# Namespacing
# ============================================================================

# "filesystem" + "read_file" -> "filesystem__read_file"
NAMESPACE_DELIMITER: str = "__"

# ============================================================================
# Daemon Supervisor
# ============================================================================

DAEMON_LOG_FILENAME: str = "mcpd.log"
DAEMON_CONFIG_FILENAME: str = ".mcpd.toml"

# Our own WARNING+ events, next to the daemon log
SYSTEM_LOG_FILENAME: str = "mcpd-bridge.jsonl"

# Written when no daemon config exists yet
INITIAL_DAEMON_CONFIG: str = "servers = []"

# Well-known install locations, checked after the bundled binary
SYSTEM_DAEMON_PATHS: tuple[str, ...] = (
    "/opt/homebrew/bin/mcpd",  # Homebrew on Apple Silicon
    "/usr/local/bin/mcpd",  # Homebrew on Intel / manual install
    "/usr/bin/mcpd",  # System package
)

# The daemon shells out to npx/uvx, which often live outside a GUI
# process's inherited PATH. "~" is expanded at spawn time.
EXTRA_TOOL_PATHS: tuple[str, ...] = (
    "/usr/local/bin",
    "/opt/homebrew/bin",
    "/usr/bin",
    "/bin",
    "/usr/sbin",
    "/sbin",
    "~/.npm/bin",
    "~/.local/bin",
    "~/.cargo/bin",
    "/usr/local/opt/node/bin",
    "/opt/homebrew/opt/node/bin",
)

NODE_MODULE_PATHS: tuple[str, ...] = (
    "/usr/local/lib/node_modules",
    "/opt/homebrew/lib/node_modules",
)

# Emitted on stderr by the daemon when its API port is taken
PORT_IN_USE_PATTERN: str = "address already in use"

# Backend tool servers need a few seconds to come up before the
# daemon reports healthy
STARTUP_PROBE_DELAY_SECONDS: float = 5.0

# Must stay strictly longer than STARTUP_PROBE_DELAY_SECONDS
STARTUP_ABSOLUTE_TIMEOUT_SECONDS: float = 8.0

# Pause between killing our spawn and probing the existing instance
PORT_CONFLICT_PROBE_DELAY_SECONDS: float = 0.5

# Pause between stop and start on restart so the port is released
RESTART_GRACE_SECONDS: float = 1.0

# How long stop() waits after SIGTERM before escalating to SIGKILL
STOP_TIMEOUT_SECONDS: float = 5.0

# How long the exit watcher waits for remaining stderr after exit
STDERR_DRAIN_TIMEOUT_SECONDS: float = 0.5

# pkill -f pattern for daemons we did not spawn ourselves
DAEMON_PROCESS_PATTERN: str = "mcpd daemon"

# ============================================================================
# Gateway
# ============================================================================

DEFAULT_GATEWAY_PORT: int = 3000
DEFAULT_MCP_PORT: int = 3001

# Development fallback; deployments set API_KEY
DEFAULT_GATEWAY_API_KEY: str = "default-dev-key"

# 100 requests per client per minute on /api/*
DEFAULT_RATE_LIMIT_REQUESTS: int = 100
DEFAULT_RATE_LIMIT_WINDOW_SECONDS: float = 60.0

# 10MB request bodies
MAX_REQUEST_BYTES: int = 10 * 1024 * 1024

MCP_PROTOCOL_VERSION: str = "2024-11-05"
