"""Custom exceptions for mcpd-bridge.

Exceptions are organized by the layer that raises them:

Configuration Errors:
    - ConfigurationError: Invalid environment or CLI settings

Supervisor Errors (surfaced verbatim to the operator, never retried):
    - BinaryNotFound: No daemon executable could be located
    - PortConflict: Port taken and the existing instance is not healthy
    - DaemonStartTimeout: Daemon did not become healthy in time
    - DaemonExitedNonZero: Daemon exited during startup with an error code
    - DaemonSpawnError: The OS refused to spawn the daemon
    - DaemonStopError: Termination signal could not be delivered
    - ServerCommandFailed: An `mcpd add/remove` invocation failed

Bridge Errors (converted into error results by the translator):
    - ServerNotFound: Unknown tool server
    - InvalidToolNameFormat: External tool name cannot be decoded
    - BackendCallFailed: Daemon unreachable or returned an error status

Gateway Errors (rejected at the boundary, no session state change):
    - Unauthorized: Missing or wrong shared secret
    - RateLimited: Too many requests in the current window

Every exception carries a stable `code` used in structured error bodies.

Usage:
    from mcpd_bridge.exceptions import BinaryNotFound, InvalidToolNameFormat
"""

from __future__ import annotations

__all__ = [
    "BackendCallFailed",
    "BinaryNotFound",
    "BridgeError",
    "ConfigurationError",
    "DaemonExitedNonZero",
    "DaemonSpawnError",
    "DaemonStartTimeout",
    "DaemonStopError",
    "GatewayError",
    "InvalidToolNameFormat",
    "McpdBridgeError",
    "PortConflict",
    "RateLimited",
    "ServerCommandFailed",
    "ServerNotFound",
    "SupervisorError",
    "Unauthorized",
]


class McpdBridgeError(Exception):
    """Base exception for all mcpd-bridge errors.

    Attributes:
        code: Stable machine-readable error code.
        message: Human-readable description.
    """

    code: str = "MCPD_BRIDGE_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ConfigurationError(McpdBridgeError):
    """Configuration values from the environment or CLI are invalid."""

    code = "CONFIGURATION_ERROR"


# =============================================================================
# Supervisor Errors
# =============================================================================


class SupervisorError(McpdBridgeError):
    """Base for daemon lifecycle failures."""

    code = "SUPERVISOR_ERROR"


class BinaryNotFound(SupervisorError):
    """No mcpd executable was found.

    Raised when the bundled resource, the well-known system paths and the
    PATH lookup all fail.

    Attributes:
        searched: Every location that was checked, in order.
    """

    code = "BINARY_NOT_FOUND"

    def __init__(self, searched: list[str]) -> None:
        self.searched = searched
        super().__init__(
            "mcpd binary not found. Searched: "
            + ", ".join(searched)
            + ". Install it with: go install github.com/mozilla-ai/mcpd@latest"
        )


class PortConflict(SupervisorError):
    """The daemon port is in use and no healthy daemon answers on it.

    Recoverable in the sense that start() first tries to reconcile with
    whatever is listening; this is only raised if that instance is unhealthy.
    """

    code = "PORT_CONFLICT"

    def __init__(self, api_base_url: str) -> None:
        self.api_base_url = api_base_url
        super().__init__(f"Port for {api_base_url} is in use but no healthy mcpd daemon answers there")


class DaemonStartTimeout(SupervisorError):
    """The daemon did not report healthy before the startup deadline.

    Attributes:
        timeout_seconds: The deadline that elapsed.
        stderr: Captured stderr output (may be empty).
    """

    code = "DAEMON_START_TIMEOUT"

    def __init__(self, timeout_seconds: float, stderr: str = "", detail: str | None = None) -> None:
        self.timeout_seconds = timeout_seconds
        self.stderr = stderr
        message = detail or f"Daemon failed to start within {timeout_seconds:g} seconds"
        if stderr:
            message += f". Error output: {stderr.strip()}"
        super().__init__(message)


class DaemonExitedNonZero(SupervisorError):
    """The daemon exited with a non-zero code during startup.

    Attributes:
        exit_code: Process exit code.
        stderr: Captured stderr output.
    """

    code = "DAEMON_EXITED_NON_ZERO"

    def __init__(self, exit_code: int, stderr: str = "") -> None:
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"Daemon exited with code {exit_code}: {stderr.strip()}")


class DaemonSpawnError(SupervisorError):
    """The OS failed to create the daemon process."""

    code = "DAEMON_SPAWN_ERROR"


class DaemonStopError(SupervisorError):
    """A termination signal could not be delivered."""

    code = "DAEMON_STOP_ERROR"


class ServerCommandFailed(SupervisorError):
    """A delegated `mcpd add` / `mcpd remove` command failed.

    Attributes:
        exit_code: Exit code of the mcpd command.
    """

    code = "SERVER_COMMAND_FAILED"

    def __init__(self, message: str, exit_code: int | None = None) -> None:
        self.exit_code = exit_code
        super().__init__(message)


# =============================================================================
# Bridge Errors
# =============================================================================


class BridgeError(McpdBridgeError):
    """Base for translation and backend errors."""

    code = "BRIDGE_ERROR"


class ServerNotFound(BridgeError):
    """The requested tool server is not known to the daemon."""

    code = "SERVER_NOT_FOUND"

    def __init__(self, server: str) -> None:
        self.server = server
        super().__init__(f"Server '{server}' not found in mcpd")


class InvalidToolNameFormat(BridgeError):
    """An external tool name cannot be decoded into (server, tool)."""

    code = "INVALID_TOOL_NAME_FORMAT"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Invalid tool name format: {name}")


class BackendCallFailed(BridgeError):
    """A call to the daemon failed.

    Attributes:
        status_code: HTTP status returned by the daemon, None for
            transport-level failures (connection refused, timeout).
        detail: Error detail extracted from the daemon's reply.
    """

    code = "BACKEND_CALL_FAILED"

    def __init__(self, message: str, status_code: int | None = None, detail: str | None = None) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


# =============================================================================
# Gateway Errors
# =============================================================================


class GatewayError(McpdBridgeError):
    """Base for gateway boundary rejections."""

    code = "GATEWAY_ERROR"


class Unauthorized(GatewayError):
    """No valid shared secret was presented."""

    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class RateLimited(GatewayError):
    """The client exceeded its request budget.

    Attributes:
        retry_after_seconds: Seconds until the oldest request leaves the window.
    """

    code = "RATE_LIMITED"

    def __init__(self, retry_after_seconds: float = 0.0) -> None:
        self.retry_after_seconds = retry_after_seconds
        super().__init__("Too many requests, please try again later")
