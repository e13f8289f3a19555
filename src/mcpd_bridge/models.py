"""Pydantic models for mcpd-bridge.

This module contains three categories of models:

Daemon Models:
- DaemonState: Supervisor lifecycle state
- DaemonHandle: Snapshot of the supervised daemon

Catalog Models (FrozenModel-based):
- ServerDescriptor: A tool server known to the daemon
- ToolDescriptor: A tool as declared by its server
- ExternalTool: A tool projected onto its externally visible name
- ToolCatalog: The full tool list for one bridge scope

Logging Models:
- SystemEvent: Structured operational log entries
"""

from __future__ import annotations

__all__ = [
    # Daemon Models
    "DaemonHandle",
    "DaemonState",
    # Catalog Models
    "DEFAULT_INPUT_SCHEMA",
    "ExternalTool",
    "FrozenModel",
    "ServerDescriptor",
    "ToolCatalog",
    "ToolDescriptor",
    # Logging Models
    "SystemEvent",
]

import copy
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# Schema advertised for tools that declare none
DEFAULT_INPUT_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}}


class FrozenModel(BaseModel):
    """Base class for immutable Pydantic models."""

    model_config = ConfigDict(frozen=True)


# =============================================================================
# Daemon Models
# =============================================================================


class DaemonState(str, Enum):
    """Lifecycle state of the supervised daemon.

    Transitions:
        STOPPED -> STARTING -> RUNNING
        STARTING -> FAILED (any start rejection)
        RUNNING -> STARTING (restart)
        any -> STOPPED (stop)
    """

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    FAILED = "failed"


class DaemonHandle(FrozenModel):
    """Snapshot of the supervised daemon.

    Attributes:
        state: Current lifecycle state.
        pid: PID of the daemon if this supervisor spawned it. None when the
            daemon is not running or is a foreign instance.
        api_base_url: Base URL of the daemon's API.
        log_path: Daemon log file.
        config_path: Daemon TOML config file.
    """

    state: DaemonState
    pid: int | None = None
    api_base_url: str
    log_path: Path
    config_path: Path

    @property
    def running(self) -> bool:
        """True when the daemon answered its health probe."""
        return self.state is DaemonState.RUNNING

    def to_status(self) -> dict[str, Any]:
        """Convert to the status shape shown to operators and UIs."""
        status: dict[str, Any] = {
            "running": self.running,
            "state": self.state.value,
            "logPath": str(self.log_path),
        }
        if self.running:
            status["apiUrl"] = self.api_base_url
        if self.pid is not None:
            status["pid"] = self.pid
        return status


# =============================================================================
# Catalog Models
# =============================================================================


class ServerDescriptor(FrozenModel):
    """A tool server as described by the daemon or its config file.

    Attributes:
        name: Unique server name.
        package: Package reference (e.g. "npx::@modelcontextprotocol/server-filesystem").
        tools: Tools the server is allowed to expose.
        required_env: Environment variables the server needs.
        required_args: Arguments the server needs.
    """

    name: str = Field(min_length=1)
    package: str = ""
    tools: tuple[str, ...] = ()
    required_env: tuple[str, ...] = Field(
        default=(), validation_alias=AliasChoices("required_env", "requiredEnv")
    )
    required_args: tuple[str, ...] = Field(
        default=(), validation_alias=AliasChoices("required_args", "requiredArgs", "args")
    )

    model_config = ConfigDict(frozen=True, extra="ignore")


class ToolDescriptor(FrozenModel):
    """A tool as declared by its server.

    Attributes:
        name: Raw tool name, unique within its server.
        description: Human-readable description.
        input_schema: JSON Schema for the tool's arguments.
    """

    name: str = Field(min_length=1)
    description: str | None = None
    input_schema: dict[str, Any] | None = Field(
        default=None, validation_alias=AliasChoices("inputSchema", "input_schema")
    )

    model_config = ConfigDict(frozen=True, extra="ignore")


class ExternalTool(FrozenModel):
    """A tool projected onto the name a client sees.

    Attributes:
        server: Owning server.
        tool: The server's descriptor for the tool.
        external_name: Name exposed to clients (namespaced or raw).
    """

    server: str
    tool: ToolDescriptor
    external_name: str

    @property
    def description(self) -> str:
        return self.tool.description or f"{self.tool.name} from {self.server}"

    @property
    def input_schema(self) -> dict[str, Any]:
        return self.tool.input_schema or copy.deepcopy(DEFAULT_INPUT_SCHEMA)

    def to_mcp(self) -> dict[str, Any]:
        """Convert to an MCP tools/list entry."""
        return {
            "name": self.external_name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


class ToolCatalog(FrozenModel):
    """The complete tool list for one bridge scope.

    Catalogs are rebuilt in full on every refresh and replace the previous
    catalog for their scope; they are never merged.

    Attributes:
        scope_key: Key of the BridgeScope this catalog was built for.
        tools: Tools in server order.
        refreshed_at: When the catalog was built (UTC).
    """

    scope_key: str
    tools: tuple[ExternalTool, ...] = ()
    refreshed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def __len__(self) -> int:
        return len(self.tools)


# =============================================================================
# Logging Models
# =============================================================================


class SystemEvent(BaseModel):
    """Structured operational log entry.

    Serialized with model_dump(exclude_none=True) so absent fields do not
    appear in log output.

    Attributes:
        event: Machine-readable event name (e.g. "daemon_started").
        message: Human-readable description.
        component: Emitting component (supervisor, translator, gateway, ...).
        server: Tool server involved, if any.
        tool: Tool involved, if any.
        error_type: Exception class name for failures.
        error_message: Exception message for failures.
        details: Additional structured context.
    """

    event: str
    message: str | None = None
    component: str | None = None
    server: str | None = None
    tool: str | None = None
    error_type: str | None = None
    error_message: str | None = None
    details: dict[str, Any] | None = None
