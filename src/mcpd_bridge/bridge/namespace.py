"""Tool name namespacing.

Several tool servers may expose tools with the same name, so tools are
exposed as "<server>__<tool>" whenever more than one server can be reached
through the same catalog.

Unified mode (all servers) always namespaces. Individual mode (one target
server) namespaces unless disabled, in which case names pass through
unchanged and every call is routed to the target.
"""

from __future__ import annotations

__all__ = [
    "BridgeMode",
    "BridgeScope",
    "decode",
    "encode",
]

import logging
from dataclasses import dataclass
from enum import Enum

from mcpd_bridge.constants import NAMESPACE_DELIMITER
from mcpd_bridge.exceptions import ConfigurationError, InvalidToolNameFormat
from mcpd_bridge.models import SystemEvent
from mcpd_bridge.telemetry.system_logger import log_event


class BridgeMode(str, Enum):
    """How many servers a bridge exposes."""

    UNIFIED = "unified"
    INDIVIDUAL = "individual"


def encode(server: str, tool: str, mode: BridgeMode, namespacing_enabled: bool = True) -> str:
    """Build the external name a client sees for a server's tool.

    Args:
        server: Owning server.
        tool: Raw tool name.
        mode: Bridge mode.
        namespacing_enabled: Only consulted in Individual mode.

    Returns:
        "server__tool", or the raw tool name in Individual mode with
        namespacing disabled.
    """
    if mode is BridgeMode.INDIVIDUAL and not namespacing_enabled:
        return tool
    return f"{server}{NAMESPACE_DELIMITER}{tool}"


def decode(
    external_name: str,
    mode: BridgeMode,
    namespacing_enabled: bool = True,
    fixed_target_server: str | None = None,
) -> tuple[str, str]:
    """Resolve an external tool name back to (server, tool).

    Rules, in order:
        1. Individual mode without namespacing routes everything to the
           target, whatever the name looks like.
        2. More than one delimiter is ambiguous and always rejected.
        3. "server__tool" splits into its two parts.
        4. Any other name goes to the fixed target if one is configured.
        5. Otherwise the name is rejected.

    Args:
        external_name: Name received from the client.
        mode: Bridge mode.
        namespacing_enabled: Only consulted in Individual mode.
        fixed_target_server: Target server in Individual mode.

    Returns:
        (server, tool) tuple.

    Raises:
        InvalidToolNameFormat: If the name cannot be routed.
    """
    if mode is BridgeMode.INDIVIDUAL and not namespacing_enabled and fixed_target_server:
        return fixed_target_server, external_name

    if external_name.count(NAMESPACE_DELIMITER) > 1:
        raise InvalidToolNameFormat(external_name)

    server, sep, tool = external_name.partition(NAMESPACE_DELIMITER)
    if sep and server and tool:
        return server, tool

    if fixed_target_server:
        # A namespaced catalog never advertises this name, so the client
        # guessed. Routing it to the target may hit the wrong tool.
        log_event(
            logging.WARNING,
            SystemEvent(
                event="unnamespaced_tool_routed_to_target",
                message=f"Tool name '{external_name}' is not namespaced; routing to '{fixed_target_server}'",
                component="namespace",
                server=fixed_target_server,
                tool=external_name,
            ),
        )
        return fixed_target_server, external_name

    raise InvalidToolNameFormat(external_name)


@dataclass(frozen=True, slots=True)
class BridgeScope:
    """The (mode, target server, namespacing) triple a catalog is built for.

    Use BridgeScope.unified() or BridgeScope.individual(server) rather than
    the constructor.
    """

    mode: BridgeMode
    target_server: str | None = None
    namespacing: bool = True

    def __post_init__(self) -> None:
        if self.mode is BridgeMode.INDIVIDUAL and not self.target_server:
            raise ConfigurationError("Individual mode requires a target server")
        if self.mode is BridgeMode.UNIFIED and (self.target_server or not self.namespacing):
            raise ConfigurationError("Unified mode always namespaces and has no target server")

    @classmethod
    def unified(cls) -> "BridgeScope":
        return cls(BridgeMode.UNIFIED)

    @classmethod
    def individual(cls, server: str, namespacing: bool = True) -> "BridgeScope":
        return cls(BridgeMode.INDIVIDUAL, server, namespacing)

    @property
    def key(self) -> str:
        """Stable cache key, e.g. "unified" or "individual:filesystem:raw"."""
        if self.mode is BridgeMode.UNIFIED:
            return self.mode.value
        suffix = "ns" if self.namespacing else "raw"
        return f"{self.mode.value}:{self.target_server}:{suffix}"

    @property
    def server_name(self) -> str:
        """MCP server name advertised to clients."""
        if self.target_server:
            return f"mcpd-{self.target_server}"
        return "mcpd-bridge"

    def encode(self, server: str, tool: str) -> str:
        return encode(server, tool, self.mode, self.namespacing)

    def decode(self, external_name: str) -> tuple[str, str]:
        return decode(external_name, self.mode, self.namespacing, self.target_server)
