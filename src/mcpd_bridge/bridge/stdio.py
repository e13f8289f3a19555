"""MCP server over stdio that exposes the mcpd tool catalog.

A client (Claude Desktop, an IDE, ...) launches `mcpd-bridge-server` as a
subprocess and speaks JSON-RPC over its stdin/stdout. stdout carries nothing
but protocol frames; every diagnostic goes to stderr through the system
logger.

Modes:
    Unified:     all servers, tools named "server__tool"
    Individual:  one server (--server NAME), namespaced unless --no-namespace
"""

from __future__ import annotations

__all__ = [
    "StdioBridgeSession",
    "run_stdio_bridge",
]

import logging
from typing import Any

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from pydantic import ValidationError

from mcpd_bridge import __version__
from mcpd_bridge.backend.client import BackendClient
from mcpd_bridge.bridge.namespace import BridgeMode, BridgeScope
from mcpd_bridge.bridge.results import NormalizedResult
from mcpd_bridge.bridge.translator import ProtocolTranslator
from mcpd_bridge.config import BridgeConfig
from mcpd_bridge.exceptions import BackendCallFailed, McpdBridgeError, ServerNotFound
from mcpd_bridge.models import SystemEvent
from mcpd_bridge.telemetry.system_logger import log_event


class StdioBridgeSession:
    """One stdio MCP session in front of the daemon.

    Usage:
        session = StdioBridgeSession(config)
        await session.run()  # until stdin closes
    """

    def __init__(self, config: BridgeConfig, client: BackendClient | None = None) -> None:
        """Initialize the session.

        Args:
            config: Bridge configuration.
            client: Backend client (tests inject one with a mock transport).
        """
        self.config = config
        if config.target_server:
            self.scope = BridgeScope.individual(config.target_server, config.namespacing)
        else:
            self.scope = BridgeScope.unified()
        self.client = client or BackendClient(
            config.mcpd_url,
            api_key=config.api_key,
            timeout_seconds=config.request_timeout_seconds,
        )
        self.translator = ProtocolTranslator(self.client)
        self.server = self._build_server()

    def _build_server(self) -> Server[Any, Any]:
        server: Server[Any, Any] = Server(self.scope.server_name, version=__version__)

        @server.list_tools()
        async def list_tools() -> list[types.Tool]:
            return await self.handle_list_tools()

        # Arguments are validated by the tool server behind the daemon
        @server.call_tool(validate_input=False)
        async def call_tool(name: str, arguments: dict[str, Any]) -> types.CallToolResult:
            return await self.handle_call_tool(name, arguments)

        return server

    async def handle_list_tools(self) -> list[types.Tool]:
        """tools/list: the scope's catalog as MCP tools.

        An unreachable daemon yields an empty list rather than a protocol
        error, so clients still complete their handshake.
        """
        try:
            tools = await self.translator.list_tools(self.scope)
        except McpdBridgeError as e:
            log_event(
                logging.ERROR,
                SystemEvent(
                    event="list_tools_failed",
                    message=f"Failed to fetch tools from mcpd: {e}",
                    component="stdio",
                    error_type=type(e).__name__,
                    error_message=str(e),
                ),
            )
            return []
        return [types.Tool.model_validate(tool.to_mcp()) for tool in tools]

    async def handle_call_tool(self, name: str, arguments: dict[str, Any] | None) -> types.CallToolResult:
        """tools/call: route, invoke and normalize. Never raises."""
        result = await self.translator.call_tool(name, arguments, self.scope)
        try:
            return result.to_call_tool_result()
        except ValidationError:
            # Content blocks the SDK does not recognize; hand them over as JSON text
            fallback = NormalizedResult.text(str(list(result.content)), is_error=result.is_error)
            return fallback.to_call_tool_result()

    async def startup_check(self) -> None:
        """Log the mode, probe the daemon and verify the target server.

        Raises:
            ServerNotFound: Individual mode target is not known to a
                reachable daemon.
        """
        if self.scope.mode is BridgeMode.INDIVIDUAL:
            namespacing = "enabled" if self.scope.namespacing else "disabled"
            message = f"Starting in INDIVIDUAL mode for server: {self.scope.target_server} (namespacing {namespacing})"
        else:
            message = "Starting in UNIFIED mode (all servers)"
        log_event(logging.INFO, SystemEvent(event="bridge_starting", message=message, component="stdio"))

        try:
            await self.client.ping()
            servers = await self.client.list_servers() if self.scope.target_server else []
        except BackendCallFailed as e:
            log_event(
                logging.WARNING,
                SystemEvent(
                    event="mcpd_unreachable",
                    message=f"Could not connect to mcpd at {self.client.base_url}; tools may not be available",
                    component="stdio",
                    error_type=type(e).__name__,
                    error_message=str(e),
                ),
            )
            return

        log_event(
            logging.INFO,
            SystemEvent(
                event="mcpd_connected",
                message=f"Connected to mcpd at {self.client.base_url}",
                component="stdio",
            ),
        )
        if self.scope.target_server and not any(s.name == self.scope.target_server for s in servers):
            available = ", ".join(s.name for s in servers) or "none"
            log_event(
                logging.ERROR,
                SystemEvent(
                    event="target_server_not_found",
                    message=f"Server '{self.scope.target_server}' not found in mcpd. Available servers: {available}",
                    component="stdio",
                    server=self.scope.target_server,
                ),
            )
            raise ServerNotFound(self.scope.target_server)

    async def run(self) -> None:
        """Run the startup check, then serve MCP over stdin/stdout."""
        try:
            await self.startup_check()
            async with stdio_server() as (read_stream, write_stream):
                log_event(
                    logging.INFO,
                    SystemEvent(event="bridge_started", message="mcpd bridge server started", component="stdio"),
                )
                await self.server.run(read_stream, write_stream, self.server.create_initialization_options())
        finally:
            await self.client.aclose()


async def run_stdio_bridge(config: BridgeConfig) -> None:
    """Serve one stdio session with the given configuration."""
    await StdioBridgeSession(config).run()
