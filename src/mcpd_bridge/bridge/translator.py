"""Protocol translation between client surfaces and the mcpd daemon.

ProtocolTranslator is shared by the stdio bridge, the REST/WebSocket gateway
and the MCP-over-HTTP endpoint. It:
- Aggregates tool catalogs across servers (Unified) or for one server
  (Individual) and applies namespacing
- Routes external tool names back to (server, tool) and forwards calls
- Normalizes every reply to a NormalizedResult; tool calls never raise

Catalog cache:
    One ToolCatalog per BridgeScope. A refresh builds a complete new catalog
    and swaps it in with a single assignment; a failed refresh leaves the
    previous catalog in place.
"""

from __future__ import annotations

__all__ = [
    "ProtocolTranslator",
]

import asyncio
import logging
from typing import Any

from mcpd_bridge.backend.client import BackendClient
from mcpd_bridge.bridge.namespace import BridgeMode, BridgeScope
from mcpd_bridge.bridge.results import NormalizedResult, normalize, parse_backend_output
from mcpd_bridge.exceptions import BackendCallFailed, McpdBridgeError, ServerNotFound
from mcpd_bridge.models import ExternalTool, ServerDescriptor, SystemEvent, ToolCatalog, ToolDescriptor
from mcpd_bridge.telemetry.system_logger import log_event


class ProtocolTranslator:
    """Catalog aggregation and tool call routing over a BackendClient."""

    def __init__(self, client: BackendClient) -> None:
        self._client = client
        self._catalogs: dict[str, ToolCatalog] = {}

    @property
    def client(self) -> BackendClient:
        return self._client

    # =========================================================================
    # Catalog
    # =========================================================================

    def cached_catalog(self, scope: BridgeScope) -> ToolCatalog | None:
        """Last successfully built catalog for a scope, if any."""
        return self._catalogs.get(scope.key)

    async def list_tools(self, scope: BridgeScope) -> list[ExternalTool]:
        """Build the tool catalog for a scope.

        In Unified mode every server's tool list is fetched concurrently;
        a server that fails is logged and left out. If the server list
        itself cannot be fetched, the cached catalog is served when there
        is one.

        Args:
            scope: Scope to build the catalog for.

        Returns:
            Tools in server order, with external names for the scope.

        Raises:
            ServerNotFound: Individual mode target does not exist.
            BackendCallFailed: Daemon unreachable and nothing cached.
        """
        try:
            catalog = await self._build_catalog(scope)
        except BackendCallFailed as e:
            cached = self.cached_catalog(scope)
            if cached is None:
                raise
            log_event(
                logging.WARNING,
                SystemEvent(
                    event="catalog_refresh_failed",
                    message=f"Serving cached tool catalog ({len(cached)} tools): {e}",
                    component="translator",
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"scope": scope.key},
                ),
            )
            return list(cached.tools)

        self._catalogs[scope.key] = catalog
        log_event(
            logging.INFO,
            SystemEvent(
                event="catalog_refreshed",
                message=f"Found {len(catalog)} tools ({scope.key})",
                component="translator",
            ),
        )
        return list(catalog.tools)

    async def _build_catalog(self, scope: BridgeScope) -> ToolCatalog:
        per_server: list[list[ToolDescriptor] | BaseException]
        if scope.mode is BridgeMode.INDIVIDUAL and scope.target_server:
            servers = [scope.target_server]
            per_server = [await self._client.list_tools(scope.target_server)]
        else:
            servers = [s.name for s in await self._client.list_servers()]
            per_server = await asyncio.gather(
                *(self._client.list_tools(name) for name in servers),
                return_exceptions=True,
            )

        tools: list[ExternalTool] = []
        for server, result in zip(servers, per_server):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                log_event(
                    logging.WARNING,
                    SystemEvent(
                        event="server_tools_failed",
                        message=f"Failed to fetch tools for server {server}: {result}",
                        component="translator",
                        server=server,
                        error_type=type(result).__name__,
                        error_message=str(result),
                    ),
                )
                continue
            tools.extend(
                ExternalTool(server=server, tool=tool, external_name=scope.encode(server, tool.name))
                for tool in result
            )

        return ToolCatalog(scope_key=scope.key, tools=tuple(tools))

    # =========================================================================
    # Tool calls
    # =========================================================================

    async def call_tool(
        self,
        external_name: str,
        arguments: dict[str, Any] | None,
        scope: BridgeScope,
    ) -> NormalizedResult:
        """Route an external tool name and invoke it.

        Never raises for routing or backend failures; those come back as
        error results.
        """
        try:
            server, tool = scope.decode(external_name)
        except McpdBridgeError as e:
            log_event(
                logging.WARNING,
                SystemEvent(
                    event="tool_name_rejected",
                    message=str(e),
                    component="translator",
                    tool=external_name,
                    error_type=type(e).__name__,
                ),
            )
            return NormalizedResult.error(str(e))
        return await self.invoke(server, tool, arguments)

    async def invoke(self, server: str, tool: str, arguments: dict[str, Any] | None) -> NormalizedResult:
        """Forward a call to a server's tool and normalize the reply.

        Args:
            server: Owning server.
            tool: Raw tool name.
            arguments: Tool arguments.

        Returns:
            NormalizedResult; is_error is set on any failure.
        """
        log_event(
            logging.INFO,
            SystemEvent(
                event="tool_call",
                message=f"Calling tool {tool} on server {server}",
                component="translator",
                server=server,
                tool=tool,
            ),
        )
        try:
            raw = await self._client.call_tool(server, tool, arguments or {})
        except McpdBridgeError as e:
            log_event(
                logging.WARNING,
                SystemEvent(
                    event="tool_call_failed",
                    message=f"Error calling tool {server}/{tool}: {e}",
                    component="translator",
                    server=server,
                    tool=tool,
                    error_type=type(e).__name__,
                    error_message=str(e),
                ),
            )
            return NormalizedResult.error(str(e))
        return normalize(parse_backend_output(raw))

    # =========================================================================
    # Server pass-throughs
    # =========================================================================

    async def list_servers(self) -> Any:
        """Daemon server list as the daemon returned it."""
        return await self._client.list_servers_raw()

    async def list_server_descriptors(self) -> list[ServerDescriptor]:
        return await self._client.list_servers()

    async def get_server(self, name: str) -> Any:
        """One entry of the daemon's server list.

        Returns the daemon's own object for the server when it sends
        objects, otherwise {"name": name}.

        Raises:
            ServerNotFound: No server with that name.
        """
        raw = await self._client.list_servers_raw()
        entries = raw.get("servers", []) if isinstance(raw, dict) else raw
        for entry in entries if isinstance(entries, list) else []:
            if isinstance(entry, dict) and entry.get("name") == name:
                return entry
            if entry == name:
                return {"name": name}
        raise ServerNotFound(name)

    async def list_server_tools(self, name: str) -> list[dict[str, Any]]:
        """A server's tools in MCP listing form, with raw names."""
        scope = BridgeScope.individual(name, namespacing=False)
        tools = await self._client.list_tools(name)
        return [
            ExternalTool(server=name, tool=tool, external_name=scope.encode(name, tool.name)).to_mcp()
            for tool in tools
        ]
