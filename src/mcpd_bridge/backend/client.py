"""Async HTTP client for the mcpd daemon API.

All endpoints live under <mcpd_url>/api/v1:
    GET  /health
    GET  /health/servers
    GET  /servers
    GET  /servers/{server}/tools
    POST /servers/{server}/tools/{tool}/call   body: {"arguments": {...}}

Every request carries a bounded timeout. There is no retry or backoff;
failures surface immediately as BackendCallFailed, or ServerNotFound when
the daemon does not know the server. Malformed catalog entries are logged
and skipped.
"""

from __future__ import annotations

__all__ = [
    "BackendClient",
]

import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from mcpd_bridge.constants import (
    BACKEND_API_KEY_HEADER,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    HEALTH_CHECK_TIMEOUT_SECONDS,
    MCPD_API_PREFIX,
)
from mcpd_bridge.exceptions import BackendCallFailed, ServerNotFound
from mcpd_bridge.models import ServerDescriptor, SystemEvent, ToolDescriptor
from mcpd_bridge.telemetry.system_logger import log_event


def _segment(value: str) -> str:
    """Quote a value for use as a single URL path segment."""
    return quote(value, safe="")


def _extract_detail(response: httpx.Response) -> str | None:
    """Pull a human-readable error detail out of a daemon error reply."""
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text or None

    if isinstance(body, dict):
        for key in ("error", "detail", "message", "title"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return None


def _log_skipped_entry(kind: str, entry: Any, error: ValidationError, server: str | None = None) -> None:
    log_event(
        logging.WARNING,
        SystemEvent(
            event="invalid_catalog_entry",
            message=f"Skipping invalid {kind} entry from mcpd: {entry.get('name')!r}",
            component="backend",
            server=server,
            error_type=type(error).__name__,
            error_message=str(error),
        ),
    )


class BackendClient:
    """Client for the mcpd daemon's HTTP API.

    Usage:
        async with BackendClient("http://localhost:8090") as client:
            servers = await client.list_servers()
            result = await client.call_tool("filesystem", "read_file", {"path": "/tmp/x"})

    Tests inject an httpx.MockTransport through `transport`.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Daemon root URL (e.g. "http://localhost:8090").
            api_key: Optional key sent as X-API-Key.
            timeout_seconds: Timeout applied to every request.
            transport: Optional httpx transport (tests).
        """
        self._base_url = base_url.rstrip("/")
        headers = {BACKEND_API_KEY_HEADER: api_key} if api_key else {}
        self._client = httpx.AsyncClient(
            base_url=f"{self._base_url}{MCPD_API_PREFIX}",
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        """Daemon root URL, without the API prefix."""
        return self._base_url

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    # =========================================================================
    # Request plumbing
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        server: str | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Send a request and map failures onto bridge exceptions.

        Args:
            method: HTTP method.
            path: Path relative to /api/v1.
            json: Optional JSON body.
            server: Server the path refers to; a 404 then means ServerNotFound.
            timeout: Per-request timeout override.

        Returns:
            The successful (2xx) response.

        Raises:
            ServerNotFound: 404 on a server-scoped path.
            BackendCallFailed: Transport error or any other non-2xx status.
        """
        kwargs: dict[str, Any] = {}
        if json is not None:
            kwargs["json"] = json
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise BackendCallFailed(f"mcpd request timed out: {method} {path}") from e
        except httpx.HTTPError as e:
            raise BackendCallFailed(f"Could not reach mcpd at {self._base_url}: {e}") from e

        if response.is_success:
            return response

        detail = _extract_detail(response)
        if response.status_code == 404 and server is not None:
            raise ServerNotFound(server)

        message = f"mcpd returned HTTP {response.status_code} for {method} {path}"
        if detail:
            message += f": {detail}"
        raise BackendCallFailed(message, status_code=response.status_code, detail=detail)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        """Decode a body as JSON, falling back to text (None when empty)."""
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    # =========================================================================
    # Health
    # =========================================================================

    async def health(self) -> bool:
        """Check whether the daemon is up.

        Tries /health/servers first and falls back to /servers for daemon
        versions without the health endpoint. Never raises.

        Returns:
            True if either endpoint answered with a 2xx status.
        """
        for path in ("/health/servers", "/servers"):
            try:
                await self._request("GET", path, timeout=HEALTH_CHECK_TIMEOUT_SECONDS)
                return True
            except BackendCallFailed:
                continue
        return False

    async def ping(self) -> None:
        """GET /health.

        Raises:
            BackendCallFailed: If the daemon is unreachable or unhealthy.
        """
        await self._request("GET", "/health", timeout=HEALTH_CHECK_TIMEOUT_SECONDS)

    # =========================================================================
    # Servers and tools
    # =========================================================================

    async def list_servers_raw(self) -> Any:
        """GET /servers, returned exactly as the daemon sent it."""
        return self._decode(await self._request("GET", "/servers"))

    async def list_servers(self) -> list[ServerDescriptor]:
        """GET /servers as descriptors.

        Accepts {"servers": [...]}, a bare list of names, or a list of
        server objects.

        Raises:
            BackendCallFailed: On transport failure, error status, or a
                reply that is not a server list.
        """
        body = await self.list_servers_raw()
        if isinstance(body, dict):
            body = body.get("servers", [])
        if not isinstance(body, list):
            raise BackendCallFailed(f"Unexpected server list from mcpd: {type(body).__name__}")

        servers: list[ServerDescriptor] = []
        for entry in body:
            if isinstance(entry, str) and entry:
                servers.append(ServerDescriptor(name=entry))
            elif isinstance(entry, dict) and entry.get("name"):
                try:
                    servers.append(ServerDescriptor.model_validate(entry))
                except ValidationError as e:
                    _log_skipped_entry("server", entry, e)
        return servers

    async def list_tools_raw(self, server: str) -> Any:
        """GET /servers/{server}/tools, returned exactly as the daemon sent it.

        Raises:
            ServerNotFound: Unknown server.
            BackendCallFailed: Any other failure.
        """
        response = await self._request("GET", f"/servers/{_segment(server)}/tools", server=server)
        return self._decode(response)

    async def list_tools(self, server: str) -> list[ToolDescriptor]:
        """GET /servers/{server}/tools as descriptors.

        Accepts {"tools": [...]} or a bare list. Entries that are not valid
        tool definitions are logged and left out.

        Raises:
            ServerNotFound: Unknown server.
            BackendCallFailed: Any other failure.
        """
        body = await self.list_tools_raw(server)
        if isinstance(body, dict):
            body = body.get("tools", [])
        if not isinstance(body, list):
            raise BackendCallFailed(f"Unexpected tool list from mcpd for '{server}'")
        tools: list[ToolDescriptor] = []
        for entry in body:
            if not (isinstance(entry, dict) and entry.get("name")):
                continue
            try:
                tools.append(ToolDescriptor.model_validate(entry))
            except ValidationError as e:
                _log_skipped_entry("tool", entry, e, server=server)
        return tools

    async def call_tool(self, server: str, tool: str, arguments: dict[str, Any] | None = None) -> Any:
        """POST /servers/{server}/tools/{tool}/call.

        Args:
            server: Server that owns the tool.
            tool: Raw tool name.
            arguments: Tool arguments (sent as {"arguments": ...}).

        Returns:
            Decoded reply body (JSON value, or text if not JSON).

        Raises:
            ServerNotFound: Unknown server.
            BackendCallFailed: Any other failure, including a 404 for an
                unknown tool on a known server (with the daemon's detail).
        """
        try:
            response = await self._request(
                "POST",
                f"/servers/{_segment(server)}/tools/{_segment(tool)}/call",
                json={"arguments": arguments or {}},
            )
        except BackendCallFailed as e:
            if e.status_code == 404 and await self._lists_server(server) is False:
                raise ServerNotFound(server) from e
            raise
        return self._decode(response)

    async def _lists_server(self, server: str) -> bool | None:
        """Whether the daemon lists `server`, None if the list is unavailable."""
        try:
            servers = await self.list_servers()
        except BackendCallFailed:
            return None
        return any(s.name == server for s in servers)
