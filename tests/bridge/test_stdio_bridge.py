"""Tests for the stdio MCP bridge session.

Handlers are exercised directly and through an in-memory MCP client
session, with the daemon replaced by FakeMcpd.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from mcp import types
from mcp.shared.memory import create_connected_server_and_client_session

from mcpd_bridge.bridge.stdio import StdioBridgeSession
from mcpd_bridge.config import BridgeConfig
from mcpd_bridge.exceptions import ServerNotFound


@pytest.fixture
def make_session(make_client):
    """Factory for sessions wired to the fake daemon."""

    def _make(**config_values) -> StdioBridgeSession:
        return StdioBridgeSession(BridgeConfig(mcpd_url="http://mcpd.test", **config_values), client=make_client())

    return _make


class TestScope:
    """Tests for scope selection from configuration."""

    def test_unified_by_default(self, make_session) -> None:
        session = make_session()

        assert session.scope.key == "unified"

    def test_individual_from_target(self, make_session) -> None:
        session = make_session(target_server="github", namespacing=False)

        assert session.scope.key == "individual:github:raw"
        assert session.server.name == "mcpd-github"


class TestHandlers:
    """Tests for the tools/list and tools/call handlers."""

    async def test_list_tools(self, make_session) -> None:
        session = make_session()

        tools = await session.handle_list_tools()

        assert [t.name for t in tools] == ["filesystem__read_file", "filesystem__write_file", "github__create_issue"]
        assert tools[0].inputSchema == {"type": "object", "properties": {"path": {"type": "string"}}}

    async def test_list_tools_daemon_down(self, make_session, fake_mcpd) -> None:
        """Given an unreachable daemon, returns an empty list."""
        fake_mcpd.down = True
        session = make_session()

        assert await session.handle_list_tools() == []

    async def test_list_tools_unknown_target(self, make_session) -> None:
        session = make_session(target_server="nope")

        assert await session.handle_list_tools() == []

    async def test_call_tool(self, make_session, fake_mcpd) -> None:
        # Arrange
        fake_mcpd.call_results[("filesystem", "read_file")] = {"content": [{"type": "text", "text": "hello"}]}
        session = make_session()

        # Act
        result = await session.handle_call_tool("filesystem__read_file", {"path": "/tmp/test.txt"})

        # Assert
        assert isinstance(result, types.CallToolResult)
        assert result.isError is False
        assert result.content[0].text == "hello"

    async def test_call_tool_error(self, make_session) -> None:
        session = make_session()

        result = await session.handle_call_tool("unknown__tool", {})

        assert result.isError is True
        assert result.content[0].text == "Error: Server 'unknown' not found in mcpd"

    async def test_unrecognized_content_falls_back_to_text(self, make_session, fake_mcpd) -> None:
        """Content blocks the SDK rejects are passed on as text."""
        fake_mcpd.call_results[("github", "create_issue")] = {"content": [{"type": "hologram", "beam": 1}]}
        session = make_session()

        result = await session.handle_call_tool("github__create_issue", {})

        assert isinstance(result.content[0], types.TextContent)
        assert "hologram" in result.content[0].text


class TestStartupCheck:
    """Tests for startup_check()."""

    async def test_unified_ok(self, make_session) -> None:
        session = make_session()

        with patch("mcpd_bridge.bridge.stdio.log_event") as mock_log:
            await session.startup_check()

        events = [c[0][1].event for c in mock_log.call_args_list]
        assert events == ["bridge_starting", "mcpd_connected"]

    async def test_unknown_target_raises(self, make_session) -> None:
        """Given a target the daemon does not know, raises ServerNotFound."""
        session = make_session(target_server="nope")

        with patch("mcpd_bridge.bridge.stdio.log_event") as mock_log:
            with pytest.raises(ServerNotFound):
                await session.startup_check()

        error_event = mock_log.call_args_list[-1][0][1]
        assert error_event.message == "Server 'nope' not found in mcpd. Available servers: filesystem, github"

    async def test_daemon_down_only_warns(self, make_session, fake_mcpd) -> None:
        """Given an unreachable daemon, logs a warning and keeps going."""
        fake_mcpd.down = True
        session = make_session(target_server="github")

        with patch("mcpd_bridge.bridge.stdio.log_event") as mock_log:
            await session.startup_check()

        assert mock_log.call_args_list[-1][0][1].event == "mcpd_unreachable"


class TestMcpSession:
    """End-to-end through an MCP client session."""

    async def test_list_and_call(self, make_session, fake_mcpd) -> None:
        # Arrange
        fake_mcpd.call_results[("github", "create_issue")] = "Issue #7 created"
        session = make_session(target_server="github", namespacing=False)

        # Act
        async with create_connected_server_and_client_session(session.server) as client:
            listed = await client.list_tools()
            result = await client.call_tool("create_issue", {"title": "Bug"})

        # Assert
        assert [t.name for t in listed.tools] == ["create_issue"]
        assert result.content[0].text == "Issue #7 created"
        assert fake_mcpd.calls == [("github", "create_issue", {"arguments": {"title": "Bug"}})]
