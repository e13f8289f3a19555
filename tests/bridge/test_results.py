"""Unit tests for tool result normalization."""

from __future__ import annotations

import pytest
from mcp import types

from mcpd_bridge.bridge.results import (
    ContentOutput,
    JsonOutput,
    NormalizedResult,
    TextOutput,
    normalize,
    parse_backend_output,
)


class TestParseBackendOutput:
    """Tests for parse_backend_output()."""

    def test_content_object(self) -> None:
        """Given {"content": [...]}, returns ContentOutput."""
        raw = {"content": [{"type": "text", "text": "hi"}]}

        output = parse_backend_output(raw)

        assert output == ContentOutput(content=[{"type": "text", "text": "hi"}], is_error=False)

    def test_content_object_with_error_flag(self) -> None:
        output = parse_backend_output({"content": [], "isError": True})

        assert isinstance(output, ContentOutput)
        assert output.is_error is True

    def test_non_boolean_error_flag_is_not_error(self) -> None:
        """Only a literal true marks the result as an error."""
        output = parse_backend_output({"content": [], "isError": "yes"})

        assert output.is_error is False

    def test_string(self) -> None:
        assert parse_backend_output("plain text") == TextOutput("plain text")

    @pytest.mark.parametrize("raw", [{"status": "ok"}, [1, 2], 42, None, {"content": "not a list"}])
    def test_other_json(self, raw: object) -> None:
        """Anything else is JsonOutput."""
        assert parse_backend_output(raw) == JsonOutput(raw)


class TestNormalize:
    """Tests for normalize()."""

    def test_content_passes_through(self) -> None:
        blocks = [{"type": "text", "text": "a"}, {"type": "image", "data": "AAAA", "mimeType": "image/png"}]

        result = normalize(ContentOutput(content=blocks, is_error=True))

        assert result.content == tuple(blocks)
        assert result.is_error is True

    def test_text_becomes_single_block(self) -> None:
        result = normalize(TextOutput("hello"))

        assert result.to_mcp() == {"content": [{"type": "text", "text": "hello"}]}

    def test_json_is_pretty_printed(self) -> None:
        """Given a JSON value, renders it with two-space indentation."""
        result = normalize(JsonOutput({"status": "ok"}))

        assert result.content[0]["text"] == '{\n  "status": "ok"\n}'
        assert result.is_error is False


class TestNormalizedResult:
    """Tests for NormalizedResult."""

    def test_error_prefix(self) -> None:
        result = NormalizedResult.error("Server 'x' not found in mcpd")

        assert result.is_error is True
        assert result.content[0]["text"] == "Error: Server 'x' not found in mcpd"

    def test_to_mcp_omits_is_error_on_success(self) -> None:
        assert "isError" not in NormalizedResult.text("ok").to_mcp()

    def test_to_mcp_includes_is_error_on_failure(self) -> None:
        assert NormalizedResult.error("boom").to_mcp()["isError"] is True

    def test_to_call_tool_result(self) -> None:
        """Converts to the MCP SDK type."""
        result = NormalizedResult.error("boom").to_call_tool_result()

        assert isinstance(result, types.CallToolResult)
        assert result.isError is True
        assert isinstance(result.content[0], types.TextContent)
        assert result.content[0].text == "Error: boom"
