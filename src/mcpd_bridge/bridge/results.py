"""Normalization of tool call replies.

The daemon relays whatever the tool server returned, so a reply can be:
- ContentOutput: an MCP-style {"content": [...], "isError"?: bool} object
- TextOutput: a bare string
- JsonOutput: any other JSON value

parse_backend_output() classifies a raw reply once; NormalizedResult is the
single shape every client surface renders from.
"""

from __future__ import annotations

__all__ = [
    "BackendOutput",
    "ContentOutput",
    "JsonOutput",
    "NormalizedResult",
    "TextOutput",
    "normalize",
    "parse_backend_output",
]

import json
from dataclasses import dataclass
from typing import Any, Union

from mcp import types

from mcpd_bridge.models import FrozenModel


@dataclass(frozen=True, slots=True)
class ContentOutput:
    content: list[dict[str, Any]]
    is_error: bool = False


@dataclass(frozen=True, slots=True)
class TextOutput:
    text: str


@dataclass(frozen=True, slots=True)
class JsonOutput:
    value: Any


BackendOutput = Union[ContentOutput, TextOutput, JsonOutput]


def parse_backend_output(raw: Any) -> BackendOutput:
    """Classify a raw daemon reply.

    Args:
        raw: Decoded reply body (JSON value or text).

    Returns:
        The matching BackendOutput variant.
    """
    if isinstance(raw, dict) and isinstance(raw.get("content"), list):
        return ContentOutput(content=raw["content"], is_error=raw.get("isError") is True)
    if isinstance(raw, str):
        return TextOutput(raw)
    return JsonOutput(raw)


class NormalizedResult(FrozenModel):
    """A tool call result in MCP CallToolResult form.

    Attributes:
        content: Content blocks (text, image, ...).
        is_error: True when the call failed.
    """

    content: tuple[dict[str, Any], ...]
    is_error: bool = False

    @classmethod
    def text(cls, text: str, is_error: bool = False) -> "NormalizedResult":
        return cls(content=({"type": "text", "text": text},), is_error=is_error)

    @classmethod
    def error(cls, message: str) -> "NormalizedResult":
        """Error result with the "Error: <message>" text clients expect."""
        return cls.text(f"Error: {message}", is_error=True)

    def to_mcp(self) -> dict[str, Any]:
        """MCP CallToolResult JSON shape ({content, isError?})."""
        result: dict[str, Any] = {"content": list(self.content)}
        if self.is_error:
            result["isError"] = True
        return result

    def to_call_tool_result(self) -> types.CallToolResult:
        """Convert to the MCP SDK result type."""
        return types.CallToolResult.model_validate(self.to_mcp())


def normalize(output: BackendOutput) -> NormalizedResult:
    """Render a classified reply as a NormalizedResult."""
    if isinstance(output, ContentOutput):
        return NormalizedResult(content=tuple(output.content), is_error=output.is_error)
    if isinstance(output, TextOutput):
        return NormalizedResult.text(output.text)
    return NormalizedResult.text(json.dumps(output.value, indent=2))
