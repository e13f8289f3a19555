"""Namespacing, catalog translation and the stdio MCP bridge."""

from mcpd_bridge.bridge.namespace import BridgeMode, BridgeScope
from mcpd_bridge.bridge.results import NormalizedResult
from mcpd_bridge.bridge.translator import ProtocolTranslator

__all__ = [
    "BridgeMode",
    "BridgeScope",
    "NormalizedResult",
    "ProtocolTranslator",
]
