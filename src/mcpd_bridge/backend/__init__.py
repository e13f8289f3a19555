"""HTTP client for the mcpd daemon API."""

from mcpd_bridge.backend.client import BackendClient

__all__ = ["BackendClient"]
