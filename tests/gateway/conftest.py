"""Fixtures for gateway tests: apps wired to FakeMcpd."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from mcpd_bridge.config import GatewayConfig
from mcpd_bridge.gateway import create_gateway_app, create_mcp_app

API_KEY = "test-key"


@pytest.fixture
def gateway_config() -> GatewayConfig:
    return GatewayConfig(api_keys=frozenset({API_KEY}), mcpd_url="http://mcpd.test", port=3000)


@pytest.fixture
def gateway_client(gateway_config: GatewayConfig, make_client) -> TestClient:
    """Unauthenticated test client for the REST/WebSocket gateway."""
    return TestClient(create_gateway_app(gateway_config, make_client()))


@pytest.fixture
def api(gateway_client: TestClient) -> TestClient:
    """Gateway client that sends the API key on every request."""
    gateway_client.headers["X-API-Key"] = API_KEY
    return gateway_client


@pytest.fixture
def mcp_client(gateway_config: GatewayConfig, make_client) -> TestClient:
    return TestClient(create_mcp_app(gateway_config, make_client()))
