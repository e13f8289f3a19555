"""Unit tests for gateway security: API keys, rate limit, size limit."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from mcpd_bridge.config import GatewayConfig
from mcpd_bridge.gateway import create_gateway_app
from mcpd_bridge.gateway.security import extract_api_key, validate_api_key

API_KEY = "test-key"


class TestValidateApiKey:
    """Tests for validate_api_key()."""

    def test_matching_key(self) -> None:
        assert validate_api_key("k2", {"k1", "k2"}) is True

    def test_wrong_key(self) -> None:
        assert validate_api_key("nope", {"k1", "k2"}) is False

    @pytest.mark.parametrize("provided", [None, ""])
    def test_missing_key(self, provided: str | None) -> None:
        assert validate_api_key(provided, {"k1"}) is False


class TestExtractApiKey:
    """Tests for extract_api_key()."""

    def test_header_takes_precedence(self) -> None:
        headers = {"x-api-key": "from-header", "authorization": "Bearer from-bearer"}

        assert extract_api_key(headers, {"apiKey": "from-query"}) == "from-header"

    def test_bearer_token(self) -> None:
        assert extract_api_key({"authorization": "Bearer abc"}, {}) == "abc"

    def test_non_bearer_authorization_is_ignored(self) -> None:
        assert extract_api_key({"authorization": "Basic abc"}, {}) is None

    def test_query_parameter(self) -> None:
        assert extract_api_key({}, {"apiKey": "q"}) == "q"


class TestAuthentication:
    """Tests for authentication on /api/*."""

    def test_missing_key_is_rejected(self, gateway_client: TestClient) -> None:
        with patch("mcpd_bridge.gateway.security.log_event") as mock_log:
            response = gateway_client.get("/api/servers")

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        assert mock_log.call_args[0][1].event == "unauthorized_request_rejected"

    def test_wrong_key_is_rejected(self, gateway_client: TestClient) -> None:
        response = gateway_client.get("/api/tools", headers={"X-API-Key": "wrong"})

        assert response.status_code == 401

    @pytest.mark.parametrize(
        ("headers", "params"),
        [
            ({"X-API-Key": API_KEY}, {}),
            ({"Authorization": f"Bearer {API_KEY}"}, {}),
            ({}, {"apiKey": API_KEY}),
        ],
    )
    def test_accepted_key_locations(self, gateway_client: TestClient, headers: dict, params: dict) -> None:
        response = gateway_client.get("/api/servers", headers=headers, params=params)

        assert response.status_code == 200

    def test_any_configured_key_works(self, make_client) -> None:
        config = GatewayConfig(api_keys="first, second", mcpd_url="http://mcpd.test")
        client = TestClient(create_gateway_app(config, make_client()))

        response = client.get("/api/servers", headers={"X-API-Key": "second"})

        assert response.status_code == 200


class TestRateLimit:
    """Tests for the per-client rate limit."""

    @pytest.fixture
    def limited_client(self, make_client) -> TestClient:
        config = GatewayConfig(
            api_keys=frozenset({API_KEY}),
            mcpd_url="http://mcpd.test",
            rate_limit_requests=2,
            rate_limit_window_seconds=60,
        )
        return TestClient(create_gateway_app(config, make_client()))

    def test_limit_exceeded(self, limited_client: TestClient) -> None:
        """Given more requests than the limit, returns 429 with Retry-After."""
        # Arrange
        headers = {"X-API-Key": API_KEY}
        limited_client.get("/api/servers", headers=headers)
        limited_client.get("/api/servers", headers=headers)

        # Act
        response = limited_client.get("/api/servers", headers=headers)

        # Assert
        assert response.status_code == 429
        assert response.json() == {"error": "Too many requests, please try again later"}
        assert 0 < int(response.headers["Retry-After"]) <= 60

    def test_limit_applies_before_authentication(self, limited_client: TestClient) -> None:
        """Unauthenticated requests count against the limit too."""
        limited_client.get("/api/servers")
        limited_client.get("/api")

        response = limited_client.get("/api")

        assert response.status_code == 429

    def test_health_is_not_limited(self, limited_client: TestClient) -> None:
        for _ in range(5):
            response = limited_client.get("/health")

        assert response.status_code == 200


class TestRequestSize:
    """Tests for the request size limit."""

    def test_oversized_body(self, make_client) -> None:
        config = GatewayConfig(api_keys=frozenset({API_KEY}), mcpd_url="http://mcpd.test", max_request_bytes=1024)
        client = TestClient(create_gateway_app(config, make_client()))

        response = client.post(
            "/api/tools/call",
            content=b"x" * 2048,
            headers={"X-API-Key": API_KEY, "Content-Type": "application/json"},
        )

        assert response.status_code == 413
        assert response.json() == {"error": "Request too large"}

    def test_invalid_content_length(self, gateway_client: TestClient) -> None:
        response = gateway_client.post("/api/tools/call", content=b"{}", headers={"Content-Length": "abc"})

        assert response.status_code == 400


class TestCors:
    """Tests for CORS handling."""

    def test_preflight_skips_authentication(self, gateway_client: TestClient) -> None:
        response = gateway_client.options(
            "/api/tools/call",
            headers={
                "Origin": "http://example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "X-API-Key",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"

    def test_cors_can_be_disabled(self, make_client) -> None:
        config = GatewayConfig(api_keys=frozenset({API_KEY}), mcpd_url="http://mcpd.test", enable_cors=False)
        client = TestClient(create_gateway_app(config, make_client()))

        response = client.get("/health", headers={"Origin": "http://example.com"})

        assert "access-control-allow-origin" not in response.headers
