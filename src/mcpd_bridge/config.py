"""Configuration models for mcpd-bridge.

Each entry point has its own configuration model:
- BridgeConfig: stdio bridge (mcpd-bridge-server)
- GatewayConfig: HTTP gateway and MCP-over-HTTP endpoint (mcpd-http-gateway)
- SupervisorConfig: daemon supervisor (mcpd-manager)

Values come from environment variables, with explicit keyword overrides
(typically CLI options) taking precedence.

Example usage:
    config = load_bridge_config(target_server="filesystem")
    gateway_config = load_gateway_config(port=8080)
"""

from __future__ import annotations

__all__ = [
    "BridgeConfig",
    "GatewayConfig",
    "SupervisorConfig",
    "load_bridge_config",
    "load_gateway_config",
    "load_supervisor_config",
]

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from platformdirs import user_data_dir
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from mcpd_bridge.constants import (
    APP_NAME,
    DAEMON_CONFIG_FILENAME,
    DAEMON_LOG_FILENAME,
    DEFAULT_GATEWAY_API_KEY,
    DEFAULT_GATEWAY_PORT,
    DEFAULT_MCP_PORT,
    DEFAULT_MCPD_URL,
    DEFAULT_RATE_LIMIT_REQUESTS,
    DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    MAX_REQUEST_BYTES,
    PORT_CONFLICT_PROBE_DELAY_SECONDS,
    RESTART_GRACE_SECONDS,
    STARTUP_ABSOLUTE_TIMEOUT_SECONDS,
    STARTUP_PROBE_DELAY_SECONDS,
    STOP_TIMEOUT_SECONDS,
    SYSTEM_LOG_FILENAME,
)
from mcpd_bridge.exceptions import ConfigurationError

# Bundled daemon binaries shipped with the package
DEFAULT_RESOURCES_DIR = Path(__file__).parent / "resources"


class BridgeConfig(BaseModel):
    """Stdio bridge configuration.

    Attributes:
        mcpd_url: Base URL of the mcpd daemon.
        api_key: Optional key sent to the daemon as X-API-Key.
        target_server: Server to expose (Individual mode). None means Unified.
        namespacing: Prefix tool names with their server in Individual mode.
        request_timeout_seconds: Timeout for each daemon call.
    """

    mcpd_url: str = Field(default=DEFAULT_MCPD_URL, min_length=1)
    api_key: str | None = None
    target_server: str | None = None
    namespacing: bool = True
    request_timeout_seconds: float = Field(default=DEFAULT_REQUEST_TIMEOUT_SECONDS, gt=0, le=600)

    model_config = {"extra": "ignore", "frozen": True}

    @field_validator("mcpd_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class GatewayConfig(BaseModel):
    """HTTP gateway configuration.

    Attributes:
        host: Interface to bind.
        port: Port for the REST/WebSocket gateway.
        mcp_port: Port for the MCP-over-HTTP endpoint.
        mcpd_url: Base URL of the mcpd daemon.
        mcpd_api_key: Optional key sent to the daemon as X-API-Key.
        api_keys: Shared secrets accepted from gateway clients.
        enable_cors: Add permissive CORS headers.
        rate_limit_requests: Requests allowed per client per window on /api/*.
        rate_limit_window_seconds: Sliding window length.
        max_request_bytes: Largest accepted request body.
        request_timeout_seconds: Timeout for each daemon call.
    """

    host: str = "0.0.0.0"
    port: int = Field(default=DEFAULT_GATEWAY_PORT, ge=1, le=65535)
    mcp_port: int = Field(default=DEFAULT_MCP_PORT, ge=1, le=65535)
    mcpd_url: str = Field(default=DEFAULT_MCPD_URL, min_length=1)
    mcpd_api_key: str | None = None
    api_keys: frozenset[str] = Field(default=frozenset({DEFAULT_GATEWAY_API_KEY}), min_length=1)
    enable_cors: bool = True
    rate_limit_requests: int = Field(default=DEFAULT_RATE_LIMIT_REQUESTS, ge=1)
    rate_limit_window_seconds: float = Field(default=DEFAULT_RATE_LIMIT_WINDOW_SECONDS, gt=0)
    max_request_bytes: int = Field(default=MAX_REQUEST_BYTES, ge=1024)
    request_timeout_seconds: float = Field(default=DEFAULT_REQUEST_TIMEOUT_SECONDS, gt=0, le=600)

    model_config = {"extra": "ignore", "frozen": True}

    @field_validator("mcpd_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("api_keys", mode="before")
    @classmethod
    def split_keys(cls, value: Any) -> Any:
        """Accept a comma-separated string as well as a collection."""
        if isinstance(value, str):
            return frozenset(k.strip() for k in value.split(",") if k.strip())
        return value


class SupervisorConfig(BaseModel):
    """Daemon supervisor configuration.

    Attributes:
        data_dir: Working directory for the daemon; holds its config and log.
        api_base_url: Where the daemon's API answers once running.
        api_key: Optional key sent to the daemon as X-API-Key.
        resources_dir: Directory holding bundled daemon binaries.
        probe_delay_seconds: Delay before the startup health probe.
        absolute_timeout_seconds: Hard deadline for start().
        port_conflict_probe_delay_seconds: Delay before probing an existing
            instance after a port conflict.
        restart_grace_seconds: Pause between stop and start on restart.
        stop_timeout_seconds: Wait after SIGTERM before SIGKILL.
    """

    data_dir: Path = Field(default_factory=lambda: Path(user_data_dir(APP_NAME)))
    api_base_url: str = Field(default=DEFAULT_MCPD_URL, min_length=1)
    api_key: str | None = None
    resources_dir: Path = DEFAULT_RESOURCES_DIR
    probe_delay_seconds: float = Field(default=STARTUP_PROBE_DELAY_SECONDS, ge=0)
    absolute_timeout_seconds: float = Field(default=STARTUP_ABSOLUTE_TIMEOUT_SECONDS, gt=0)
    port_conflict_probe_delay_seconds: float = Field(default=PORT_CONFLICT_PROBE_DELAY_SECONDS, ge=0)
    restart_grace_seconds: float = Field(default=RESTART_GRACE_SECONDS, ge=0)
    stop_timeout_seconds: float = Field(default=STOP_TIMEOUT_SECONDS, gt=0)

    model_config = {"extra": "ignore", "frozen": True}

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def log_path(self) -> Path:
        """Daemon log file (passed to mcpd as --log-path)."""
        return self.data_dir / DAEMON_LOG_FILENAME

    @property
    def config_path(self) -> Path:
        """Daemon TOML config (passed to mcpd as --config-file)."""
        return self.data_dir / DAEMON_CONFIG_FILENAME

    @property
    def system_log_path(self) -> Path:
        """JSONL file for mcpd-manager's own warnings and errors."""
        return self.data_dir / SYSTEM_LOG_FILENAME

    @model_validator(mode="after")
    def check_timeouts(self) -> "SupervisorConfig":
        if self.absolute_timeout_seconds <= self.probe_delay_seconds:
            raise ValueError("absolute_timeout_seconds must be longer than probe_delay_seconds")
        return self


def _env_values(env: Mapping[str, str], mapping: dict[str, str]) -> dict[str, Any]:
    """Pick the environment variables that are set, keyed by field name."""
    values: dict[str, Any] = {}
    for env_name, field_name in mapping.items():
        raw = env.get(env_name)
        if raw is not None and raw != "":
            values[field_name] = raw
    return values


def _build(model: type[BaseModel], values: dict[str, Any]) -> Any:
    try:
        return model.model_validate(values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid {model.__name__}: {e}") from e


def load_bridge_config(env: Mapping[str, str] | None = None, **overrides: Any) -> BridgeConfig:
    """Load stdio bridge configuration.

    Environment:
        MCPD_URL, MCPD_API_KEY, MCPD_REQUEST_TIMEOUT

    Args:
        env: Environment mapping (defaults to os.environ).
        **overrides: Field values that take precedence (None values ignored).

    Returns:
        Validated BridgeConfig.

    Raises:
        ConfigurationError: If a value fails validation.
    """
    env = os.environ if env is None else env
    values = _env_values(
        env,
        {
            "MCPD_URL": "mcpd_url",
            "MCPD_API_KEY": "api_key",
            "MCPD_REQUEST_TIMEOUT": "request_timeout_seconds",
        },
    )
    values.update({k: v for k, v in overrides.items() if v is not None})
    return _build(BridgeConfig, values)


def load_gateway_config(env: Mapping[str, str] | None = None, **overrides: Any) -> GatewayConfig:
    """Load HTTP gateway configuration.

    Environment:
        PORT, MCP_PORT, HOST, MCPD_URL, MCPD_API_KEY, API_KEY (comma
        separated), ENABLE_CORS ("false" disables), MCPD_REQUEST_TIMEOUT

    Args:
        env: Environment mapping (defaults to os.environ).
        **overrides: Field values that take precedence (None values ignored).

    Returns:
        Validated GatewayConfig.

    Raises:
        ConfigurationError: If a value fails validation.
    """
    env = os.environ if env is None else env
    values = _env_values(
        env,
        {
            "HOST": "host",
            "PORT": "port",
            "MCP_PORT": "mcp_port",
            "MCPD_URL": "mcpd_url",
            "MCPD_API_KEY": "mcpd_api_key",
            "API_KEY": "api_keys",
            "MCPD_REQUEST_TIMEOUT": "request_timeout_seconds",
        },
    )
    if "ENABLE_CORS" in env:
        values["enable_cors"] = env["ENABLE_CORS"].strip().lower() != "false"
    values.update({k: v for k, v in overrides.items() if v is not None})
    return _build(GatewayConfig, values)


def load_supervisor_config(env: Mapping[str, str] | None = None, **overrides: Any) -> SupervisorConfig:
    """Load daemon supervisor configuration.

    Environment:
        MCPD_DATA_DIR, MCPD_URL, MCPD_API_KEY, MCPD_RESOURCES_DIR

    Args:
        env: Environment mapping (defaults to os.environ).
        **overrides: Field values that take precedence (None values ignored).

    Returns:
        Validated SupervisorConfig.

    Raises:
        ConfigurationError: If a value fails validation.
    """
    env = os.environ if env is None else env
    values = _env_values(
        env,
        {
            "MCPD_DATA_DIR": "data_dir",
            "MCPD_URL": "api_base_url",
            "MCPD_API_KEY": "api_key",
            "MCPD_RESOURCES_DIR": "resources_dir",
        },
    )
    values.update({k: v for k, v in overrides.items() if v is not None})
    return _build(SupervisorConfig, values)
