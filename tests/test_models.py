"""Tests for daemon and catalog models."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from mcpd_bridge.models import (
    DEFAULT_INPUT_SCHEMA,
    DaemonHandle,
    DaemonState,
    ExternalTool,
    ServerDescriptor,
    ToolCatalog,
    ToolDescriptor,
)


def _handle(state: DaemonState, pid: int | None = None) -> DaemonHandle:
    return DaemonHandle(
        state=state,
        pid=pid,
        api_base_url="http://localhost:8090",
        log_path=Path("/data/mcpd.log"),
        config_path=Path("/data/.mcpd.toml"),
    )


class TestDaemonHandle:
    """Tests for DaemonHandle.to_status()."""

    def test_running_owned(self) -> None:
        assert _handle(DaemonState.RUNNING, pid=7).to_status() == {
            "running": True,
            "state": "running",
            "logPath": "/data/mcpd.log",
            "apiUrl": "http://localhost:8090",
            "pid": 7,
        }

    def test_running_foreign_has_no_pid(self) -> None:
        status = _handle(DaemonState.RUNNING).to_status()

        assert "pid" not in status
        assert status["apiUrl"] == "http://localhost:8090"

    @pytest.mark.parametrize("state", [DaemonState.STOPPED, DaemonState.STARTING, DaemonState.FAILED])
    def test_not_running_hides_api_url(self, state: DaemonState) -> None:
        handle = _handle(state)

        assert handle.running is False
        assert "apiUrl" not in handle.to_status()

    def test_frozen(self) -> None:
        handle = _handle(DaemonState.STOPPED)

        with pytest.raises(ValidationError):
            handle.pid = 1  # type: ignore[misc]


class TestServerDescriptor:
    """Tests for ServerDescriptor parsing."""

    def test_accepts_daemon_aliases(self) -> None:
        server = ServerDescriptor.model_validate(
            {"name": "github", "requiredEnv": ["GITHUB_TOKEN"], "args": ["--read-only"], "extra": 1}
        )

        assert server.required_env == ("GITHUB_TOKEN",)
        assert server.required_args == ("--read-only",)

    def test_rejects_empty_name(self) -> None:
        with pytest.raises(ValidationError):
            ServerDescriptor(name="")


class TestExternalTool:
    """Tests for ExternalTool projection."""

    def test_defaults_fill_missing_description_and_schema(self) -> None:
        tool = ExternalTool(
            server="filesystem",
            tool=ToolDescriptor(name="read_file"),
            external_name="filesystem__read_file",
        )

        assert tool.to_mcp() == {
            "name": "filesystem__read_file",
            "description": "read_file from filesystem",
            "inputSchema": DEFAULT_INPUT_SCHEMA,
        }

    def test_default_schema_is_a_copy(self) -> None:
        tool = ExternalTool(server="s", tool=ToolDescriptor(name="t"), external_name="t")

        tool.input_schema["properties"]["x"] = {}

        assert DEFAULT_INPUT_SCHEMA == {"type": "object", "properties": {}}

    def test_declared_values_win(self) -> None:
        schema = {"type": "object", "properties": {"path": {"type": "string"}}}
        descriptor = ToolDescriptor.model_validate({"name": "read_file", "description": "Read", "inputSchema": schema})

        tool = ExternalTool(server="filesystem", tool=descriptor, external_name="read_file")

        assert tool.to_mcp() == {"name": "read_file", "description": "Read", "inputSchema": schema}


class TestToolCatalog:
    """Tests for ToolCatalog."""

    def test_len_and_timestamp(self) -> None:
        tool = ExternalTool(server="s", tool=ToolDescriptor(name="t"), external_name="s__t")

        catalog = ToolCatalog(scope_key="unified", tools=(tool,))

        assert len(catalog) == 1
        assert catalog.refreshed_at.tzinfo is not None
