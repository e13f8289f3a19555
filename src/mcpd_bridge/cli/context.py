"""Shared state for mcpd-manager subcommands."""

from __future__ import annotations

__all__ = ["CliContext", "pass_cli_context"]

from dataclasses import dataclass
from pathlib import Path

import click

from mcpd_bridge.backend.client import BackendClient
from mcpd_bridge.bridge.translator import ProtocolTranslator
from mcpd_bridge.config import SupervisorConfig, load_supervisor_config
from mcpd_bridge.supervisor import DaemonSupervisor
from mcpd_bridge.telemetry import configure_system_logger_file


@dataclass(frozen=True, slots=True)
class CliContext:
    """Global options of the mcpd-manager group.

    Attributes:
        data_dir: --data-dir override.
        mcpd_url: --mcpd-url override.
    """

    data_dir: Path | None = None
    mcpd_url: str | None = None

    def supervisor_config(self) -> SupervisorConfig:
        """Raises ConfigurationError on invalid values."""
        return load_supervisor_config(data_dir=self.data_dir, api_base_url=self.mcpd_url)

    def supervisor(self) -> DaemonSupervisor:
        config = self.supervisor_config()
        configure_system_logger_file(config.system_log_path)
        return DaemonSupervisor(config)

    def translator(self) -> ProtocolTranslator:
        """Translator over a fresh client; the caller closes translator.client."""
        config = self.supervisor_config()
        return ProtocolTranslator(BackendClient(config.api_base_url, api_key=config.api_key))


pass_cli_context = click.make_pass_decorator(CliContext, ensure=True)
