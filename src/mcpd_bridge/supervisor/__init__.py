"""Daemon process lifecycle: start, stop, status, restart."""

from mcpd_bridge.supervisor.process import AsyncioProcessSpawner, CommandResult, ProcessSpawner
from mcpd_bridge.supervisor.settle import first_settlement
from mcpd_bridge.supervisor.supervisor import DaemonSupervisor

__all__ = [
    "AsyncioProcessSpawner",
    "CommandResult",
    "DaemonSupervisor",
    "ProcessSpawner",
    "first_settlement",
]
