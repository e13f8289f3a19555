"""Daemon executable lookup and launch environment.

Lookup order:
    1. Bundled binary for this OS/arch in the resources directory
    2. Well-known install locations (Homebrew, /usr/bin)
    3. `mcpd` on PATH
"""

from __future__ import annotations

__all__ = [
    "build_daemon_env",
    "bundled_binary_name",
    "daemon_args",
    "resolve_daemon_binary",
]

import os
import platform
import shutil
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path

from mcpd_bridge.constants import (
    DAEMON_BINARY_NAME,
    EXTRA_TOOL_PATHS,
    NODE_MODULE_PATHS,
    SYSTEM_DAEMON_PATHS,
)
from mcpd_bridge.exceptions import BinaryNotFound

Which = Callable[[str], "str | None"]


def bundled_binary_name(system: str | None = None, machine: str | None = None) -> str:
    """Name of the bundled binary for a platform.

    Args:
        system: platform.system() value (defaults to the current one).
        machine: platform.machine() value (defaults to the current one).

    Returns:
        "mcpd-darwin-arm64", "mcpd-darwin-x64", "mcpd.exe", "mcpd-linux",
        or plain "mcpd" for anything else.
    """
    system = (system or platform.system()).lower()
    machine = (machine or platform.machine()).lower()

    if system == "darwin":
        return "mcpd-darwin-arm64" if machine in ("arm64", "aarch64") else "mcpd-darwin-x64"
    if system == "windows":
        return "mcpd.exe"
    if system == "linux":
        return "mcpd-linux"
    return DAEMON_BINARY_NAME


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def resolve_daemon_binary(
    resources_dir: Path,
    system_paths: Iterable[str] | None = None,
    which: Which = shutil.which,
    binary_name: str | None = None,
) -> Path:
    """Locate the mcpd executable.

    Args:
        resources_dir: Directory holding bundled binaries.
        system_paths: Well-known install locations, checked in order
            (defaults to SYSTEM_DAEMON_PATHS).
        which: PATH lookup function.
        binary_name: Bundled binary name override (defaults to this platform's).

    Returns:
        Path of the first executable found.

    Raises:
        BinaryNotFound: If no location has an executable.
    """
    bundled = resources_dir / (binary_name or bundled_binary_name())
    searched = [str(bundled)]
    if _is_executable(bundled):
        return bundled

    for candidate in SYSTEM_DAEMON_PATHS if system_paths is None else system_paths:
        searched.append(candidate)
        if _is_executable(Path(candidate)):
            return Path(candidate)

    searched.append(f"PATH ({DAEMON_BINARY_NAME})")
    found = which(DAEMON_BINARY_NAME)
    if found:
        return Path(found)

    raise BinaryNotFound(searched)


def build_daemon_env(base_env: Mapping[str, str] | None = None, which: Which = shutil.which) -> dict[str, str]:
    """Environment for the daemon process.

    The daemon launches tool servers through npx/uvx, so PATH is widened with
    common tool locations (and the directory of `node`, if found) and
    NODE_PATH points at the global module directories.

    Args:
        base_env: Inherited environment (defaults to os.environ).
        which: PATH lookup function used to find `node`.

    Returns:
        New environment mapping; base_env is not modified.
    """
    env = dict(os.environ if base_env is None else base_env)

    entries: list[str] = [p for p in env.get("PATH", "").split(os.pathsep) if p]
    extra = [os.path.expanduser(p) for p in EXTRA_TOOL_PATHS]
    node = which("node")
    if node:
        extra.append(str(Path(node).parent))
    for path in extra:
        if path not in entries:
            entries.append(path)

    env["PATH"] = os.pathsep.join(entries)
    env["NODE_PATH"] = os.pathsep.join(NODE_MODULE_PATHS)
    return env


def daemon_args(log_path: Path, config_path: Path) -> list[str]:
    """Arguments for `mcpd daemon`."""
    return [
        "daemon",
        "--dev",
        "--log-level=DEBUG",
        f"--log-path={log_path}",
        f"--config-file={config_path}",
    ]
