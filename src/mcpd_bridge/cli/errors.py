"""Shared CLI error reporting."""

from __future__ import annotations

__all__ = ["exit_with_error", "run_or_exit"]

import asyncio
import sys
from collections.abc import Coroutine
from typing import Any, NoReturn, TypeVar

import click

from mcpd_bridge.exceptions import McpdBridgeError

from .styling import style_error

T = TypeVar("T")


def exit_with_error(message: str) -> NoReturn:
    """Print "Error: <message>" to stderr and exit 1."""
    click.echo(style_error(f"Error: {message}"), err=True)
    sys.exit(1)


def run_or_exit(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine; exit 1 with its message on McpdBridgeError."""
    try:
        return asyncio.run(coro)
    except McpdBridgeError as e:
        exit_with_error(e.message)
