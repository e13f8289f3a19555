"""Single-settlement race between competing coroutines.

first_settlement() runs several sources concurrently and settles exactly
once with the first decisive outcome:

- a source that returns a value resolves the race with it
- a source that raises rejects the race with its exception
- a source that returns None abstains and the race continues

Once settled, every remaining source is cancelled and awaited, so no late
signal can act on a settled outcome.
"""

from __future__ import annotations

__all__ = [
    "NoSettlement",
    "first_settlement",
]

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

T = TypeVar("T")


class NoSettlement(RuntimeError):
    """Every source abstained."""


async def first_settlement(*sources: Awaitable[T | None]) -> T:
    """Race sources and return the first decisive outcome.

    When several sources finish in the same loop iteration, the one listed
    first wins.

    Args:
        *sources: Coroutines or futures to race.

    Returns:
        The first non-None value returned by a source.

    Raises:
        Exception: The first exception raised by a source.
        NoSettlement: If every source returned None.
    """
    tasks = [asyncio.ensure_future(source) for source in sources]
    try:
        pending = set(tasks)
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in tasks:
                if task not in done or task.cancelled():
                    continue
                error = task.exception()
                if error is not None:
                    raise error
                result = task.result()
                if result is not None:
                    return result
        raise NoSettlement("No source settled")
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
