"""Unit tests for first_settlement()."""

from __future__ import annotations

import asyncio

import pytest

from mcpd_bridge.supervisor.settle import NoSettlement, first_settlement


async def _after(delay: float, value=None, error: Exception | None = None):
    await asyncio.sleep(delay)
    if error is not None:
        raise error
    return value


class TestFirstSettlement:
    """Tests for the single-settlement race."""

    async def test_first_value_wins(self) -> None:
        result = await first_settlement(_after(0.05, "slow"), _after(0.0, "fast"))

        assert result == "fast"

    async def test_first_error_rejects(self) -> None:
        with pytest.raises(ValueError, match="boom"):
            await first_settlement(_after(0.05, "slow"), _after(0.0, error=ValueError("boom")))

    async def test_abstentions_are_skipped(self) -> None:
        """A source returning None does not settle the race."""
        result = await first_settlement(_after(0.0, None), _after(0.01, "decisive"))

        assert result == "decisive"

    async def test_all_abstain(self) -> None:
        with pytest.raises(NoSettlement):
            await first_settlement(_after(0.0), _after(0.0))

    async def test_losers_are_cancelled(self) -> None:
        """Once settled, remaining sources are cancelled before returning."""
        # Arrange
        cancelled = asyncio.Event()

        async def never() -> None:
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        # Act
        await first_settlement(never(), _after(0.0, "done"))

        # Assert
        assert cancelled.is_set()

    async def test_earlier_source_wins_a_tie(self) -> None:
        """Sources finishing in the same iteration settle in listed order."""
        first = asyncio.get_running_loop().create_future()
        second = asyncio.get_running_loop().create_future()
        first.set_exception(RuntimeError("first"))
        second.set_result("second")

        with pytest.raises(RuntimeError, match="first"):
            await first_settlement(first, second)
