"""Unit tests for ClientRateLimiter.

Tests use the AAA pattern (Arrange-Act-Assert) and a fake clock.
"""

from __future__ import annotations

from mcpd_bridge.gateway.rate_limiter import ClientRateLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestClientRateLimiter:
    """Sliding window behaviour."""

    def test_allows_requests_within_limit(self) -> None:
        # Arrange
        limiter = ClientRateLimiter(max_requests=3, window_seconds=60, clock=FakeClock())

        # Act
        results = [limiter.check("client") for _ in range(3)]

        # Assert
        assert results == [(True, 1), (True, 2), (True, 3)]

    def test_rejects_over_limit(self) -> None:
        limiter = ClientRateLimiter(max_requests=2, window_seconds=60, clock=FakeClock())
        limiter.check("client")
        limiter.check("client")

        allowed, count = limiter.check("client")

        assert allowed is False
        assert count == 2

    def test_rejected_requests_are_not_recorded(self) -> None:
        """Retrying while limited does not extend the wait."""
        clock = FakeClock()
        limiter = ClientRateLimiter(max_requests=1, window_seconds=10, clock=clock)
        limiter.check("client")
        clock.advance(5)
        limiter.check("client")

        clock.advance(5)

        assert limiter.check("client") == (True, 1)

    def test_window_slides(self) -> None:
        clock = FakeClock()
        limiter = ClientRateLimiter(max_requests=2, window_seconds=10, clock=clock)
        limiter.check("client")
        clock.advance(6)
        limiter.check("client")

        clock.advance(5)

        assert limiter.check("client") == (True, 2)

    def test_clients_are_independent(self) -> None:
        limiter = ClientRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        limiter.check("a")

        assert limiter.check("b") == (True, 1)
        assert limiter.check("a")[0] is False

    def test_retry_after(self) -> None:
        clock = FakeClock()
        limiter = ClientRateLimiter(max_requests=1, window_seconds=60, clock=clock)
        limiter.check("client")
        clock.advance(20)

        assert limiter.retry_after("client") == 40
        assert limiter.retry_after("unknown") == 0.0

    def test_idle_clients_are_pruned(self) -> None:
        """Clients idle longer than the window are dropped periodically."""
        # Arrange
        clock = FakeClock()
        limiter = ClientRateLimiter(max_requests=5000, window_seconds=10, clock=clock)
        limiter.check("idle")
        clock.advance(11)

        # Act
        for _ in range(999):
            limiter.check("busy")

        # Assert
        assert limiter.active_clients == 1

    def test_clear(self) -> None:
        limiter = ClientRateLimiter(clock=FakeClock())
        limiter.check("client")

        limiter.clear()

        assert limiter.active_clients == 0
