"""Per-client request rate limiting for the gateway.

Sliding window: each client's recent request timestamps are kept in a deque;
entries older than the window are pruned on every check.

Usage:
    limiter = ClientRateLimiter(max_requests=100, window_seconds=60)

    allowed, count = limiter.check(client_id)
    if not allowed:
        retry_after = limiter.retry_after(client_id)
"""

from __future__ import annotations

__all__ = [
    "ClientRateLimiter",
]

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from time import monotonic

from mcpd_bridge.constants import DEFAULT_RATE_LIMIT_REQUESTS, DEFAULT_RATE_LIMIT_WINDOW_SECONDS

# Idle clients are dropped every this many checks
_PRUNE_INTERVAL = 1000


@dataclass(slots=True)
class ClientRateLimiter:
    """Track request rates per client using a sliding window.

    Not thread-safe; the gateway calls it from a single event loop.

    Attributes:
        max_requests: Requests allowed per client per window.
        window_seconds: Duration of the sliding window.
        clock: Monotonic time source (tests substitute a fake).
    """

    max_requests: int = DEFAULT_RATE_LIMIT_REQUESTS
    window_seconds: float = DEFAULT_RATE_LIMIT_WINDOW_SECONDS
    clock: Callable[[], float] = monotonic

    _windows: dict[str, deque[float]] = field(default_factory=dict)
    _checks: int = 0

    def check(self, client_id: str) -> tuple[bool, int]:
        """Record a request if it fits within the limit.

        Args:
            client_id: Client identifier (remote address).

        Returns:
            Tuple of (is_allowed, current_count). A rejected request is not
            recorded.
        """
        now = self.clock()
        self._checks += 1
        if self._checks % _PRUNE_INTERVAL == 0:
            self._prune(now)

        window = self._windows.setdefault(client_id, deque())
        cutoff = now - self.window_seconds
        while window and window[0] <= cutoff:
            window.popleft()

        if len(window) >= self.max_requests:
            return False, len(window)

        window.append(now)
        return True, len(window)

    def retry_after(self, client_id: str) -> float:
        """Seconds until the client's oldest request leaves the window."""
        window = self._windows.get(client_id)
        if not window:
            return 0.0
        return max(0.0, window[0] + self.window_seconds - self.clock())

    def _prune(self, now: float) -> None:
        cutoff = now - self.window_seconds
        idle = [cid for cid, window in self._windows.items() if not window or window[-1] <= cutoff]
        for cid in idle:
            del self._windows[cid]

    def clear(self) -> None:
        self._windows.clear()

    @property
    def active_clients(self) -> int:
        return len(self._windows)
