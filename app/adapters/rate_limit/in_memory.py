"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Windows start at a key's first request, not on clock-aligned boundaries.
  Bursts straddling a window reset can reach twice the limit.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


@dataclass
class _WindowState:
    window_start: float
    count: int


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting requests per key inside a fixed window.

    Every call both checks and increments the key's counter; rejected
    requests still count. Stale windows for every key are swept on each
    call, so the table only holds clients seen within the last window.

    Important:
        Counters live in process memory. A restart resets them and each
        worker enforces its own independent budget.
    """

    def __init__(
        self,
        *,
        window_seconds: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            window_seconds: Length of the fixed window in seconds.
            clock: Time source returning seconds.

        Raises:
            ValueError: If window_seconds is invalid.
        """
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._state_by_key: dict[str, _WindowState] = {}

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    def __len__(self) -> int:
        with self._lock:
            return len(self._state_by_key)

    def _is_expired(self, state: _WindowState, now: float) -> bool:
        return now - state.window_start >= self._window_seconds

    def _sweep(self, now: float) -> None:
        stale = [k for k, s in self._state_by_key.items() if self._is_expired(s, now)]
        for key in stale:
            del self._state_by_key[key]

    def check_and_record(self, key: str, limit: int) -> RateLimitResult:
        """Record one request for ``key`` and report whether it is admitted.

        Args:
            key: Client identity combined with the route class.
            limit: Max requests admitted per window.

        Returns:
            RateLimitResult; ``retry_after_seconds`` is in [1, window] when limited.
        """
        now = self._clock()

        with self._lock:
            self._sweep(now)

            state = self._state_by_key.get(key)
            if state is None:
                self._state_by_key[key] = _WindowState(window_start=now, count=1)
                return RateLimitResult(
                    limited=False,
                    retry_after_seconds=0,
                    limit=limit,
                    remaining=max(0, limit - 1),
                )

            state.count += 1
            if state.count > limit:
                elapsed = now - state.window_start
                retry_after = max(1, math.ceil(self._window_seconds - elapsed))
                return RateLimitResult(
                    limited=True,
                    retry_after_seconds=retry_after,
                    limit=limit,
                    remaining=0,
                )

            return RateLimitResult(
                limited=False,
                retry_after_seconds=0,
                limit=limit,
                remaining=limit - state.count,
            )
