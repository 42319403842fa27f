"""Rate limiter interfaces.

The HTTP layer depends on this abstraction (not the concrete implementation)
so the storage backend can be swapped later (e.g., Redis) with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a check-and-record operation.

    Attributes:
        limited: True when the request must be rejected.
        retry_after_seconds: Whole seconds until the window resets (0 when admitted).
        limit: Max requests per window for this key.
        remaining: Requests still admissible in the current window.
    """

    limited: bool
    retry_after_seconds: int
    limit: int
    remaining: int


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def check_and_record(self, key: str, limit: int) -> RateLimitResult:
        """Count one request for ``key`` and decide whether to admit it.

        Args:
            key: Client identity combined with the route class.
            limit: Max requests admitted per window for this key.

        Returns:
            RateLimitResult describing the decision.
        """
        raise NotImplementedError
