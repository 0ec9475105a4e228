"""Rate limiter interfaces.

The API should depend on this abstraction (not the concrete implementation)
so the counting strategy and its store can be swapped without touching
routes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitConfig:
    """Per-call limiter configuration.

    Attributes:
        window_sec: Sliding window width in seconds.
        limit: Max events permitted inside the window.
        bucket_key_prefix: Namespace prepended to every bucket key.
        bucket_ttl: Bucket TTL in seconds; None means ``2 * window_sec``.
    """

    window_sec: int = 60
    limit: int = 60
    bucket_key_prefix: str = "rl"
    bucket_ttl: int | None = None

    def __post_init__(self) -> None:
        if self.window_sec < 1:
            raise ValueError("window_sec must be >= 1")
        if self.limit < 0:
            raise ValueError("limit must be >= 0")
        if not self.bucket_key_prefix:
            raise ValueError("bucket_key_prefix must be a non-empty string")
        if self.bucket_ttl is not None and self.bucket_ttl < 1:
            raise ValueError("bucket_ttl must be >= 1")

    @property
    def ttl_seconds(self) -> int:
        """Resolved bucket TTL; buckets outlive one full window by default."""
        if self.bucket_ttl is not None:
            return self.bucket_ttl
        return self.window_sec * 2


@dataclass(frozen=True)
class RateLimitDecision:
    """Verdict for one recorded event.

    Attributes:
        allowed: Whether the event is within the limit.
        total: Approximate event count in the window, including this one.
        limit: The configured threshold, echoed back.
    """

    allowed: bool
    total: int
    limit: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.total)


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    async def record_and_evaluate(
        self,
        scope: str,
        config: RateLimitConfig | None = None,
    ) -> RateLimitDecision:
        """Record one event for ``scope`` and decide whether it is allowed.

        Args:
            scope: Counter partition (e.g., hashed API key, client IP).
            config: Window/limit settings; defaults to ``RateLimitConfig()``.

        Returns:
            RateLimitDecision for the recorded event.
        """
        raise NotImplementedError
