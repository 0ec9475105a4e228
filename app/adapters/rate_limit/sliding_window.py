"""Approximate sliding-window rate limiter over a TTL key-value store.

Each scope is counted in one store entry per wall-clock second. A call
increments the current second's bucket, then sums the trailing
``window_sec`` buckets and compares the sum to the limit.

Approximation:
- The increment is a plain read, add one, write. Two callers that read the
  same value before either writes back lose one increment. No locking is
  attempted; the loss is bounded to calls landing in the same second for
  the same scope.
- Store failures never reach the caller, whatever their exception type.
  They are reported to the observer and replaced by fail-open
  substitutes from ``FallbackPolicy``.
"""

from __future__ import annotations

import asyncio
import math
import time
from typing import Callable

from app.adapters.kv.base import AbstractKVStore
from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitConfig, RateLimitDecision
from app.adapters.rate_limit.keys import build_bucket_key, window_keys
from app.adapters.rate_limit.observer import LoggingObserver, RateLimitObserver
from app.adapters.rate_limit.policy import FallbackPolicy, evaluate, parse_count
from app.core.errors import ScanReadError


class KVSlidingWindowRateLimiter(AbstractRateLimiter):
    """Sliding-window limiter counting in per-second store buckets."""

    def __init__(
        self,
        store: AbstractKVStore,
        *,
        clock: Callable[[], float] = time.time,
        observer: RateLimitObserver | None = None,
        fallback: FallbackPolicy | None = None,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Store holding the buckets.
            clock: Time source returning UNIX time in seconds.
            observer: Receives recovered failures; logs them by default.
            fallback: Substitute values for failed store calls.
        """
        self._store = store
        self._clock = clock
        self._observer = observer or LoggingObserver()
        self._fallback = fallback or FallbackPolicy()

    @property
    def store(self) -> AbstractKVStore:
        return self._store

    async def record_and_evaluate(
        self,
        scope: str,
        config: RateLimitConfig | None = None,
    ) -> RateLimitDecision:
        """Record one event for ``scope`` and return the window verdict.

        Args:
            scope: Counter partition (e.g., hashed API key, client IP).
            config: Window/limit settings; defaults to ``RateLimitConfig()``.

        Returns:
            RateLimitDecision. Always produced, even when the store fails.

        Raises:
            ValueError: If scope is empty.
        """
        if not scope:
            raise ValueError("scope must be a non-empty string")

        cfg = config or RateLimitConfig()
        now_sec = math.floor(self._clock())

        new_value = await self._increment_current(
            build_bucket_key(cfg.bucket_key_prefix, scope, now_sec),
            cfg.ttl_seconds,
        )
        total = await self._sum_window(
            window_keys(cfg.bucket_key_prefix, scope, now_sec, cfg.window_sec),
            new_value,
        )

        return RateLimitDecision(
            allowed=evaluate(total, cfg.limit),
            total=total,
            limit=cfg.limit,
        )

    async def _increment_current(self, key: str, ttl_seconds: int) -> int:
        """Read, add one and write back the current bucket; return the new count."""

        try:
            current = parse_count(await self._store.get(key))
        except Exception as exc:  # noqa: BLE001
            self._observer.warn("rate_limit.store_read_failed", exc)
            current = self._fallback.on_current_read_failure()

        new_value = current + 1

        try:
            await self._store.put(key, str(new_value), ttl_seconds)
        except Exception as exc:  # noqa: BLE001
            # The decision still goes ahead; a lost write is a lost increment.
            self._observer.warn("rate_limit.store_write_failed", exc)

        return new_value

    async def _sum_window(self, keys: list[str], current_value: int) -> int:
        """Sum the window buckets, reading them all concurrently."""

        results = await asyncio.gather(
            *(self._store.get(key) for key in keys),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            error = ScanReadError(
                code="scan_read_failed",
                message=f"{len(failures)} of {len(keys)} window reads failed",
                details={"failed_reads": len(failures), "total_reads": len(keys)},
            )
            error.__cause__ = failures[0]
            self._observer.warn("rate_limit.scan_failed", error)
            return self._fallback.on_scan_failure(current_value)

        return sum(parse_count(raw) for raw in results)
