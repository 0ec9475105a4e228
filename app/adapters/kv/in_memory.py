"""In-process TTL store.

Notes:
- Per-process only: each worker sees its own buckets, so running several
  workers multiplies the effective limit. Use the redis backend for shared
  counting.
- Thread-safe: a lock guards the dict. The lock protects the dict itself,
  not the limiter's read-then-write sequence.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.kv.base import AbstractKVStore

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    value: str
    expires_at: float


class InMemoryKVStore(AbstractKVStore):
    """Dict-backed store honouring per-key TTL against an injectable clock."""

    name = "memory"

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, _Entry] = {}
        self._expirations = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryKVStore(size={len(self._entries)}, expirations={self._expirations})"

    async def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                self._entries.pop(key, None)
                self._expirations += 1
                logger.debug("kv.memory.expired", extra={"store_key": key})
                return None
            return entry.value

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")

        with self._lock:
            self._evict_expired_locked()
            self._entries[key] = _Entry(value=value, expires_at=self._clock() + ttl_seconds)

    def clear(self) -> None:
        """Drop every entry and reset counters."""

        with self._lock:
            self._entries.clear()
            self._expirations = 0

    def stats(self) -> dict[str, int]:
        """Return entry and expiration counts without exposing values."""

        with self._lock:
            return {
                "entries": len(self._entries),
                "expirations": self._expirations,
            }

    def _evict_expired_locked(self) -> None:
        now = self._clock()
        expired = [k for k, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        self._expirations += len(expired)
