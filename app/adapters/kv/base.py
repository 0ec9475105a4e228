"""Key-value store interface consumed by the rate limiter."""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractKVStore(ABC):
    """Remote, eventually-consistent store with per-key TTL.

    No atomic increment, no multi-key transaction and no read-after-write
    guarantee are assumed.
    """

    name: str = "abstract"

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Read the value stored under ``key``.

        Args:
            key: Store key.

        Returns:
            The stored string, or None when the key is absent or expired.

        Raises:
            StoreReadError: If the backend call fails.
        """
        raise NotImplementedError

    @abstractmethod
    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        """Write ``value`` under ``key``, expiring after ``ttl_seconds``.

        Raises:
            StoreWriteError: If the backend call fails.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release connections held by the adapter."""
        return None
