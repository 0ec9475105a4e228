"""Redis-backed store adapter.

Only plain ``GET`` and ``SET ... EX`` are used: the limiter is written for
stores without atomic increments, so ``INCR`` is deliberately absent and a
Redis deployment behaves like any other eventually-consistent KV.
"""

from __future__ import annotations

import asyncio
import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.adapters.kv.base import AbstractKVStore
from app.core.errors import StoreReadError, StoreWriteError

logger = logging.getLogger(__name__)

_BACKEND_ERRORS = (RedisError, OSError, asyncio.TimeoutError)


class RedisKVStore(AbstractKVStore):
    """Store adapter over a ``redis.asyncio`` client."""

    name = "redis"

    def __init__(
        self,
        *,
        redis_url: str | None = None,
        timeout_seconds: float = 0.5,
        client: "redis.Redis | None" = None,
    ) -> None:
        """Create the adapter.

        Args:
            redis_url: Connection URL used when no client is given.
            timeout_seconds: Socket and connect timeout for each command.
            client: Pre-built client (tests inject a mock here).

        Raises:
            ValueError: If neither a URL nor a client is provided.
        """
        if client is None:
            if not redis_url:
                raise ValueError("redis_url is required when no client is given")
            # Lazy: no network traffic until the first command.
            client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_timeout=timeout_seconds,
                socket_connect_timeout=timeout_seconds,
            )
        self._client = client

    async def get(self, key: str) -> str | None:
        try:
            value = await self._client.get(key)
        except _BACKEND_ERRORS as exc:
            raise StoreReadError(
                code="store_read_failed",
                message=f"GET failed: {exc}",
                details={"backend": self.name, "key": key},
            ) from exc

        if isinstance(value, bytes):
            return value.decode("utf-8", errors="replace")
        return value

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._client.set(key, value, ex=ttl_seconds)
        except _BACKEND_ERRORS as exc:
            raise StoreWriteError(
                code="store_write_failed",
                message=f"SET failed: {exc}",
                details={"backend": self.name, "key": key},
            ) from exc

    async def close(self) -> None:
        try:
            await self._client.aclose()
        except _BACKEND_ERRORS as exc:
            logger.warning(
                "kv.redis.close_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
