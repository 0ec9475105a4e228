"""Rate limiting dependency for FastAPI routes.

This module wires the sliding-window limiter into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency function only.
- Swap-friendly: the store backend is chosen by settings (memory or redis).
- Safe defaults: store failures fail open inside the limiter, so this
  dependency only ever raises for a genuine over-limit decision.

Scope strategy:
- Per API key (hashed before it reaches the store or the logs).
- If the API key is missing (e.g., auth disabled), fall back to client IP.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Annotated

from fastapi import Header, HTTPException, Request, status

from app.adapters.kv.base import AbstractKVStore
from app.adapters.kv.factory import create_kv_store
from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitConfig
from app.adapters.rate_limit.sliding_window import KVSlidingWindowRateLimiter
from app.core.config import settings

logger = logging.getLogger(__name__)


_limiter: KVSlidingWindowRateLimiter | None = None
_store_config: tuple[str, str | None, float] | None = None


def _current_store_config() -> tuple[str, str | None, float]:
    return (
        settings.store.backend,
        settings.store.redis_url,
        settings.store.timeout_seconds,
    )


async def get_rate_limiter() -> AbstractRateLimiter:
    """Return the process-wide limiter.

    The limiter and its store are cached in-module so an in-memory store
    keeps its buckets across requests. If the store settings change
    (primarily in tests), both are rebuilt and the replaced store is closed.

    Returns:
        AbstractRateLimiter: Configured limiter instance.
    """

    global _limiter, _store_config

    config = _current_store_config()
    if _limiter is None or _store_config != config:
        previous = _limiter
        _limiter = KVSlidingWindowRateLimiter(create_kv_store())
        _store_config = config
        if previous is not None:
            await previous.store.close()

    return _limiter


async def shutdown_rate_limiter() -> None:
    """Close the cached store and forget the limiter."""

    global _limiter, _store_config

    if _limiter is None:
        return
    store: AbstractKVStore = _limiter.store
    _limiter = None
    _store_config = None
    await store.close()


def get_rate_limit_config() -> RateLimitConfig:
    """Build the limiter config for API requests from settings."""

    return RateLimitConfig(
        window_sec=settings.rate_limit.window_sec,
        limit=settings.rate_limit.limit,
        bucket_key_prefix=settings.rate_limit.bucket_key_prefix,
        bucket_ttl=settings.rate_limit.bucket_ttl,
    )


def hash_identifier(value: str) -> str:
    """Short SHA-256 digest so secrets never land in keys or logs."""
    return hashlib.sha256(value.encode()).hexdigest()[:16]


def build_request_scope(request: Request, x_api_key: str | None) -> str:
    """Build the limiter scope for the current request.

    Args:
        request: FastAPI request.
        x_api_key: API key value from the X-API-Key header.

    Returns:
        str: Namespaced scope, e.g. ``api_key:<digest>`` or ``ip:<host>``.
    """

    if x_api_key:
        return f"api_key:{hash_identifier(x_api_key)}"

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


def build_client_scope(scope: str) -> str:
    """Namespace a caller-chosen scope away from the request scopes.

    ``/v1/rate-limit/hits`` counts events for arbitrary scopes; without the
    ``client:`` segment a caller could post ``api_key:<digest>`` and spend
    another requester's budget.
    """
    return f"client:{scope}"


async def enforce_rate_limit(
    request: Request,
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """FastAPI dependency enforcing the sliding-window limit.

    When enabled, records one event for the requester's scope. If the
    window total exceeds the configured limit, raises HTTP 429.

    Args:
        request: FastAPI request.
        x_api_key: API key from X-API-Key header.

    Raises:
        HTTPException: 429 Too Many Requests when the limit is exceeded.
    """

    if not settings.app.rate_limit_enabled:
        return

    config = get_rate_limit_config()
    scope = build_request_scope(request, x_api_key)
    scope_type = "api_key" if x_api_key else "ip"

    limiter = await get_rate_limiter()
    decision = await limiter.record_and_evaluate(scope, config)
    if decision.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "scope_type": scope_type,
                "scope_hash": hash_identifier(scope),
                "limit": decision.limit,
                "total": decision.total,
                "window_s": config.window_sec,
            },
        )
        return

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "scope_type": scope_type,
            "scope_hash": hash_identifier(scope),
            "limit": decision.limit,
            "total": decision.total,
            "window_s": config.window_sec,
        },
    )

    headers: dict[str, str] = {}
    if settings.app.rate_limit_include_headers:
        # Every bucket has left the window after window_sec seconds.
        headers["Retry-After"] = str(config.window_sec)
        headers["X-RateLimit-Limit"] = str(decision.limit)
        headers["X-RateLimit-Remaining"] = str(decision.remaining)

    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Rate limit exceeded. Try again later.",
        headers=headers or None,
    )
