"""Factory for key-value store adapters."""

from app.adapters.kv.base import AbstractKVStore
from app.adapters.kv.in_memory import InMemoryKVStore
from app.adapters.kv.redis_store import RedisKVStore
from app.core.config import StoreSettings, settings
from app.core.errors import ValidationAppError


def create_kv_store(store_settings: StoreSettings | None = None) -> AbstractKVStore:
    """Instantiate the configured store backend.

    Args:
        store_settings: Settings to use; defaults to ``settings.store``.

    Returns:
        AbstractKVStore: Ready-to-use adapter.

    Raises:
        ValidationAppError: If the backend is unknown or misconfigured.
    """
    cfg = store_settings or settings.store
    backend = cfg.backend.strip().lower()

    if backend == "memory":
        return InMemoryKVStore()

    if backend == "redis":
        if not cfg.redis_url:
            raise ValidationAppError(
                code="store_missing_redis_url",
                message="Redis backend requires STORE_REDIS_URL environment variable",
            )
        return RedisKVStore(redis_url=cfg.redis_url, timeout_seconds=cfg.timeout_seconds)

    raise ValidationAppError(
        code="store_unknown_backend",
        message=f"Unknown store backend: '{backend}'. Supported backends: memory, redis",
    )
