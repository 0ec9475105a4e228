"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before anything imports ``app.core.config``
so the global settings object is built from test values, and TESTING keeps
a developer's .env file out of the run.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"

os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import asyncio  # noqa: E402
import time  # noqa: E402
from typing import Callable  # noqa: E402

import pytest  # noqa: E402

from app.adapters.kv.in_memory import InMemoryKVStore  # noqa: E402
from app.adapters.rate_limit.sliding_window import KVSlidingWindowRateLimiter  # noqa: E402
from app.core.errors import StoreReadError, StoreWriteError  # noqa: E402


class FakeClock:
    """Deterministic clock returning UNIX seconds."""

    def __init__(self, start: float = 1_700_000_000.25) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class RecordingObserver:
    """Collects (event, error) pairs instead of logging them."""

    def __init__(self) -> None:
        self.events: list[tuple[str, BaseException]] = []

    def warn(self, event: str, error: BaseException) -> None:
        self.events.append((event, error))

    @property
    def names(self) -> list[str]:
        return [event for event, _ in self.events]


class FlakyStore(InMemoryKVStore):
    """In-memory store with switchable failures per key or per operation."""

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        super().__init__(clock=clock)
        self.failing_get_keys: set[str] = set()
        self.fail_all_gets = False
        self.fail_puts = False
        self.get_calls: list[str] = []
        self.put_calls: list[tuple[str, str, int]] = []

    async def get(self, key: str) -> str | None:
        self.get_calls.append(key)
        if self.fail_all_gets or key in self.failing_get_keys:
            raise StoreReadError(code="store_read_failed", message=f"GET {key} failed")
        return await super().get(key)

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        self.put_calls.append((key, value, ttl_seconds))
        if self.fail_puts:
            raise StoreWriteError(code="store_write_failed", message=f"PUT {key} failed")
        await super().put(key, value, ttl_seconds)


class RacyStore(InMemoryKVStore):
    """Store whose reads suspend after sampling the value.

    Lets two concurrent callers observe the same pre-increment count, the
    way two requests hitting a remote store would.
    """

    async def get(self, key: str) -> str | None:
        value = await super().get(key)
        await asyncio.sleep(0)
        return value


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def store(clock: FakeClock) -> FlakyStore:
    return FlakyStore(clock=clock)


@pytest.fixture
def limiter(store: FlakyStore, clock: FakeClock, observer: RecordingObserver) -> KVSlidingWindowRateLimiter:
    return KVSlidingWindowRateLimiter(store, clock=clock, observer=observer)


@pytest.fixture
def racy_store(clock: FakeClock) -> RacyStore:
    return RacyStore(clock=clock)
