"""Integration tests for the rate limit dependency and /v1/rate-limit routes."""

from unittest.mock import AsyncMock, Mock

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from app.adapters.kv.in_memory import InMemoryKVStore
from app.core import rate_limit as rate_limit_module
from app.core.app_factory import create_app
from app.core.config import settings
from app.core.errors import StoreReadError, StoreWriteError

API_KEY = "test-api-key-123"
HEADERS = {"X-API-Key": API_KEY}


class DownStore(InMemoryKVStore):
    async def get(self, key):
        raise StoreReadError(code="store_read_failed", message="down")

    async def put(self, key, value, ttl_seconds):
        raise StoreWriteError(code="store_write_failed", message="down")


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(rate_limit_module, "_limiter", None)
    monkeypatch.setattr(rate_limit_module, "_store_config", None)
    monkeypatch.setattr(settings.app, "api_key_required", True)
    monkeypatch.setattr(settings.app, "api_keys", "test-api-key-123,test-api-key-456")
    monkeypatch.setattr(settings.app, "rate_limit_enabled", True)
    monkeypatch.setattr(settings.app, "rate_limit_include_headers", True)
    monkeypatch.setattr(settings.rate_limit, "window_sec", 60)
    monkeypatch.setattr(settings.rate_limit, "limit", 60)

    with TestClient(create_app()) as test_client:
        yield test_client


def test_health_needs_no_key(client: TestClient) -> None:
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_hits_requires_api_key(client: TestClient) -> None:
    resp = client.post("/v1/rate-limit/hits", json={"scope": "user:1"})

    assert resp.status_code == 403


def test_hits_records_and_evaluates(client: TestClient) -> None:
    body = {"scope": "user:1", "limit": 2}

    results = [client.post("/v1/rate-limit/hits", json=body, headers=HEADERS).json() for _ in range(3)]

    assert [r["total"] for r in results] == [1, 2, 3]
    assert [r["allowed"] for r in results] == [True, True, False]
    assert results[2] == {"allowed": False, "total": 3, "limit": 2, "remaining": 0}


def test_hits_denied_verdict_is_still_200(client: TestClient) -> None:
    resp = client.post(
        "/v1/rate-limit/hits",
        json={"scope": "user:2", "limit": 0},
        headers=HEADERS,
    )

    assert resp.status_code == 200
    assert resp.json()["allowed"] is False


def test_hits_rejects_empty_scope(client: TestClient) -> None:
    resp = client.post("/v1/rate-limit/hits", json={"scope": ""}, headers=HEADERS)

    assert resp.status_code == 422


def test_requester_is_throttled_with_headers(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.rate_limit, "limit", 2)
    body = {"scope": "user:3"}

    assert client.post("/v1/rate-limit/hits", json=body, headers=HEADERS).status_code == 200
    assert client.post("/v1/rate-limit/hits", json=body, headers=HEADERS).status_code == 200
    resp = client.post("/v1/rate-limit/hits", json=body, headers=HEADERS)

    assert resp.status_code == 429
    assert resp.headers["Retry-After"] == "60"
    assert resp.headers["X-RateLimit-Limit"] == "2"
    assert resp.headers["X-RateLimit-Remaining"] == "0"

    # Another key has its own budget.
    other = client.post("/v1/rate-limit/hits", json=body, headers={"X-API-Key": "test-api-key-456"})
    assert other.status_code == 200


def test_client_scopes_cannot_spend_another_requesters_budget(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(settings.rate_limit, "limit", 3)
    victim_key = "test-api-key-456"
    victim_scope = f"api_key:{rate_limit_module.hash_identifier(victim_key)}"

    for _ in range(3):
        resp = client.post("/v1/rate-limit/hits", json={"scope": victim_scope}, headers=HEADERS)
        assert resp.status_code == 200

    victim = client.post("/v1/rate-limit/hits", json={"scope": "own"}, headers={"X-API-Key": victim_key})

    assert victim.status_code == 200
    assert victim.json()["total"] == 1


def test_client_scope_is_namespaced() -> None:
    assert rate_limit_module.build_client_scope("api_key:abc") == "client:api_key:abc"


def test_hits_rejects_prefix_with_separator(client: TestClient) -> None:
    resp = client.post(
        "/v1/rate-limit/hits",
        json={"scope": "s", "bucket_key_prefix": "rl:client"},
        headers=HEADERS,
    )

    assert resp.status_code == 422


def test_throttle_headers_can_be_disabled(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.rate_limit, "limit", 0)
    monkeypatch.setattr(settings.app, "rate_limit_include_headers", False)

    resp = client.post("/v1/rate-limit/hits", json={"scope": "s"}, headers=HEADERS)

    assert resp.status_code == 429
    assert "Retry-After" not in resp.headers


def test_rate_limit_can_be_disabled(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.rate_limit, "limit", 0)
    monkeypatch.setattr(settings.app, "rate_limit_enabled", False)

    resp = client.post("/v1/rate-limit/hits", json={"scope": "s"}, headers=HEADERS)

    assert resp.status_code == 200


def test_store_outage_fails_open(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(rate_limit_module, "_limiter", None)
    monkeypatch.setattr(rate_limit_module, "_store_config", None)
    monkeypatch.setattr(rate_limit_module, "create_kv_store", lambda: DownStore())
    monkeypatch.setattr(settings.rate_limit, "limit", 1)

    with TestClient(create_app()) as client:
        responses = [
            client.post("/v1/rate-limit/hits", json={"scope": "s"}, headers=HEADERS) for _ in range(3)
        ]

    assert [r.status_code for r in responses] == [200, 200, 200]
    assert all(r.json()["total"] == 1 for r in responses)


@pytest.mark.asyncio
async def test_limiter_rebuilt_when_store_settings_change(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(rate_limit_module, "_limiter", None)
    monkeypatch.setattr(rate_limit_module, "_store_config", None)
    stores: list[InMemoryKVStore] = []

    def make_store() -> InMemoryKVStore:
        store = InMemoryKVStore()
        store.close = AsyncMock()
        stores.append(store)
        return store

    monkeypatch.setattr(rate_limit_module, "create_kv_store", make_store)

    first = await rate_limit_module.get_rate_limiter()
    assert await rate_limit_module.get_rate_limiter() is first
    stores[0].close.assert_not_awaited()

    monkeypatch.setattr(settings.store, "timeout_seconds", 1.5)
    second = await rate_limit_module.get_rate_limiter()

    assert second is not first
    stores[0].close.assert_awaited_once()
    stores[1].close.assert_not_awaited()


def test_request_scope_prefers_hashed_api_key() -> None:
    request = Mock()
    request.client.host = "203.0.113.7"

    scope = rate_limit_module.build_request_scope(request, "secret-key")

    assert scope.startswith("api_key:")
    assert "secret-key" not in scope
    assert rate_limit_module.build_request_scope(request, None) == "ip:203.0.113.7"


def test_request_scope_without_client() -> None:
    request = Mock()
    request.client = None

    assert rate_limit_module.build_request_scope(request, None) == "ip:unknown"


@pytest.mark.asyncio
async def test_enforce_rate_limit_raises_429(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(rate_limit_module, "_limiter", None)
    monkeypatch.setattr(rate_limit_module, "_store_config", None)
    monkeypatch.setattr(settings.app, "rate_limit_enabled", True)
    monkeypatch.setattr(settings.rate_limit, "limit", 1)
    request = Mock()
    request.client.host = "198.51.100.1"

    await rate_limit_module.enforce_rate_limit(request, None)
    with pytest.raises(HTTPException) as exc_info:
        await rate_limit_module.enforce_rate_limit(request, None)

    assert exc_info.value.status_code == 429
    await rate_limit_module.shutdown_rate_limiter()
