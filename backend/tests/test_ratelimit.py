# tests/test_ratelimit.py — Per-client request throttling
import pytest
from httpx import AsyncClient

from main import app
from ratelimit import RateLimitStore
from tests.conftest import get_auth_headers


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestRateLimitStore:
    def test_allows_up_to_limit(self):
        store = RateLimitStore(limit=3, window_seconds=60, clock=FakeClock())
        assert [store.hit("10.0.0.1") for _ in range(4)] == [True, True, True, False]

    def test_keys_are_independent(self):
        store = RateLimitStore(limit=1, window_seconds=60, clock=FakeClock())
        assert store.hit("a")
        assert store.hit("b")
        assert not store.hit("a")

    def test_window_slides(self):
        clock = FakeClock()
        store = RateLimitStore(limit=2, window_seconds=10, clock=clock)
        store.hit("a")
        clock.now += 5
        store.hit("a")
        assert not store.hit("a")
        clock.now += 6
        assert store.hit("a")

    def test_retry_after_counts_down(self):
        clock = FakeClock()
        store = RateLimitStore(limit=1, window_seconds=30, clock=clock)
        store.hit("a")
        assert store.retry_after("a") == 31
        clock.now += 20
        assert store.retry_after("a") == 11
        assert store.retry_after("unknown") == 0

    def test_disabled_when_limit_is_zero(self):
        store = RateLimitStore(limit=0, clock=FakeClock())
        assert not store.enabled
        assert all(store.hit("a") for _ in range(100))
        assert len(store) == 0

    def test_idle_keys_are_evicted(self):
        clock = FakeClock()
        store = RateLimitStore(limit=5, window_seconds=10, clock=clock)
        store.hit("a")
        store.hit("b")
        clock.now += 11
        assert store.evict_expired() == 2
        assert len(store) == 0

    def test_key_count_is_bounded(self):
        clock = FakeClock()
        store = RateLimitStore(limit=5, window_seconds=60, max_keys=3, clock=clock)
        for key in ("a", "b", "c", "d", "e"):
            store.hit(key)
            clock.now += 1
        assert len(store) <= 3
        assert store.hit("e")

    def test_clear(self):
        store = RateLimitStore(limit=1, clock=FakeClock())
        store.hit("a")
        store.clear()
        assert store.hit("a")


@pytest.mark.asyncio
class TestRateLimitMiddleware:
    async def test_over_limit_gets_429(self, client: AsyncClient, owner, monkeypatch):
        monkeypatch.setattr(app.state, "rate_limiter", RateLimitStore(limit=2, window_seconds=60))
        headers = get_auth_headers(owner)

        statuses = [(await client.get("/api/v1/auth/me", headers=headers)).status_code for _ in range(3)]
        assert statuses == [200, 200, 429]

        res = await client.get("/api/v1/auth/me", headers=headers)
        assert res.status_code == 429
        assert int(res.headers["Retry-After"]) >= 1
        assert res.json()["error"] == "RateLimited"

    async def test_health_is_not_throttled(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr(app.state, "rate_limiter", RateLimitStore(limit=1, window_seconds=60))
        for _ in range(3):
            res = await client.get("/health")
            assert res.status_code == 200
