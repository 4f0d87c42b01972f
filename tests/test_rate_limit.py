import asyncio

from redis.exceptions import ConnectionError as RedisConnectionError

from app.rate_limit import check_rate_limit
from conftest import FailingStore, FakeClock, FakeCounterStore, bearer


def test_requests_after_limit_are_limited_until_window_expires():
    clock = FakeClock()
    store = FakeCounterStore(clock)

    async def hit():
        return await check_rate_limit("rl:test:1.2.3.4:GET:/api/x", 3, 60, store=store)

    results = [asyncio.run(hit()) for _ in range(4)]
    assert [r.limited for r in results] == [False, False, False, True]
    assert [r.remaining for r in results] == [2, 1, 0, 0]
    assert store.expire_calls == 1

    clock.advance(61)
    after_reset = [asyncio.run(hit()) for _ in range(4)]
    assert [r.limited for r in after_reset] == [False, False, False, True]
    assert store.expire_calls == 2


def test_count_does_not_reset_inside_window():
    clock = FakeClock()
    store = FakeCounterStore(clock)

    async def hit():
        return await check_rate_limit("k", 2, 60, store=store)

    asyncio.run(hit())
    asyncio.run(hit())
    clock.advance(59)
    assert asyncio.run(hit()).limited is True


def test_separate_keys_are_counted_separately():
    store = FakeCounterStore(FakeClock())
    asyncio.run(check_rate_limit("a", 1, 60, store=store))
    assert asyncio.run(check_rate_limit("b", 1, 60, store=store)).limited is False


def test_store_failure_fails_open():
    result = asyncio.run(check_rate_limit("k", 5, 60, store=FailingStore()))
    assert result.limited is False
    assert result.remaining == 5


class ExpireFailsOnceStore(FakeCounterStore):
    def __init__(self, clock):
        super().__init__(clock)
        self.expire_failures = 1

    async def expire(self, key, seconds):
        if self.expire_failures:
            self.expire_failures -= 1
            raise RedisConnectionError("connection reset")
        return await super().expire(key, seconds)


def test_missing_expiry_is_restored_so_window_still_resets():
    clock = FakeClock()
    store = ExpireFailsOnceStore(clock)

    async def hit():
        return await check_rate_limit("rl:test:5.6.7.8:POST:/api/x", 2, 60, store=store)

    first = asyncio.run(hit())
    assert first.limited is False
    assert asyncio.run(hit()).limited is False
    assert asyncio.run(hit()).limited is True
    assert 0 < asyncio.run(store.ttl("rl:test:5.6.7.8:POST:/api/x")) <= 60

    clock.advance(10_000)
    assert asyncio.run(hit()).limited is False


def test_route_returns_429_with_headers(client, counter_store, candidate):
    headers = bearer(candidate)
    # rl:notifications allows 60 per minute
    for _ in range(60):
        assert client.get("/api/notifications", headers=headers).status_code == 200

    response = client.get("/api/notifications", headers=headers)
    assert response.status_code == 429
    assert response.json()["error"] == "Too many requests"
    assert response.headers["X-RateLimit-Limit"] == "60"
    assert response.headers["X-RateLimit-Remaining"] == "0"

    key = next(iter(counter_store.values))
    assert key.startswith("rl:notifications:")
    assert key.endswith(":GET:/api/notifications")


def test_rate_limit_runs_before_authentication(client, counter_store, clock):
    for _ in range(60):
        assert client.get("/api/notifications").status_code == 401
    assert client.get("/api/notifications").status_code == 429

    clock.advance(60)
    assert client.get("/api/notifications").status_code == 401


def test_client_ip_comes_from_forwarded_header(client, counter_store):
    client.get("/api/tiers", headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
    assert "rl:api:203.0.113.7:GET:/api/tiers" in counter_store.values


def test_routes_stay_available_when_store_is_down(client, failing_store, candidate):
    response = client.get("/api/notifications", headers=bearer(candidate))
    assert response.status_code == 200
