from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from core.rate_limiter import RedisRateLimitMiddleware
from utils.jwt_handler import create_access_token


class FakeRedis:
    def __init__(self, broken=False):
        self.counts = {}
        self.expiries = {}
        self.broken = broken

    async def incr(self, key):
        if self.broken:
            raise RedisConnectionError("redis is down")
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    async def expire(self, key, seconds):
        self.expiries[key] = seconds


def build_app(redis_client, requests=2, auth_requests=None):
    app = FastAPI()

    @app.post("/auth/login")
    async def login():
        return {"ok": True}

    @app.get("/")
    async def root():
        return {"status": "ok"}

    @app.get("/ping")
    async def ping():
        return {"pong": True}

    app.add_middleware(
        RedisRateLimitMiddleware, redis_client=redis_client, requests=requests, window_seconds=3600,
        auth_requests=auth_requests,
    )
    return app


async def hit(app, path, times, headers=None):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        return [(await ac.get(path, headers=headers)).status_code for _ in range(times)]


@pytest.mark.asyncio
async def test_requests_over_the_limit_get_429():
    redis_client = FakeRedis()

    statuses = await hit(build_app(redis_client), "/ping", 3)

    assert statuses == [200, 200, 429]
    assert list(redis_client.expiries.values()) == [3600]


@pytest.mark.asyncio
async def test_excluded_paths_are_never_counted():
    redis_client = FakeRedis()

    statuses = await hit(build_app(redis_client), "/", 5)

    assert statuses == [200] * 5
    assert redis_client.counts == {}


@pytest.mark.asyncio
async def test_logged_in_users_are_counted_by_subject():
    redis_client = FakeRedis()
    token = create_access_token({"sub": "user-42", "token_version": 0})

    await hit(build_app(redis_client), "/ping", 1, headers={"Authorization": f"Bearer {token}"})

    assert all(key.startswith("rate:api:user-42:") for key in redis_client.counts)


@pytest.mark.asyncio
async def test_redis_outage_lets_requests_through():
    statuses = await hit(build_app(FakeRedis(broken=True)), "/ping", 3)
    assert statuses == [200, 200, 200]


@pytest.mark.asyncio
async def test_auth_endpoints_have_their_own_budget():
    redis_client = FakeRedis()
    app = build_app(redis_client, requests=5, auth_requests=1)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        first = await ac.post("/auth/login")
        second = await ac.post("/auth/login")
        other = await ac.get("/ping")

    assert first.status_code == 200
    assert second.status_code == 429
    assert int(second.headers["Retry-After"]) > 0
    assert other.status_code == 200
