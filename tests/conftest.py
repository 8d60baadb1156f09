from datetime import datetime, timedelta, timezone

import fakeredis
import pytest
from fastapi.testclient import TestClient

from app import create_app
from backend import RedisBackend
from config import Settings
from handlers import build_protocol

TEST_SECRET = "test-signing-secret-0123456789abcdef"


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    # Start at the real current time; token verification uses the wall clock
    return FrozenClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture
def redis_client():
    client = fakeredis.FakeRedis(decode_responses=True)
    yield client
    client.flushall()


@pytest.fixture
def backend(redis_client):
    return RedisBackend(redis_client)


@pytest.fixture
def settings():
    return Settings(jwt_secret=TEST_SECRET, join_url_base="https://chat.example")


@pytest.fixture
def protocol(backend, settings, clock):
    return build_protocol(backend, settings, clock=clock)


@pytest.fixture
def client(redis_client, settings, clock):
    app = create_app(settings, redis_client=redis_client, clock=clock)
    with TestClient(app) as test_client:
        yield test_client
