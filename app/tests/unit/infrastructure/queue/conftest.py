"""Fixtures for queue tests."""

import fakeredis
import pytest

from infrastructure.queue import InMemoryJobQueue, QueueConfig, RedisJobQueue


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_queue(clock):
    """Build an InMemoryJobQueue on the fake clock."""

    def _make(**overrides) -> InMemoryJobQueue:
        values = {
            "name": "push",
            "max_attempts": 3,
            "backoff_delay_ms": 1000,
            "stalled_interval_seconds": 30.0,
            "max_stalled_count": 1,
        }
        values.update(overrides)
        return InMemoryJobQueue(QueueConfig(**values), clock=clock)

    return _make


@pytest.fixture
def redis_server():
    """In-process Redis server shared by every client of one test."""
    return fakeredis.FakeServer()


@pytest.fixture
def redis_client(redis_server):
    """Build a new client on the shared server, like a new process would."""

    def _connect():
        return fakeredis.FakeRedis(server=redis_server, decode_responses=True)

    return _connect


@pytest.fixture
def make_redis_queue(clock, redis_client):
    """Build a RedisJobQueue on the fake clock, each with its own client."""

    def _make(**overrides) -> RedisJobQueue:
        values = {
            "name": "push",
            "max_attempts": 3,
            "backoff_delay_ms": 1000,
            "stalled_interval_seconds": 30.0,
            "max_stalled_count": 1,
        }
        values.update(overrides)
        return RedisJobQueue(QueueConfig(**values), redis_client(), clock=clock)

    return _make


@pytest.fixture
def fast_config():
    """Real-time config for worker tests."""
    return QueueConfig(
        name="push",
        concurrency=5,
        max_attempts=3,
        backoff_delay_ms=1,
        poll_interval_seconds=0.02,
    )
