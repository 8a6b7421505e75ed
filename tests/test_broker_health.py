"""
Broker reachability used by the detailed health check.
"""
import asyncio

from campus_booking.config import redis as broker
from campus_booking.config.settings import settings


class FakeClient:
    def __init__(self):
        self.closed = False

    async def ping(self):
        return True

    async def close(self):
        self.closed = True


def test_pool_targets_the_celery_broker(monkeypatch):
    monkeypatch.setattr(broker, "_redis_pool", None)
    monkeypatch.setattr(settings, "CELERY_BROKER_URL", "redis://broker.internal:6380/1")

    pool = broker.get_redis_pool()

    assert pool.connection_kwargs["host"] == "broker.internal"
    assert pool.connection_kwargs["port"] == 6380
    assert pool.connection_kwargs["db"] == 1


def test_reachable_closes_the_client(monkeypatch):
    client = FakeClient()

    async def fake_get_redis():
        return client

    monkeypatch.setattr(broker, "get_redis", fake_get_redis)

    assert asyncio.run(broker.broker_reachable()) is True
    assert client.closed
