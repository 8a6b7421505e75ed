# campus_booking/config/redis.py
"""
Redis access for the API process.

Redis is the Celery broker for notification emails; the API itself only
needs it to report broker reachability, so the pool points at the broker.
"""
import redis.asyncio as redis
from typing import Optional

from campus_booking.config.settings import get_settings

settings = get_settings()

_redis_pool: Optional[redis.ConnectionPool] = None


def get_redis_pool() -> redis.ConnectionPool:
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = redis.ConnectionPool.from_url(
            settings.CELERY_BROKER_URL,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            socket_connect_timeout=2,
        )
    return _redis_pool


async def get_redis() -> redis.Redis:
    return redis.Redis(connection_pool=get_redis_pool())


async def broker_reachable() -> bool:
    """True when the notification broker answers PING"""
    client = await get_redis()
    try:
        return bool(await client.ping())
    finally:
        await client.close()
