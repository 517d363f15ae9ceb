"""Redis async connection pool shared by the draft store and route cache."""

import logging

import redis.asyncio as aioredis

from fareservice.config import settings

logger = logging.getLogger(__name__)

_pool = aioredis.ConnectionPool.from_url(
    settings.redis_url, decode_responses=True
)


async def get_redis() -> aioredis.Redis:
    """Return a Redis client backed by the shared connection pool."""
    return aioredis.Redis(connection_pool=_pool)


async def close_redis() -> None:
    """Drop pooled connections on application shutdown."""
    await _pool.disconnect()
    logger.info("Redis pool closed")
