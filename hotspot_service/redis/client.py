"""Async Redis client construction and health checks."""

import redis.asyncio as redis
from redis.exceptions import RedisError

from hotspot_service.utils.logger import get_logger
from hotspot_service.utils.settings.redis import RedisSettings

logger = get_logger(__name__)


def create_redis_client(settings: RedisSettings | None = None) -> redis.Redis:
    """Build a client with short timeouts; connection is lazy."""
    settings = settings or RedisSettings()
    password = (
        settings.REDIS_PASSWORD.get_secret_value() if settings.REDIS_PASSWORD else None
    )
    return redis.Redis(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        password=password,
        db=settings.REDIS_DB,
        socket_connect_timeout=settings.REDIS_CONNECT_TIMEOUT,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
        decode_responses=True,
    )


async def is_redis_healthy(client: redis.Redis | None) -> bool:
    """Check if Redis connection is healthy."""
    if client is None:
        return False
    try:
        await client.ping()
        return True
    except (RedisError, OSError) as e:
        logger.warning(f"Redis health check failed: {e}")
        return False
