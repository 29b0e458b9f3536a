"""
Redis client factory and the per-domain scan lock.
"""

import uuid
from typing import Annotated

import redis.asyncio as aioredis
import structlog
from fastapi import Depends

from seo_health.core.config import get_settings
from seo_health.core.exceptions import ScanInProgressError

logger = structlog.get_logger(__name__)
settings = get_settings()

_redis_pool: aioredis.ConnectionPool | None = None


def _get_pool() -> aioredis.ConnectionPool:
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = aioredis.ConnectionPool.from_url(
            str(settings.REDIS_DSN),
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
            socket_connect_timeout=5.0,
            retry_on_timeout=True,
            health_check_interval=30,
            decode_responses=True,
        )
    return _redis_pool


async def get_redis_client() -> aioredis.Redis:
    """Get a Redis client from the shared connection pool (API process)."""
    return aioredis.Redis(connection_pool=_get_pool())


def create_task_redis_client() -> aioredis.Redis:
    """Unpooled client for Celery tasks, which each run on their own event loop."""
    return aioredis.Redis.from_url(
        str(settings.REDIS_DSN),
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
        socket_connect_timeout=5.0,
        decode_responses=True,
    )


async def get_redis() -> aioredis.Redis:
    """FastAPI dependency for Redis client."""
    return await get_redis_client()


RedisClient = Annotated[aioredis.Redis, Depends(get_redis)]


# Release only if the stored token is still ours (lock may have expired and been re-taken).
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class DomainScanLock:
    """
    Advisory lock that keeps two scans of the same domain from running at once.

    Usage:
        async with DomainScanLock(redis, domain_id):
            await pipeline.scan(domain_id)
    """

    def __init__(self, redis: aioredis.Redis, domain_id: object, ttl: int | None = None, namespace: str = "seo"):
        self.redis = redis
        self.key = f"{namespace}:scan-lock:{domain_id}"
        self.ttl = ttl or settings.SCAN_LOCK_TTL
        self.domain_id = domain_id
        self._token = uuid.uuid4().hex

    async def acquire(self) -> bool:
        return bool(await self.redis.set(self.key, self._token, nx=True, ex=self.ttl))

    async def release(self) -> None:
        await self.redis.eval(_RELEASE_SCRIPT, 1, self.key, self._token)

    async def __aenter__(self) -> "DomainScanLock":
        if not await self.acquire():
            raise ScanInProgressError(self.domain_id)
        logger.debug("Scan lock acquired", key=self.key, ttl=self.ttl)
        return self

    async def __aexit__(self, *exc_info) -> None:
        try:
            await self.release()
        except aioredis.RedisError as e:
            # The TTL frees the key eventually
            logger.warning("Scan lock release failed", key=self.key, error=str(e))
