"""Redis store for the cron run lock.

Overlapping runs would race on the pending-changes list (a full-list
overwrite), so the cron entry point holds a SET NX EX lock for the duration
of a run when REDIS_URL is configured.
"""

import logging

import redis.asyncio as redis

from app.settings import get_settings

PREFIX_LOCK = "lock:"
RUN_LOCK_KEY = "catalog-gate:run"

# Redis client (initialized by the cron entry point)
_redis: redis.Redis | None = None
logger = logging.getLogger("uvicorn.error")


async def init_redis() -> None:
    """Initialize Redis connection."""
    global _redis
    settings = get_settings()
    _redis = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    # Validate connectivity early (especially for `rediss://` in production).
    await _redis.ping()
    logger.info("Redis connected")


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def _get_redis() -> redis.Redis:
    """Get Redis client instance."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


async def acquire_lock(key: str, ttl: int) -> bool:
    """Acquire a distributed lock.

    Args:
        key: Lock key without prefix.
        ttl: Lock timeout in seconds; a crashed run frees the lock after this.

    Returns:
        True if lock acquired, False if already locked.
    """
    result = await _get_redis().set(f"{PREFIX_LOCK}{key}", "1", nx=True, ex=ttl)
    return result is not None


async def release_lock(key: str) -> None:
    await _get_redis().delete(f"{PREFIX_LOCK}{key}")
