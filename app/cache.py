"""
ExecBoard - Key-value store access (Redis).

One async client shared by the fixed-window rate limiter and the short-lived
response cache. The store is optional: when EXECBOARD_REDIS_URL is unset or
the server is unreachable, callers degrade (rate limiting fails open, cache
lookups miss) instead of failing the request.
"""
import json
import logging
from typing import Any, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from .config import settings

logger = logging.getLogger("execboard.cache")

# Global Redis client instance
_redis_client: Optional[Redis] = None


# =============================================================================
# Connection Management
# =============================================================================

async def init_cache() -> None:
    """Create the client at startup and log whether the server answers."""
    global _redis_client

    if not settings.redis_url:
        logger.info("No EXECBOARD_REDIS_URL set; rate limiting fails open and caching is disabled")
        return

    _redis_client = Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=2,
        socket_timeout=2,
    )
    try:
        await _redis_client.ping()
        logger.info("Redis connected at %s", settings.redis_url.split("@")[-1])
    except (RedisError, OSError) as e:
        logger.warning("Redis not reachable at startup, continuing degraded: %s", e)


async def close_cache() -> None:
    global _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("Redis connection closed")


def get_redis() -> Optional[Redis]:
    """Return the shared client, or None when no store is configured."""
    return _redis_client


def set_redis(client) -> None:
    """Install a client explicitly (used by tests and scripts)."""
    global _redis_client
    _redis_client = client


async def check_cache_health() -> Optional[bool]:
    """True/False for a configured store, None when no store is configured."""
    if _redis_client is None:
        return None
    try:
        await _redis_client.ping()
        return True
    except (RedisError, OSError) as e:
        logger.error("Redis health check failed: %s", e)
        return False


# =============================================================================
# JSON cache helpers
# =============================================================================

async def cache_get_json(key: str) -> Optional[Any]:
    """Return the decoded value, or None on a miss or any store error."""
    if _redis_client is None:
        return None
    try:
        raw = await _redis_client.get(key)
    except (RedisError, OSError) as e:
        logger.warning("Cache get failed for %s: %s", key, e)
        return None
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Discarding undecodable cache entry %s", key)
        return None


async def cache_set_json(key: str, value: Any, ttl: int) -> bool:
    if _redis_client is None:
        return False
    try:
        await _redis_client.set(key, json.dumps(value, default=str), ex=ttl)
        return True
    except (RedisError, OSError) as e:
        logger.warning("Cache set failed for %s: %s", key, e)
        return False


async def cache_delete(*keys: str) -> None:
    if _redis_client is None or not keys:
        return
    try:
        await _redis_client.delete(*keys)
    except (RedisError, OSError) as e:
        logger.warning("Cache delete failed for %s: %s", keys, e)
