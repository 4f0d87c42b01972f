"""
ExecBoard - Rate limiting.

Two layers:

* ``limiter`` (slowapi) throttles the credential endpoints per client IP,
  used as ``@limiter.limit(RATE_LIMIT_AUTH)`` on /auth routes.
* ``RateLimit`` is a FastAPI dependency backed by a fixed-window counter in
  the shared key-value store. Each API route declares its own prefix and quota:

      @router.post("", dependencies=[Depends(RateLimit("rl:jobs", 20, 60))])

  The counter key is ``{prefix}:{ip}:{METHOD}:{path}``. The first increment
  in a window sets the expiry (re-set if a later increment finds none); the
  count only resets when the key expires.
  If the store is missing or failing the request is allowed (fail open).
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from redis.exceptions import RedisError
from slowapi import Limiter

from .cache import get_redis
from .config import settings
from .errors import RateLimited

logger = logging.getLogger("execboard.ratelimit")


def get_client_ip(request: Request) -> str:
    """
    Get the client's IP address from the request.

    Handles X-Forwarded-For / X-Real-IP for requests behind a proxy.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # X-Forwarded-For can contain multiple IPs; first is the client
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"


limiter = Limiter(key_func=get_client_ip)

# Credential endpoints (login, register, password reset) — strict to prevent brute force
RATE_LIMIT_AUTH = "5/minute"


# =============================================================================
# Fixed-window counter
# =============================================================================

@dataclass
class RateLimitResult:
    limited: bool
    remaining: int
    limit: int


async def check_rate_limit(
    key: str,
    limit: int,
    window_seconds: int,
    store=None,
) -> RateLimitResult:
    """
    Count one request against ``key`` and report whether it is over ``limit``.

    ``store`` is anything with async ``incr``/``expire``/``ttl`` (a redis.asyncio
    client by default). Store errors are logged and the request is allowed.
    """
    if not key:
        raise ValueError("rate limit key must be non-empty")
    if limit <= 0 or window_seconds <= 0:
        raise ValueError("limit and window_seconds must be positive")

    store = store if store is not None else get_redis()
    if store is None:
        return RateLimitResult(limited=False, remaining=limit, limit=limit)

    try:
        count = int(await store.incr(key))
        # A key left without a TTL would never reset
        if count == 1 or await store.ttl(key) == -1:
            await store.expire(key, window_seconds)
    except (RedisError, OSError) as e:
        logger.warning("Rate limit store unavailable for %s, allowing request: %s", key, e)
        return RateLimitResult(limited=False, remaining=limit, limit=limit)

    return RateLimitResult(
        limited=count > limit,
        remaining=max(0, limit - count),
        limit=limit,
    )


def rate_limit_key(prefix: str, request: Request) -> str:
    return f"{prefix}:{get_client_ip(request)}:{request.method}:{request.url.path}"


class RateLimit:
    """Dependency that enforces a per-IP, per-route quota before the handler runs."""

    def __init__(
        self,
        prefix: str = "rl:api",
        limit: Optional[int] = None,
        window_seconds: Optional[int] = None,
    ):
        self.prefix = prefix
        self.limit = limit or settings.rate_limit_default_limit
        self.window_seconds = window_seconds or settings.rate_limit_default_window

    async def __call__(self, request: Request) -> RateLimitResult:
        result = await check_rate_limit(
            rate_limit_key(self.prefix, request), self.limit, self.window_seconds
        )
        if result.limited:
            logger.info("Rate limited %s %s (%s)", request.method, request.url.path, self.prefix)
            raise RateLimited(
                "Too many requests",
                headers={
                    "X-RateLimit-Limit": str(self.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )
        return result
