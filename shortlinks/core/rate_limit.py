"""
Rate Limiting

This module provides rate limiting for API endpoints.

Two limiters are used:
- RateLimiter: fixed-window counter in Redis for URL submissions. Shared by
  every instance of the service, keyed by client IP and (if present) user
  identity, with a higher quota for authenticated callers.
- limiter: slowapi per-IP limiter for the redirect route, kept in process
  memory.

Fixed window:
    INCR ratelimit:<ip>[:<user>]      -> count
    EXPIRE ... <window>               (only when count == 1)
    TTL ...                           -> seconds until the window resets
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from slowapi import Limiter

from shortlinks.core.exceptions import ServiceUnavailableError
from shortlinks.core.setting import settings

logger = logging.getLogger(__name__)


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Handles proxies and load balancers by checking X-Forwarded-For header.

    Args:
        request: FastAPI Request object

    Returns:
        IP address as string
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs, take the first one
        client_ip = forwarded_for.split(",")[0].strip()
        if client_ip:
            return client_ip

    return request.client.host if request.client else "unknown"


# Redirect route limiter (in-memory, per IP)
limiter = Limiter(key_func=get_client_ip)

RATE_LIMITS = {
    "redirect": settings.REDIRECT_RATE_LIMIT,
}


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of one counted request."""
    allowed: bool
    limit: int
    remaining: int
    reset: int  # epoch seconds when the window expires

    def retry_after(self, now: Optional[float] = None) -> int:
        """Seconds until the window resets, rounded up."""
        if now is None:
            now = time.time()
        return max(0, math.ceil(self.reset - now))


class RateLimiter:
    """
    Fixed-window request counter backed by a Redis-compatible store.

    The store only needs three atomic primitives: incr, expire and ttl.
    """

    def __init__(
        self,
        store: Redis,
        window_seconds: int = settings.RATE_LIMIT_WINDOW_SECONDS,
        anonymous_limit: int = settings.RATE_LIMIT_ANONYMOUS,
        authenticated_limit: int = settings.RATE_LIMIT_AUTHENTICATED,
        key_prefix: str = settings.RATE_LIMIT_KEY_PREFIX,
    ):
        self.store = store
        self.window_seconds = window_seconds
        self.anonymous_limit = anonymous_limit
        self.authenticated_limit = authenticated_limit
        self.key_prefix = key_prefix

    def key_for(self, client_ip: str, user_id: Optional[str] = None) -> str:
        if user_id:
            return f"{self.key_prefix}:{client_ip}:{user_id}"
        return f"{self.key_prefix}:{client_ip}"

    def limit_for(self, user_id: Optional[str] = None) -> int:
        return self.authenticated_limit if user_id else self.anonymous_limit

    async def hit(self, client_ip: str, user_id: Optional[str] = None) -> RateLimitResult:
        """
        Count one request for the caller and report whether it is within quota.

        Args:
            client_ip: Client network address
            user_id: External user identity, if the caller is signed in

        Returns:
            RateLimitResult for the current window

        Raises:
            ServiceUnavailableError: If the counter store cannot be reached
        """
        key = self.key_for(client_ip, user_id)
        limit = self.limit_for(user_id)
        now = int(time.time())

        try:
            count = await self.store.incr(key)
            if count == 1:
                await self.store.expire(key, self.window_seconds)
            ttl = await self.store.ttl(key)
            if ttl < 0:
                # Counter without expiry (EXPIRE lost after INCR); reapply it
                # so the key cannot block the caller forever.
                await self.store.expire(key, self.window_seconds)
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.error(f"Rate limit counter store unreachable: {e}", exc_info=True)
            raise ServiceUnavailableError("rate limiter") from e

        reset = now + (ttl if ttl > 0 else self.window_seconds)
        result = RateLimitResult(
            allowed=count <= limit,
            limit=limit,
            remaining=max(0, limit - count),
            reset=reset,
        )

        if not result.allowed:
            logger.info(f"Rate limit exceeded for {key}: {count}/{limit}")

        return result
