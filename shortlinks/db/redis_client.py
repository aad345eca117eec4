"""
Counter Store Client

Provides the shared async Redis client used for rate-limit counters.
The client is created lazily on first use and closed on application shutdown.
"""

import logging
from typing import Optional

from redis.asyncio import Redis

from shortlinks.core.setting import settings

logger = logging.getLogger(__name__)

_client: Optional[Redis] = None


def get_redis() -> Redis:
    """
    Dependency function returning the shared Redis client.

    redis-py connects on the first command, so creating the client never
    blocks and never fails because the server is down.
    """
    global _client

    if _client is None:
        _client = Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=2.0,
            socket_connect_timeout=2.0,
        )
        logger.info("Redis client created for counter store")
    return _client


async def close_redis() -> None:
    """Close the shared Redis client, if one was created."""
    global _client

    if _client is not None:
        await _client.aclose()
        _client = None
        logger.info("Redis client closed")
