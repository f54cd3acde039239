"""
Redis client initialization and connection management.

Redis is only used for the retention sweep lease shared between worker
processes. An empty ``redis_url`` disables it.
"""

from typing import Optional

import redis.asyncio as redis
from trackfy.app.core.config import settings


# Create async Redis client
redis_client: Optional[redis.Redis] = (
    redis.from_url(settings.redis_url, decode_responses=settings.redis_decode_responses)
    if settings.redis_url
    else None
)


async def ping_redis() -> bool:
    """
    Test Redis connection.

    Returns:
        True if connection successful, False otherwise
    """
    if redis_client is None:
        return False
    try:
        return await redis_client.ping()
    except Exception:
        return False
