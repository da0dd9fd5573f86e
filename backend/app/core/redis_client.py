"""
Redis client initialization and connection management.

Redis carries the real-time location broadcast: ingestion publishes to
per-driver/per-delivery channels and WebSocket subscribers relay them.
"""

import redis.asyncio as redis
from backend.app.core.config import settings


# Create async Redis client
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """
    Get Redis client instance.
    
    Used as a FastAPI dependency so tests can swap in an in-process fake.
    """
    return redis_client


async def ping_redis(client=None) -> bool:
    """
    Test Redis connection.
    
    Returns:
        True if connection successful, False otherwise
    """
    try:
        return bool(await (client or redis_client).ping())
    except Exception:
        return False
