# app/core/redis.py
import redis.asyncio as redis
from app.core.config import settings

# decode_responses=True: values come back as str, not bytes
redis_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)

async def get_redis_client():
    """
    Dependency that provides the Redis client to endpoints.
    """
    return redis_client
