# realty_scores/db/redis_client.py
import redis.asyncio as redis

from realty_scores import config

# Shared Redis client, used for report caching
redis_client = redis.from_url(config.REDIS_URL, decode_responses=True)

async def get_redis():
    """
    Dependency to provide Redis client in FastAPI endpoints
    Usage: `redis: redis.Redis = Depends(get_redis)`
    """
    # Not closed per request; the client lives for the app lifetime
    yield redis_client
