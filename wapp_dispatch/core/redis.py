import redis.asyncio as redis
import logging

logger = logging.getLogger(__name__)


async def create_redis_client(redis_url: str, max_connections: int = 50) -> redis.Redis:
    """Create a Redis client and verify the connection"""
    try:
        client = redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=max_connections,
        )
        # Test connection
        await client.ping()
        logger.info("Redis client connected")
        return client
    except Exception as e:
        logger.error(f"Failed to connect to Redis: {e}")
        raise


async def close_redis_client(client: redis.Redis):
    """Close Redis connection"""
    if client is not None:
        await client.aclose()
        logger.info("Redis client closed")
