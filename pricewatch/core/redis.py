"""Shared Redis client backing the trigger event queue."""
import asyncio
import logging
import redis.asyncio as redis
from pricewatch.core.config import settings

logger = logging.getLogger(__name__)

# One client per process: the API publishes triggers and the dispatcher worker consumes them
_client: redis.Redis | None = None
_client_lock = asyncio.Lock()


async def get_redis() -> redis.Redis:
    """Return the process-wide Redis client, creating it on first use."""
    global _client

    if _client is not None:
        return _client

    async with _client_lock:
        if _client is None:
            logger.info("Opening Redis connection pool for the trigger queue")
            _client = redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,  # queue entries are JSON text
                max_connections=50
            )
    return _client


async def close_redis():
    """Close the shared client; the next get_redis() opens a new one."""
    global _client
    async with _client_lock:
        if _client is not None:
            await _client.aclose()
            _client = None
