"""Trigger event queues between the scheduler and the dispatcher."""
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Optional

from pricewatch.engine.models import TriggerEvent

logger = logging.getLogger(__name__)


class EventQueue(ABC):
    """FIFO of trigger events awaiting delivery."""
    
    @abstractmethod
    async def put(self, event: TriggerEvent) -> None:
        pass
    
    @abstractmethod
    async def get(self, timeout: float = 5.0) -> Optional[TriggerEvent]:
        """Next event, or None if nothing arrived within `timeout` seconds."""
        pass
    
    @abstractmethod
    async def size(self) -> int:
        pass


class MemoryEventQueue(EventQueue):
    """In-process queue for single-process deployments and tests."""
    
    def __init__(self, maxsize: int = 0):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
    
    async def put(self, event: TriggerEvent) -> None:
        await self._queue.put(event)
    
    async def get(self, timeout: float = 5.0) -> Optional[TriggerEvent]:
        try:
            return await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None
    
    async def size(self) -> int:
        return self._queue.qsize()


class RedisEventQueue(EventQueue):
    """
    Redis list used as a queue (LPUSH / BRPOP), so the dispatcher can run
    in a separate process from ingestion.
    """
    
    def __init__(self, redis, name: str = "trigger_queue"):
        self.redis = redis
        self.name = name
    
    async def put(self, event: TriggerEvent) -> None:
        await self.redis.lpush(self.name, json.dumps(event.to_dict()))
    
    async def get(self, timeout: float = 5.0) -> Optional[TriggerEvent]:
        # BRPOP takes whole seconds; 0 would block forever
        result = await self.redis.brpop(self.name, timeout=max(1, int(timeout)))
        if not result:
            return None
        
        _, payload = result
        try:
            return TriggerEvent.from_dict(json.loads(payload))
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Discarding malformed trigger payload from {self.name}: {e}")
            return None
    
    async def size(self) -> int:
        return await self.redis.llen(self.name)


async def create_event_queue(settings) -> EventQueue:
    """Build the queue selected by `settings.event_queue_backend`."""
    if settings.event_queue_backend == "redis":
        from pricewatch.core.redis import get_redis
        redis = await get_redis()
        logger.info(f"Using Redis trigger queue '{settings.event_queue_name}'")
        return RedisEventQueue(redis, settings.event_queue_name)
    
    logger.info("Using in-memory trigger queue")
    return MemoryEventQueue()
