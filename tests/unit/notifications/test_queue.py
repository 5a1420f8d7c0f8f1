"""Unit tests for trigger event queues."""
import json
import pytest
from unittest.mock import MagicMock, patch
import fakeredis.aioredis

from pricewatch.engine.models import TriggerEvent
from pricewatch.notifications.queue import MemoryEventQueue, RedisEventQueue, create_event_queue
from tests.conftest import make_event


@pytest.fixture
async def redis_client():
    """In-memory Redis replacement."""
    client = fakeredis.aioredis.FakeRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def redis_queue(redis_client):
    """RedisEventQueue over fakeredis."""
    return RedisEventQueue(redis_client, name="test_trigger_queue")


@pytest.mark.unit
@pytest.mark.asyncio
class TestMemoryEventQueue:
    """Test in-memory queue."""
    
    async def test_fifo(self):
        """✅ Events come out in insertion order."""
        queue = MemoryEventQueue()
        await queue.put(make_event(alert_id="first"))
        await queue.put(make_event(alert_id="second"))
        
        assert await queue.size() == 2
        assert (await queue.get(timeout=0.1)).alert_id == "first"
        assert (await queue.get(timeout=0.1)).alert_id == "second"
    
    async def test_get_timeout(self):
        """✅ Empty queue → None after timeout."""
        assert await MemoryEventQueue().get(timeout=0.01) is None


@pytest.mark.unit
@pytest.mark.asyncio
class TestRedisEventQueue:
    """Test Redis-backed queue."""
    
    async def test_fifo_roundtrip(self, redis_queue):
        """✅ LPUSH/BRPOP preserves order and event fields."""
        first = make_event(alert_id="first")
        await redis_queue.put(first)
        await redis_queue.put(make_event(alert_id="second"))
        
        assert await redis_queue.size() == 2
        assert await redis_queue.get(timeout=1) == first
        assert (await redis_queue.get(timeout=1)).alert_id == "second"
        assert await redis_queue.size() == 0
    
    async def test_payload_is_json(self, redis_queue, redis_client):
        """✅ Stored payload is the event's JSON dict."""
        event = make_event()
        await redis_queue.put(event)
        
        raw = await redis_client.lindex("test_trigger_queue", 0)
        
        assert json.loads(raw) == event.to_dict()
    
    async def test_malformed_payload_discarded(self, redis_queue, redis_client):
        """❌ Malformed payload → None, not an exception."""
        await redis_client.lpush("test_trigger_queue", "{not json")
        
        assert await redis_queue.get(timeout=1) is None
    
    async def test_empty_times_out(self, redis_queue):
        """✅ Empty queue → None."""
        assert await redis_queue.get(timeout=1) is None


@pytest.mark.unit
@pytest.mark.asyncio
class TestCreateEventQueue:
    """Test backend selection."""
    
    async def test_memory_backend(self):
        """✅ memory backend → MemoryEventQueue."""
        settings = MagicMock(event_queue_backend="memory")
        
        assert isinstance(await create_event_queue(settings), MemoryEventQueue)
    
    async def test_redis_backend(self, redis_client):
        """✅ redis backend → RedisEventQueue named from settings."""
        settings = MagicMock(event_queue_backend="redis", event_queue_name="alerts_q")
        
        with patch("pricewatch.core.redis.get_redis", return_value=redis_client) as mock_get:
            queue = await create_event_queue(settings)
        
        assert isinstance(queue, RedisEventQueue)
        assert queue.name == "alerts_q"
        mock_get.assert_awaited_once()
