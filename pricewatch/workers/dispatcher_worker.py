"""Standalone notification dispatcher consuming the Redis trigger queue."""
import logging
import asyncio
from pricewatch.core.config import settings
from pricewatch.core.database import AsyncSessionLocal, init_db
from pricewatch.core.redis import close_redis
from pricewatch.engine.models import TriggerEvent
from pricewatch.notifications.dispatcher import NotificationDispatcher
from pricewatch.notifications.queue import create_event_queue
from pricewatch.services import AlertStore

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def journal_trigger(event: TriggerEvent):
    """Append a trigger event to the persisted history."""
    async with AsyncSessionLocal() as db:
        record = await AlertStore.record_trigger(db, event)
        if record is None:
            logger.debug(f"Trigger for alert {event.alert_id} already recorded")


async def main():
    """Main entry point for the dispatcher worker."""
    if settings.event_queue_backend != "redis":
        raise SystemExit("dispatcher_worker needs EVENT_QUEUE_BACKEND=redis; the API runs its own dispatcher otherwise")
    
    await init_db()
    queue = await create_event_queue(settings)
    dispatcher = NotificationDispatcher.from_settings(settings, queue=queue, journal=journal_trigger)
    
    try:
        await dispatcher.run()
    finally:
        await dispatcher.close()
        await close_redis()


if __name__ == "__main__":
    asyncio.run(main())
