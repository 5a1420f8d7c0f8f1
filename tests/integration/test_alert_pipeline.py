"""Integration tests for the tick → trigger → notification pipeline.

Wires a real AlertEngine, in-memory queue, NotificationDispatcher and an
in-memory SQLite journal together.
"""
import asyncio
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from pricewatch.core.database import Base
from pricewatch.engine.errors import DeliveryFailure
from pricewatch.engine.models import ArmState
from pricewatch.engine.runtime import AlertEngine
from pricewatch.notifications.dispatcher import NotificationDispatcher
from pricewatch.notifications.queue import MemoryEventQueue
from pricewatch.services.alert_store import AlertStore
from tests.conftest import RecordingChannel, make_spec


@pytest.fixture
async def session_factory():
    """Session factory over a fresh in-memory database."""
    db_engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    yield async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    
    await db_engine.dispose()


async def drain(dispatcher: NotificationDispatcher, queue: MemoryEventQueue):
    """Dispatch everything currently queued."""
    while await queue.size():
        await dispatcher.dispatch(await queue.get(timeout=0.1))


@pytest.mark.integration
@pytest.mark.asyncio
class TestAlertPipeline:
    """End-to-end alert flow."""
    
    async def test_one_shot_flow(self, session_factory):
        """✅ Crossing → one notification per channel, history stored, alert terminal."""
        queue = MemoryEventQueue()
        engine = AlertEngine(queue=queue)
        
        async def journal(event):
            async with session_factory() as db:
                await AlertStore.record_trigger(db, event)
        
        discord = RecordingChannel("discord")
        telegram = RecordingChannel("telegram", failures=[DeliveryFailure("timeout")])
        dispatcher = NotificationDispatcher(
            [discord, telegram], queue=queue, journal=journal,
            backoff_multiplier=0, backoff_min=0, backoff_max=0
        )
        
        await engine.ingestor.ingest("BTCUSDT", 44000.0, 1)
        alert = engine.create_alert(make_spec(reference_price=None))
        
        for seq, price in enumerate([44500.0, 45010.5, 46000.0, 44000.0, 45500.0], start=2):
            await engine.ingestor.ingest("BTCUSDT", price, seq)
        await drain(dispatcher, queue)
        
        assert len(discord.sent) == 1
        assert len(telegram.sent) == 1
        assert telegram.calls == 2
        assert "45,010.50" in discord.sent[0]
        
        stored = engine.get_alert(alert.id)
        assert stored.arm_state == ArmState.TRIGGERED_ONESHOT
        assert stored.is_active is False
        
        async with session_factory() as db:
            history = await AlertStore.get_trigger_history(db, alert_id=alert.id)
        assert [r.trigger_price for r in history] == [45010.5]
    
    async def test_recurring_flow_with_run_loop(self):
        """✅ Recurring alert notifies on each crossing via the dispatcher loop."""
        queue = MemoryEventQueue()
        engine = AlertEngine(queue=queue)
        channel = RecordingChannel("discord")
        dispatcher = NotificationDispatcher([channel], queue=queue, backoff_min=0, backoff_max=0)
        
        engine.create_alert(make_spec(
            symbol="SOLUSDT", target_price=100.0, direction="below",
            is_recurring=True, reference_price=120.0
        ))
        
        task = asyncio.create_task(dispatcher.run())
        await engine.ingestor.ingest_many([
            ("SOLUSDT", 110.0, 1),
            ("SOLUSDT", 95.0, 2),
            ("SOLUSDT", 105.0, 3),
            ("SOLUSDT", 98.0, 4),
        ])
        for _ in range(100):
            if len(channel.sent) == 2:
                break
            await asyncio.sleep(0.01)
        dispatcher.stop()
        await asyncio.wait_for(task, timeout=3)
        
        assert len(channel.sent) == 2
        assert "95.00" in channel.sent[0]
        assert "98.00" in channel.sent[1]
    
    async def test_restart_restores_state(self, session_factory):
        """✅ Alerts saved and restored keep their arm state across engines."""
        first = AlertEngine()
        alert = first.create_alert(make_spec(is_recurring=True))
        await first.ingestor.ingest("BTCUSDT", 45500.0, 1)
        
        async with session_factory() as db:
            for snapshot in first.registry.list():
                await AlertStore.save_alert(db, snapshot)
        
        second = AlertEngine(queue=MemoryEventQueue())
        async with session_factory() as db:
            second.registry.restore(await AlertStore.load_alerts(db))
        
        restored = second.get_alert(alert.id)
        assert restored.arm_state == ArmState.TRIGGERED_RECURRING_WAITING_REARM
        assert restored.trigger_count == 1
        
        # Still waiting: staying above target does not fire again
        events = await second.ingestor.ingest_many([("BTCUSDT", 45600.0, 1), ("BTCUSDT", 44000.0, 2), ("BTCUSDT", 45100.0, 3)])
        assert len(events) == 1
    
    async def test_one_shot_not_rearmed_after_crash(self, session_factory):
        """✅ Trigger state saved at ingestion; a restart without shutdown stays terminal."""
        async def persist(snapshot):
            async with session_factory() as db:
                await AlertStore.save_alert(db, snapshot, is_current=first.has_alert)
        
        first = AlertEngine(queue=MemoryEventQueue(), persist_alert=persist)
        alert = first.create_alert(make_spec())
        async with session_factory() as db:
            await AlertStore.save_alert(db, alert)
        
        fired = await first.ingestor.ingest("BTCUSDT", 45100.0, 1)
        assert len(fired.events) == 1
        
        # No shutdown flush: rebuild straight from the store
        second = AlertEngine(queue=MemoryEventQueue())
        async with session_factory() as db:
            second.registry.restore(await AlertStore.load_alerts(db))
        
        restored = second.get_alert(alert.id)
        assert restored.arm_state == ArmState.TRIGGERED_ONESHOT
        assert restored.is_active is False
        
        r1 = await second.ingestor.ingest("BTCUSDT", 44900.0, 2)
        r2 = await second.ingestor.ingest("BTCUSDT", 45200.0, 3)
        assert r1.events == []
        assert r2.events == []
    
    async def test_save_racing_delete_does_not_resurrect(self, session_factory):
        """✅ Alert deleted while its snapshot is being saved stays deleted."""
        engine = AlertEngine()
        alert = engine.create_alert(make_spec())
        async with session_factory() as db:
            await AlertStore.save_alert(db, alert)
        
        checks = []
        
        def is_current(alert_id):
            # Registry entry disappears between the pre-write and post-commit checks
            checks.append(alert_id)
            if len(checks) == 2:
                engine.delete_alert(alert_id)
            return engine.has_alert(alert_id)
        
        async with session_factory() as db:
            saved = await AlertStore.save_alert(db, alert, is_current=is_current)
        
        assert saved is None
        assert checks == [alert.id, alert.id]
        async with session_factory() as db:
            assert await AlertStore.load_alerts(db) == []
    
    async def test_save_skips_already_deleted(self, session_factory):
        """✅ Snapshot of an alert already gone from the registry is not inserted."""
        engine = AlertEngine()
        alert = engine.create_alert(make_spec())
        engine.delete_alert(alert.id)
        
        async with session_factory() as db:
            saved = await AlertStore.save_alert(db, alert, is_current=engine.has_alert)
        
        assert saved is None
        async with session_factory() as db:
            assert await AlertStore.load_alerts(db) == []
