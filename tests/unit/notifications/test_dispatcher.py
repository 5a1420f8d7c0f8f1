"""Unit tests for NotificationDispatcher.

This module tests fan-out to channels, retry behaviour for transient and
permanent failures, journaling and the queue consumer loop.
"""
import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from pricewatch.engine.errors import DeliveryFailure
from pricewatch.notifications.dispatcher import NotificationDispatcher, build_channels
from pricewatch.notifications.queue import MemoryEventQueue
from tests.conftest import RecordingChannel, make_event


def make_dispatcher(channels, **kwargs):
    """Dispatcher with zero backoff so retries do not sleep."""
    kwargs.setdefault("max_attempts", 3)
    return NotificationDispatcher(
        channels,
        backoff_multiplier=0,
        backoff_min=0,
        backoff_max=0,
        **kwargs
    )


# ============================================================================
# Tests for dispatch
# ============================================================================

@pytest.mark.unit
@pytest.mark.critical
@pytest.mark.asyncio
class TestDispatch:
    """Test dispatching one event."""
    
    async def test_delivers_to_all_channels(self):
        """✅ Every channel receives the formatted message."""
        discord = RecordingChannel("discord")
        telegram = RecordingChannel("telegram")
        dispatcher = make_dispatcher([discord, telegram])
        
        results = await dispatcher.dispatch(make_event())
        
        assert [r.channel for r in results] == ["discord", "telegram"]
        assert all(r.delivered and r.attempts == 1 for r in results)
        assert "BTCUSDT" in discord.sent[0]
        assert discord.sent == telegram.sent
        assert dispatcher.stats()["delivered"] == 2
    
    async def test_no_channels(self):
        """✅ No channels → empty result, event still counted."""
        dispatcher = make_dispatcher([])
        
        assert await dispatcher.dispatch(make_event()) == []
        assert dispatcher.stats()["events"] == 1
    
    async def test_transient_failure_retried(self):
        """✅ Retryable failure then success → delivered on attempt 2."""
        channel = RecordingChannel(failures=[DeliveryFailure("timeout")])
        dispatcher = make_dispatcher([channel])
        
        results = await dispatcher.dispatch(make_event())
        
        assert results[0].delivered is True
        assert results[0].attempts == 2
        assert channel.calls == 2
    
    async def test_retries_exhausted(self):
        """❌ Always failing → stops after max_attempts."""
        channel = RecordingChannel(failures=[DeliveryFailure("down")] * 5)
        dispatcher = make_dispatcher([channel], max_attempts=3)
        
        results = await dispatcher.dispatch(make_event(alert_id="a9"))
        
        assert results[0].delivered is False
        assert results[0].attempts == 3
        assert results[0].alert_id == "a9"
        assert results[0].error == "down"
        assert channel.calls == 3
        assert dispatcher.stats()["failed"] == 1
    
    async def test_permanent_failure_not_retried(self):
        """❌ Non-retryable failure → single attempt."""
        channel = RecordingChannel(failures=[DeliveryFailure("bad token", retryable=False)])
        dispatcher = make_dispatcher([channel])
        
        results = await dispatcher.dispatch(make_event())
        
        assert results[0].delivered is False
        assert results[0].attempts == 1
        assert channel.calls == 1
    
    async def test_unexpected_error_not_retried(self):
        """❌ Non-DeliveryFailure exception → failed result, no retry."""
        channel = RecordingChannel(failures=[RuntimeError("boom")])
        dispatcher = make_dispatcher([channel])
        
        results = await dispatcher.dispatch(make_event())
        
        assert results[0].delivered is False
        assert channel.calls == 1
    
    async def test_one_channel_failing_does_not_block_other(self):
        """✅ Failure isolated per channel."""
        bad = RecordingChannel("discord", failures=[DeliveryFailure("no", retryable=False)])
        good = RecordingChannel("telegram")
        dispatcher = make_dispatcher([bad, good])
        
        results = await dispatcher.dispatch(make_event())
        
        assert [r.delivered for r in results] == [False, True]
        assert len(good.sent) == 1
    
    async def test_journal_called(self):
        """✅ Journal receives the event before delivery."""
        journal = AsyncMock()
        event = make_event()
        dispatcher = make_dispatcher([RecordingChannel()], journal=journal)
        
        await dispatcher.dispatch(event)
        
        journal.assert_awaited_once_with(event)
    
    async def test_journal_error_does_not_block_delivery(self):
        """✅ Journal failure is counted and delivery still happens."""
        journal = AsyncMock(side_effect=RuntimeError("db locked"))
        channel = RecordingChannel()
        dispatcher = make_dispatcher([channel], journal=journal)
        
        results = await dispatcher.dispatch(make_event())
        
        assert results[0].delivered is True
        assert dispatcher.stats()["journal_errors"] == 1


# ============================================================================
# Tests for send_test / lifecycle
# ============================================================================

@pytest.mark.unit
@pytest.mark.asyncio
class TestSendTestAndLifecycle:
    """Test test messages, run loop and close."""
    
    async def test_send_test(self):
        """✅ Test message goes to the named channel only."""
        discord = RecordingChannel("discord")
        telegram = RecordingChannel("telegram")
        dispatcher = make_dispatcher([discord, telegram])
        
        result = await dispatcher.send_test("telegram")
        
        assert result.delivered is True
        assert discord.sent == []
        assert "Test notification" in telegram.sent[0]
    
    async def test_send_test_unknown_channel(self):
        """✅ Unconfigured channel → None."""
        assert await make_dispatcher([]).send_test("discord") is None
    
    async def test_run_requires_queue(self):
        """❌ run() without a queue → RuntimeError."""
        with pytest.raises(RuntimeError):
            await make_dispatcher([]).run()
    
    async def test_run_consumes_queue(self):
        """✅ Loop delivers queued events until stopped."""
        queue = MemoryEventQueue()
        channel = RecordingChannel()
        dispatcher = make_dispatcher([channel], queue=queue)
        await queue.put(make_event(alert_id="q1"))
        await queue.put(make_event(alert_id="q2"))
        
        task = asyncio.create_task(dispatcher.run())
        for _ in range(100):
            if len(channel.sent) == 2:
                break
            await asyncio.sleep(0.01)
        dispatcher.stop()
        await asyncio.wait_for(task, timeout=3)
        
        assert "q1" in channel.sent[0]
        assert "q2" in channel.sent[1]
    
    async def test_close_closes_channels(self):
        """✅ close() closes every channel and tolerates errors."""
        failing = MagicMock()
        failing.name = "broken"
        failing.close = AsyncMock(side_effect=RuntimeError("already closed"))
        channel = RecordingChannel()
        dispatcher = make_dispatcher([failing, channel])
        
        await dispatcher.close()
        
        assert channel.closed is True


@pytest.mark.unit
class TestBuildChannels:
    """Test channel construction from settings."""
    
    def test_none_configured(self):
        """✅ No credentials → no channels."""
        settings = MagicMock(discord_webhook_url=None, telegram_enabled=False)
        
        assert build_channels(settings) == []
    
    def test_both_configured(self):
        """✅ Discord and Telegram credentials → both channels."""
        settings = MagicMock(
            discord_webhook_url="https://discord.com/api/webhooks/1/abc",
            notification_timeout_seconds=5.0,
            telegram_enabled=True,
            telegram_bot_token="123456:ABC-DEF",
            telegram_chat_id="42"
        )
        
        channels = build_channels(settings)
        
        assert [c.name for c in channels] == ["discord", "telegram"]
