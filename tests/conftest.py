"""Shared pytest fixtures for alert engine tests."""
import pytest
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from pricewatch.engine.models import Alert, AlertSpec, ArmState, Direction, Side, TriggerEvent, side_of
from pricewatch.engine.quote_cache import QuoteCache
from pricewatch.engine.registry import AlertRegistry
from pricewatch.engine.scheduler import TriggerScheduler
from pricewatch.engine.runtime import AlertEngine
from pricewatch.notifications import NotificationChannel
from pricewatch.notifications.queue import MemoryEventQueue


FIXED_NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def make_spec(
    symbol: str = "BTCUSDT",
    target_price: float = 45000.0,
    direction="above",
    is_recurring: bool = False,
    reference_price: Optional[float] = 44000.0
) -> AlertSpec:
    """Factory function to create AlertSpec instances for testing."""
    return AlertSpec(
        symbol=symbol,
        target_price=target_price,
        direction=direction,
        is_recurring=is_recurring,
        reference_price=reference_price
    )


def make_alert(
    alert_id: str = "a1",
    symbol: str = "BTCUSDT",
    target_price: float = 45000.0,
    direction: Direction = Direction.ABOVE,
    reference_price: float = 44000.0,
    is_recurring: bool = False,
    is_active: bool = True,
    created_at: datetime = FIXED_NOW,
    arm_state: ArmState = ArmState.ARMED,
    last_side: Optional[Side] = None
) -> Alert:
    """Factory function to create Alert instances with a chosen id."""
    return Alert(
        id=alert_id,
        symbol=symbol,
        target_price=target_price,
        direction=direction,
        reference_price=reference_price,
        is_recurring=is_recurring,
        is_active=is_active,
        created_at=created_at,
        arm_state=arm_state,
        last_side=last_side or side_of(reference_price, target_price)
    )


def make_event(
    alert_id: str = "a1",
    symbol: str = "BTCUSDT",
    target_price: float = 45000.0,
    trigger_price: float = 45010.5,
    direction: Direction = Direction.ABOVE,
    triggered_at: datetime = FIXED_NOW
) -> TriggerEvent:
    """Factory function to create TriggerEvent instances for testing."""
    return TriggerEvent(
        alert_id=alert_id,
        symbol=symbol,
        target_price=target_price,
        trigger_price=trigger_price,
        direction=direction,
        triggered_at=triggered_at
    )


class RecordingChannel(NotificationChannel):
    """Channel that records messages and fails a scripted number of times."""
    
    def __init__(self, name: str = "recording", failures: Optional[List[Exception]] = None):
        self.name = name
        self.failures = list(failures or [])
        self.sent: List[str] = []
        self.calls = 0
        self.closed = False
    
    async def send(self, text: str) -> None:
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        self.sent.append(text)
    
    async def close(self) -> None:
        self.closed = True


class StepClock:
    """Deterministic clock advancing one second per call."""
    
    def __init__(self, start: datetime = FIXED_NOW):
        self.current = start
    
    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


@pytest.fixture
def registry():
    """Empty AlertRegistry."""
    return AlertRegistry()


@pytest.fixture
def cache():
    """Empty QuoteCache."""
    return QuoteCache()


@pytest.fixture
def scheduler(registry):
    """TriggerScheduler over the registry fixture with a stepping clock."""
    return TriggerScheduler(registry, clock=StepClock())


@pytest.fixture
def event_queue():
    """In-memory trigger event queue."""
    return MemoryEventQueue()


@pytest.fixture
def engine(event_queue):
    """AlertEngine publishing to the in-memory queue."""
    return AlertEngine(queue=event_queue)
