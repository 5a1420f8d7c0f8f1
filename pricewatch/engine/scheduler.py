"""Trigger scheduler: crossing detection and arm-state transitions."""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from pricewatch.engine.models import (
    Alert,
    ArmState,
    Direction,
    Side,
    TriggerEvent,
    side_of,
    utcnow,
)
from pricewatch.engine.registry import AlertRegistry

logger = logging.getLogger(__name__)


def is_crossing(alert: Alert, current_side: Side) -> bool:
    """
    True when the price has just reached the target from the opposite side.

    ABOVE alerts need the previous observation strictly below target and the
    current one at or above it; BELOW alerts mirror that.
    """
    if alert.direction == Direction.ABOVE:
        return alert.last_side == Side.BELOW and current_side in (Side.AT, Side.ABOVE)
    return alert.last_side == Side.ABOVE and current_side in (Side.AT, Side.BELOW)


def is_rearm(alert: Alert, current_side: Side) -> bool:
    """True when a waiting recurring alert is back strictly on the far side."""
    if alert.direction == Direction.ABOVE:
        return current_side == Side.BELOW
    return current_side == Side.ABOVE


class TriggerScheduler:
    """
    Decides when alerts fire.

    States per alert:
        ARMED -> TRIGGERED_ONESHOT (terminal, alert deactivated)
        ARMED -> TRIGGERED_RECURRING_WAITING_REARM -> ARMED (after price
        returns to the opposite side of target)

    The scheduler owns no records; every transition is written back through
    `AlertRegistry.apply` so it is atomic with respect to other registry
    operations on the same alert.
    """

    def __init__(self, registry: AlertRegistry, clock: Callable[[], datetime] = utcnow):
        self.registry = registry
        self.clock = clock
        self.trigger_count = 0

    def evaluate(self, symbol: str, price: float) -> List[TriggerEvent]:
        """
        Run every active alert on a symbol against an accepted tick.

        Callers must serialize calls per symbol (see QuoteIngestor).

        Returns:
            Trigger events produced by this tick, in alert id order
        """
        events = []
        now = self.clock()

        for alert_id in self.registry.alert_ids_for_symbol(symbol):
            event = self.registry.apply(alert_id, lambda alert: self._step(alert, price, now))
            if event is not None:
                events.append(event)

        self.trigger_count += len(events)
        return events

    def _step(self, alert: Alert, price: float, now: datetime) -> Optional[TriggerEvent]:
        """Advance one alert's state machine; mutates the live alert."""
        current_side = side_of(price, alert.target_price)
        event = None

        if alert.arm_state == ArmState.ARMED:
            if is_crossing(alert, current_side):
                event = self._fire(alert, price, now)

        elif alert.arm_state == ArmState.TRIGGERED_RECURRING_WAITING_REARM:
            if is_rearm(alert, current_side):
                alert.arm_state = ArmState.ARMED
                logger.info(f"Alert {alert.id} re-armed at {price}")

        # TRIGGERED_ONESHOT alerts are inactive and never reach here
        alert.last_side = current_side
        return event

    def _fire(self, alert: Alert, price: float, now: datetime) -> TriggerEvent:
        alert.last_triggered_at = now
        alert.trigger_count += 1

        if alert.is_recurring:
            alert.arm_state = ArmState.TRIGGERED_RECURRING_WAITING_REARM
        else:
            alert.arm_state = ArmState.TRIGGERED_ONESHOT
            alert.is_active = False

        logger.info(
            f"Alert {alert.id} triggered: {alert.symbol} {alert.direction.value} "
            f"{alert.target_price} at {price}"
        )

        return TriggerEvent(
            alert_id=alert.id,
            symbol=alert.symbol,
            target_price=alert.target_price,
            trigger_price=price,
            direction=alert.direction,
            triggered_at=now,
        )
