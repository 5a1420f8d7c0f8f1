"""Alert store for persisting alerts and trigger history."""
from typing import Callable, List, Optional
from sqlalchemy import select, delete, desc
from sqlalchemy.ext.asyncio import AsyncSession
from pricewatch.models import AlertRecord, TriggerEventRecord
from pricewatch.engine.models import Alert, ArmState, Direction, Side, TriggerEvent
from datetime import datetime, timezone
import hashlib


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; stored values are always UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class AlertStore:
    """Service for alert and trigger history persistence."""

    @staticmethod
    def generate_dedupe_key(event: TriggerEvent) -> str:
        """
        Generate unique dedupe key for a trigger event.

        An alert fires at most once per arm cycle, so alert id plus trigger
        time identifies the event.
        """
        key_str = f"{event.alert_id}:{event.triggered_at.isoformat()}"
        return hashlib.sha256(key_str.encode()).hexdigest()

    @staticmethod
    def to_alert(record: AlertRecord) -> Alert:
        """Convert a stored record back into a registry Alert."""
        return Alert(
            id=record.id,
            symbol=record.symbol,
            target_price=record.target_price,
            direction=Direction(record.direction),
            reference_price=record.reference_price,
            is_recurring=record.is_recurring,
            is_active=record.is_active,
            created_at=_as_utc(record.created_at),
            last_triggered_at=_as_utc(record.last_triggered_at),
            arm_state=ArmState(record.arm_state),
            last_side=Side(record.last_side) if record.last_side else None,
            trigger_count=record.trigger_count or 0
        )

    @staticmethod
    async def save_alert(
        db: AsyncSession,
        alert: Alert,
        is_current: Optional[Callable[[str], bool]] = None
    ) -> Optional[AlertRecord]:
        """
        Insert or update the stored snapshot of an alert.

        When `is_current` is given it is asked whether the alert still
        exists in the registry, both before writing and after the commit.
        A DELETE that lands in between removes the registry entry first,
        so the row is dropped again instead of coming back on restart.

        Args:
            db: Database session
            alert: Alert copy from the registry
            is_current: Optional check that the alert id is still live

        Returns:
            AlertRecord object, or None if the alert was deleted meanwhile
        """
        record = await db.get(AlertRecord, alert.id)
        if is_current is not None and not is_current(alert.id):
            return None

        if record is None:
            record = AlertRecord(id=alert.id)
            db.add(record)

        record.symbol = alert.symbol
        record.target_price = alert.target_price
        record.direction = alert.direction.value
        record.reference_price = alert.reference_price
        record.is_recurring = alert.is_recurring
        record.is_active = alert.is_active
        record.created_at = alert.created_at
        record.last_triggered_at = alert.last_triggered_at
        record.arm_state = alert.arm_state.value
        record.last_side = alert.last_side.value if alert.last_side else None
        record.trigger_count = alert.trigger_count

        await db.commit()

        if is_current is not None and not is_current(alert.id):
            await AlertStore.delete_alert(db, alert.id)
            return None

        await db.refresh(record)
        return record

    @staticmethod
    async def delete_alert(db: AsyncSession, alert_id: str) -> bool:
        """
        Delete a stored alert. Trigger history is kept.

        Returns:
            True if removed, False if not found
        """
        result = await db.execute(
            delete(AlertRecord).where(AlertRecord.id == alert_id)
        )
        await db.commit()

        return result.rowcount > 0

    @staticmethod
    async def load_alerts(db: AsyncSession) -> List[Alert]:
        """Load every stored alert, oldest first."""
        result = await db.execute(
            select(AlertRecord).order_by(AlertRecord.created_at, AlertRecord.id)
        )
        return [AlertStore.to_alert(record) for record in result.scalars().all()]

    @staticmethod
    async def record_trigger(
        db: AsyncSession,
        event: TriggerEvent
    ) -> Optional[TriggerEventRecord]:
        """
        Append a trigger event to the history.

        Args:
            db: Database session
            event: TriggerEvent from the scheduler

        Returns:
            TriggerEventRecord, or None if this event was already recorded
        """
        dedupe_key = AlertStore.generate_dedupe_key(event)

        existing = await db.get(TriggerEventRecord, dedupe_key)
        if existing is not None:
            return None

        record = TriggerEventRecord(
            id=dedupe_key,
            alert_id=event.alert_id,
            symbol=event.symbol,
            target_price=event.target_price,
            trigger_price=event.trigger_price,
            direction=event.direction.value,
            triggered_at=event.triggered_at
        )
        db.add(record)
        await db.commit()
        await db.refresh(record)
        return record

    @staticmethod
    async def get_trigger_history(
        db: AsyncSession,
        symbol: Optional[str] = None,
        alert_id: Optional[str] = None,
        limit: int = 50
    ) -> List[TriggerEventRecord]:
        """Get recent trigger events, newest first, optionally filtered."""
        query = select(TriggerEventRecord).order_by(desc(TriggerEventRecord.triggered_at)).limit(limit)

        if symbol:
            query = query.where(TriggerEventRecord.symbol == symbol.upper())
        if alert_id:
            query = query.where(TriggerEventRecord.alert_id == alert_id)

        result = await db.execute(query)
        return list(result.scalars().all())
