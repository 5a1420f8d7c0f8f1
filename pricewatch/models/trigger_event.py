"""Trigger event model: append-only history of alert triggers."""
from sqlalchemy import Column, String, DateTime, Float
from datetime import datetime, timezone
from pricewatch.core.database import Base


class TriggerEventRecord(Base):
    """A single alert trigger. Rows are never updated."""

    __tablename__ = "trigger_events"

    # Dedupe key derived from alert id + trigger time, so a redelivered event is stored once
    id = Column(String, primary_key=True)
    # No foreign key: history outlives deleted alerts
    alert_id = Column(String, nullable=False, index=True)
    symbol = Column(String, nullable=False, index=True)
    target_price = Column(Float, nullable=False)
    trigger_price = Column(Float, nullable=False)
    direction = Column(String, nullable=False)
    triggered_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False, index=True)
