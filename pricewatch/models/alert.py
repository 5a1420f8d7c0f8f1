"""Alert model for persisting price alerts between restarts."""
from sqlalchemy import Column, String, DateTime, Integer, Float, Boolean
from datetime import datetime, timezone
from pricewatch.core.database import Base


class AlertRecord(Base):
    """Persisted snapshot of an Alert owned by the in-memory registry."""
    
    __tablename__ = "alerts"
    
    id = Column(String, primary_key=True)
    symbol = Column(String, nullable=False, index=True)
    target_price = Column(Float, nullable=False)
    direction = Column(String, nullable=False)
    reference_price = Column(Float, nullable=False)
    is_recurring = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    last_triggered_at = Column(DateTime(timezone=True), nullable=True)
    arm_state = Column(String, nullable=False)
    last_side = Column(String, nullable=True)
    trigger_count = Column(Integer, default=0, nullable=False)
