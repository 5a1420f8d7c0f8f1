"""Models package initialization."""
from pricewatch.models.alert import AlertRecord
from pricewatch.models.trigger_event import TriggerEventRecord

__all__ = [
    "AlertRecord",
    "TriggerEventRecord"
]
