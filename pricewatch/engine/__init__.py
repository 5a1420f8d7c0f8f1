"""Engine package initialization."""
from pricewatch.engine.errors import AlertError, InvalidSpec, InvalidTransition, InvalidTick, DeliveryFailure
from pricewatch.engine.models import (
    Alert,
    AlertSpec,
    ArmState,
    Direction,
    Quote,
    SortKey,
    StatusFilter,
    TriggerEvent,
)
from pricewatch.engine.proximity import proximity
from pricewatch.engine.quote_cache import QuoteCache
from pricewatch.engine.registry import AlertRegistry
from pricewatch.engine.scheduler import TriggerScheduler
from pricewatch.engine.ingestion import QuoteIngestor
from pricewatch.engine.runtime import AlertEngine

__all__ = [
    "AlertError",
    "InvalidSpec",
    "InvalidTransition",
    "InvalidTick",
    "DeliveryFailure",
    "Alert",
    "AlertSpec",
    "ArmState",
    "Direction",
    "Quote",
    "SortKey",
    "StatusFilter",
    "TriggerEvent",
    "proximity",
    "QuoteCache",
    "AlertRegistry",
    "TriggerScheduler",
    "QuoteIngestor",
    "AlertEngine",
]
