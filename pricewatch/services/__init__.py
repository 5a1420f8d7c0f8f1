"""Services package initialization."""
from pricewatch.services.alert_store import AlertStore

__all__ = [
    "AlertStore"
]
