"""Alert engine facade wiring the cache, registry, scheduler and ingestor."""
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pricewatch.engine.ingestion import QuoteIngestor
from pricewatch.engine.models import Alert, AlertSpec, SortKey, StatusFilter, TriggerEvent
from pricewatch.engine.proximity import alert_proximity, distance_pct, proximity_band
from pricewatch.engine.quote_cache import QuoteCache
from pricewatch.engine.registry import AlertRegistry, normalize_symbol
from pricewatch.engine.scheduler import TriggerScheduler

logger = logging.getLogger(__name__)


class AlertEngine:
    """
    Entry point used by the API and workers.

    Alert management goes through the registry; ticks go through the
    ingestor, which publishes trigger events to `queue` for the dispatcher.

    `persist_alert`, when given, receives the snapshot of every alert that
    fired as soon as the tick has been processed, so a crash right after a
    trigger cannot bring a one-shot alert back armed.
    """

    def __init__(
        self,
        queue=None,
        high_proximity_threshold: float = 80.0,
        persist_alert: Optional[Callable[[Alert], Awaitable[None]]] = None
    ):
        self.cache = QuoteCache()
        self.registry = AlertRegistry()
        self.scheduler = TriggerScheduler(self.registry)
        self.ingestor = QuoteIngestor(self.cache, self.scheduler, queue, on_trigger=self._persist_triggered)
        self.queue = queue
        self.high_proximity_threshold = high_proximity_threshold
        self.persist_alert = persist_alert

    async def _persist_triggered(self, events: List[TriggerEvent]):
        if self.persist_alert is None:
            return
        for alert_id in dict.fromkeys(event.alert_id for event in events):
            alert = self.registry.get(alert_id)
            if alert is None:
                continue  # deleted since it fired
            await self.persist_alert(alert)

    def has_alert(self, alert_id: str) -> bool:
        return self.registry.get(alert_id) is not None

    def create_alert(self, spec: AlertSpec) -> Alert:
        """Create an alert, using the latest cached price as its reference."""
        reference = self.cache.get(normalize_symbol(spec.symbol))
        return self.registry.create(spec, reference_price=reference)

    def delete_alert(self, alert_id: str) -> bool:
        return self.registry.delete(alert_id)

    def set_active(self, alert_id: str, active: bool) -> Optional[Alert]:
        alert = self.registry.get(alert_id)
        if alert is None:
            return None
        return self.registry.set_active(alert_id, active, baseline_price=self.cache.get(alert.symbol))

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        return self.registry.get(alert_id)

    def list_alerts(
        self,
        search: Optional[str] = None,
        status: StatusFilter = StatusFilter.ALL,
        sort: SortKey = SortKey.PROXIMITY
    ) -> List[Alert]:
        return self.registry.list(search=search, status=status, sort=sort, price_of=self.cache.get)

    def describe(self, alert: Alert) -> Dict[str, Any]:
        """Alert fields plus live price, proximity and distance to target."""
        current = self.cache.get(alert.symbol)
        value = alert_proximity(alert, current)
        data = alert.to_dict()
        data.update({
            "current_price": current,
            "proximity": round(value, 4) if value is not None else None,
            "proximity_band": proximity_band(value),
            "distance_pct": round(distance_pct(alert.target_price, current), 4) if current else None,
        })
        return data

    def summary(self) -> Dict[str, int]:
        """Counts shown on the alerts overview."""
        alerts = self.registry.list(price_of=self.cache.get)
        active = [a for a in alerts if a.is_active]
        high = [
            a for a in active
            if (alert_proximity(a, self.cache.get(a.symbol)) or 0.0) > self.high_proximity_threshold
        ]
        return {
            "total": len(alerts),
            "active": len(active),
            "recurring": len([a for a in alerts if a.is_recurring]),
            "high_proximity": len(high),
        }

    def stats(self) -> Dict[str, Any]:
        return {
            "alerts": len(self.registry),
            "symbols_cached": len(self.cache),
            "stale_quotes": self.cache.stale_count,
            "triggers": self.scheduler.trigger_count,
            "ingestion": self.ingestor.stats(),
        }
