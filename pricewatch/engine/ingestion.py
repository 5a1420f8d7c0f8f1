"""Quote ingestion: routes ticks through the cache and trigger scheduler."""
import asyncio
import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pricewatch.engine.errors import InvalidTick
from pricewatch.engine.models import ObservedAt, TriggerEvent
from pricewatch.engine.quote_cache import QuoteCache
from pricewatch.engine.registry import normalize_symbol
from pricewatch.engine.scheduler import TriggerScheduler

logger = logging.getLogger(__name__)


# Field aliases accepted in raw tick payloads (ours first, then exchange stream names)
SYMBOL_KEYS = ("symbol", "s")
PRICE_KEYS = ("price", "p", "c")
TIME_KEYS = ("observed_at", "timestamp", "E", "T")

RawTick = Union[Mapping[str, Any], Sequence[Any]]
TriggerHook = Callable[[List[TriggerEvent]], Awaitable[None]]


@dataclass
class IngestResult:
    """Outcome of ingesting one tick."""
    accepted: bool
    reason: str  # "accepted", "stale" or "invalid"
    symbol: Optional[str] = None
    events: List[TriggerEvent] = field(default_factory=list)


def _first(payload: Mapping[str, Any], keys: Tuple[str, ...]) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return None


def normalize_observed_at(value: Any) -> ObservedAt:
    """
    Convert a sequence number, epoch, ISO string or datetime to a comparable number.

    Datetimes and ISO strings become integer epoch milliseconds, the unit the
    API and the feed worker stamp ticks with. Numbers are kept as given.
    """
    if isinstance(value, bool):
        raise InvalidTick(f"observed_at must be a number or timestamp, got {value!r}")
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(round(value.timestamp() * 1000))
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            raise InvalidTick(f"observed_at must be finite, got {value!r}")
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            pass
        try:
            return normalize_observed_at(datetime.fromisoformat(value))
        except ValueError:
            raise InvalidTick(f"unparseable observed_at {value!r}")
    raise InvalidTick(f"observed_at must be a number or timestamp, got {value!r}")


def parse_tick(payload: RawTick) -> Tuple[str, float, ObservedAt]:
    """
    Parse an untrusted tick into (symbol, price, observed_at).

    Accepts a (symbol, price, observed_at) sequence or a mapping using
    either our field names or the short exchange stream names.

    Raises:
        InvalidTick: If any field is missing or malformed
    """
    if isinstance(payload, Mapping):
        symbol = _first(payload, SYMBOL_KEYS)
        price = _first(payload, PRICE_KEYS)
        observed_at = _first(payload, TIME_KEYS)
    elif isinstance(payload, Sequence) and not isinstance(payload, (str, bytes)) and len(payload) == 3:
        symbol, price, observed_at = payload
    else:
        raise InvalidTick(f"unsupported tick payload {payload!r}")

    if not isinstance(symbol, str) or not normalize_symbol(symbol):
        raise InvalidTick(f"tick has no symbol: {payload!r}")

    try:
        price = float(price)
    except (TypeError, ValueError):
        raise InvalidTick(f"tick price is not a number: {payload!r}")
    if not math.isfinite(price) or price <= 0:
        raise InvalidTick(f"tick price must be positive: {payload!r}")

    if observed_at is None:
        raise InvalidTick(f"tick has no timestamp: {payload!r}")

    return normalize_symbol(symbol), price, normalize_observed_at(observed_at)


class QuoteIngestor:
    """
    Feeds ticks into the quote cache and, when accepted, the trigger scheduler.

    All ticks for one symbol pass through a single asyncio lock, so the cache
    update, crossing detection and publication of the resulting events happen
    in acceptance order. Different symbols run concurrently. Ingestion never
    raises on bad input: invalid and stale ticks are dropped and counted.
    """

    def __init__(
        self,
        cache: QuoteCache,
        scheduler: TriggerScheduler,
        queue=None,
        on_trigger: Optional[TriggerHook] = None
    ):
        self.cache = cache
        self.scheduler = scheduler
        self.queue = queue
        self.on_trigger = on_trigger
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._stats = {
            "received": 0,
            "accepted": 0,
            "stale": 0,
            "invalid": 0,
            "triggers": 0,
            "publish_errors": 0,
            "hook_errors": 0,
        }

    async def ingest(self, symbol: str, price: float, observed_at: Any) -> IngestResult:
        """
        Ingest a single tick.

        Returns:
            IngestResult with the trigger events produced (empty if rejected)
        """
        return await self.ingest_raw((symbol, price, observed_at))

    async def ingest_raw(self, payload: RawTick) -> IngestResult:
        """Parse and ingest an untrusted tick payload."""
        self._stats["received"] += 1

        try:
            symbol, price, observed_at = parse_tick(payload)
        except InvalidTick as e:
            self._stats["invalid"] += 1
            logger.warning(f"Dropped invalid tick: {e}")
            return IngestResult(accepted=False, reason="invalid")

        async with self._locks[symbol]:
            update = self.cache.update(symbol, price, observed_at)
            if not update.accepted:
                self._stats["stale"] += 1
                return IngestResult(accepted=False, reason=update.reason, symbol=symbol)

            self._stats["accepted"] += 1
            events = self.scheduler.evaluate(symbol, price)
            self._stats["triggers"] += len(events)

            for event in events:
                await self._publish(event)

        # Hook runs after the symbol lock is released
        if events:
            await self._after_trigger(events)

        return IngestResult(accepted=True, reason="accepted", symbol=symbol, events=events)

    async def ingest_many(self, payloads: Sequence[RawTick]) -> List[TriggerEvent]:
        """Ingest a batch, processing symbols concurrently and each symbol in order."""
        by_symbol: Dict[Optional[str], List[RawTick]] = defaultdict(list)
        for payload in payloads:
            try:
                key = parse_tick(payload)[0]
            except InvalidTick:
                key = None  # counted when ingested
            by_symbol[key].append(payload)

        async def run(batch: List[RawTick]) -> List[TriggerEvent]:
            produced = []
            for payload in batch:
                result = await self.ingest_raw(payload)
                produced.extend(result.events)
            return produced

        results = await asyncio.gather(*(run(batch) for batch in by_symbol.values()))
        return [event for batch_events in results for event in batch_events]

    async def _publish(self, event: TriggerEvent):
        if self.queue is None:
            return
        try:
            await self.queue.put(event)
        except Exception as e:
            # The trigger already happened; losing the notification must not stop ingestion
            self._stats["publish_errors"] += 1
            logger.error(f"Failed to enqueue trigger for alert {event.alert_id}: {e}", exc_info=True)

    async def _after_trigger(self, events: List[TriggerEvent]):
        if self.on_trigger is None:
            return
        try:
            await self.on_trigger(events)
        except Exception as e:
            self._stats["hook_errors"] += 1
            alert_ids = ", ".join(event.alert_id for event in events)
            logger.error(f"Post-trigger hook failed for alerts {alert_ids}: {e}", exc_info=True)

    def stats(self) -> Dict[str, int]:
        return dict(self._stats)
