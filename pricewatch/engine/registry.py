"""Alert registry: the single owner of alert records."""
import logging
import math
import threading
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional, TypeVar, Union

from pricewatch.engine.errors import InvalidSpec, InvalidTransition
from pricewatch.engine.models import (
    Alert,
    AlertSpec,
    Direction,
    SortKey,
    StatusFilter,
    new_alert_id,
    side_of,
    utcnow,
)
from pricewatch.engine.proximity import alert_proximity

logger = logging.getLogger(__name__)

T = TypeVar("T")

PriceLookup = Callable[[str], Optional[float]]


def normalize_symbol(symbol: str) -> str:
    return (symbol or "").strip().upper()


def _validate_price(value, name: str) -> float:
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise InvalidSpec(f"{name} must be a number, got {value!r}")
    if not math.isfinite(price) or price <= 0:
        raise InvalidSpec(f"{name} must be a positive number, got {value!r}")
    return price


def _validate_direction(value: Union[Direction, str]) -> Direction:
    if isinstance(value, Direction):
        return value
    try:
        return Direction(str(value).lower())
    except ValueError:
        raise InvalidSpec(f"direction must be one of {[d.value for d in Direction]}, got {value!r}")


class AlertRegistry:
    """
    Owns the set of alerts and every mutation made to them.

    Callers only ever receive copies; state changes go through `create`,
    `delete`, `set_active` and, for the trigger scheduler, `apply`.
    """

    def __init__(self):
        self._alerts: Dict[str, Alert] = {}
        self._lock = threading.RLock()

    def create(self, spec: AlertSpec, reference_price: Optional[float] = None) -> Alert:
        """
        Validate a spec and register a new armed alert.

        Args:
            spec: Alert input
            reference_price: Price at creation, used when the spec does not carry one

        Returns:
            Copy of the created Alert

        Raises:
            InvalidSpec: If any field is invalid or no reference price is known
        """
        symbol = normalize_symbol(spec.symbol)
        if not symbol:
            raise InvalidSpec("symbol must not be empty")

        target_price = _validate_price(spec.target_price, "target_price")
        direction = _validate_direction(spec.direction)

        reference = spec.reference_price if spec.reference_price is not None else reference_price
        if reference is None:
            raise InvalidSpec(f"no reference price available for {symbol}")
        reference = _validate_price(reference, "reference_price")

        alert = Alert(
            id=new_alert_id(),
            symbol=symbol,
            target_price=target_price,
            direction=direction,
            reference_price=reference,
            is_recurring=bool(spec.is_recurring),
            created_at=utcnow(),
            last_side=side_of(reference, target_price),
        )

        with self._lock:
            self._alerts[alert.id] = alert
            logger.info(
                f"Created alert {alert.id}: {symbol} {direction.value} {target_price} "
                f"(reference={reference}, recurring={alert.is_recurring})"
            )
            return replace(alert)

    def delete(self, alert_id: str) -> bool:
        """Remove an alert. Returns False if it did not exist."""
        with self._lock:
            alert = self._alerts.pop(alert_id, None)
        if alert is None:
            return False
        logger.info(f"Deleted alert {alert_id} ({alert.symbol})")
        return True

    def set_active(
        self,
        alert_id: str,
        active: bool,
        baseline_price: Optional[float] = None
    ) -> Optional[Alert]:
        """
        Activate or deactivate an alert.

        On reactivation the crossing baseline is reset to `baseline_price`
        (when given) so a crossing that happened while paused does not fire.

        Returns:
            Updated Alert copy, or None if the id is unknown

        Raises:
            InvalidTransition: If reactivating a one-shot alert that already triggered
        """
        with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None:
                return None

            if active and alert.is_terminal:
                raise InvalidTransition(f"alert {alert_id} already triggered and cannot be reactivated")

            if active and not alert.is_active and baseline_price is not None:
                alert.last_side = side_of(baseline_price, alert.target_price)

            alert.is_active = bool(active)
            logger.info(f"Alert {alert_id} {'activated' if active else 'deactivated'}")
            return replace(alert)

    def get(self, alert_id: str) -> Optional[Alert]:
        with self._lock:
            alert = self._alerts.get(alert_id)
            return replace(alert) if alert else None

    def list(
        self,
        search: Optional[str] = None,
        status: Union[StatusFilter, str] = StatusFilter.ALL,
        sort: Union[SortKey, str] = SortKey.PROXIMITY,
        price_of: Optional[PriceLookup] = None
    ) -> List[Alert]:
        """
        List alerts matching a filter in a deterministic order.

        Args:
            search: Case-insensitive symbol substring
            status: all / active / inactive
            sort: proximity (desc), created (desc) or symbol (asc); ties by id asc
            price_of: Current price lookup, needed for proximity ordering

        Returns:
            List of Alert copies
        """
        status = StatusFilter(status)
        sort = SortKey(sort)
        needle = (search or "").strip().upper()

        with self._lock:
            alerts = [replace(a) for a in self._alerts.values()]

        if needle:
            alerts = [a for a in alerts if needle in a.symbol]
        if status == StatusFilter.ACTIVE:
            alerts = [a for a in alerts if a.is_active]
        elif status == StatusFilter.INACTIVE:
            alerts = [a for a in alerts if not a.is_active]

        if sort == SortKey.PROXIMITY:
            lookup = price_of or (lambda symbol: None)

            def proximity_key(alert: Alert):
                value = alert_proximity(alert, lookup(alert.symbol))
                # Unpriced alerts go last
                return (value is None, -(value or 0.0), alert.id)

            alerts.sort(key=proximity_key)
        elif sort == SortKey.CREATED:
            alerts.sort(key=lambda a: (-a.created_at.timestamp(), a.id))
        else:
            alerts.sort(key=lambda a: (a.symbol, a.id))

        return alerts

    def alert_ids_for_symbol(self, symbol: str, active_only: bool = True) -> List[str]:
        with self._lock:
            return sorted(
                a.id for a in self._alerts.values()
                if a.symbol == symbol and (a.is_active or not active_only)
            )

    def active_symbols(self) -> List[str]:
        with self._lock:
            return sorted({a.symbol for a in self._alerts.values() if a.is_active})

    def apply(self, alert_id: str, update: Callable[[Alert], T]) -> Optional[T]:
        """
        Run a state transition against the live alert under the registry lock.

        The update only runs if the alert still exists and is active, so an
        alert deleted or deactivated after evaluation began is never touched.
        """
        with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None or not alert.is_active:
                return None
            return update(alert)

    def restore(self, alerts: Iterable[Alert]) -> int:
        """Load previously persisted alerts, replacing any with the same id."""
        count = 0
        with self._lock:
            for alert in alerts:
                self._alerts[alert.id] = replace(alert)
                count += 1
        logger.info(f"Restored {count} alerts")
        return count

    def __len__(self) -> int:
        return len(self._alerts)
