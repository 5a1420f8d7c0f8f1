"""Data models for alerts, quotes and trigger events."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union
import uuid


ObservedAt = Union[int, float]


class Direction(str, Enum):
    """Side of the target an alert waits for."""
    ABOVE = "above"
    BELOW = "below"


class ArmState(str, Enum):
    """Trigger state of an alert."""
    ARMED = "armed"
    TRIGGERED_ONESHOT = "triggered_oneshot"  # terminal
    TRIGGERED_RECURRING_WAITING_REARM = "triggered_waiting_rearm"


class Side(str, Enum):
    """Where a price sits relative to a target."""
    BELOW = "below"
    AT = "at"
    ABOVE = "above"


class StatusFilter(str, Enum):
    """Active/inactive filter for alert listings."""
    ALL = "all"
    ACTIVE = "active"
    INACTIVE = "inactive"


class SortKey(str, Enum):
    """Orderings supported by alert listings."""
    PROXIMITY = "proximity"  # proximity desc
    CREATED = "created"  # created_at desc
    SYMBOL = "symbol"  # symbol asc


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_alert_id() -> str:
    return uuid.uuid4().hex


def side_of(price: float, target: float) -> Side:
    """Classify a price against a target."""
    if price > target:
        return Side.ABOVE
    if price < target:
        return Side.BELOW
    return Side.AT


@dataclass(frozen=True)
class AlertSpec:
    """User input for creating an alert."""
    symbol: str
    target_price: float
    direction: Union[Direction, str]
    is_recurring: bool = False
    reference_price: Optional[float] = None


@dataclass
class Alert:
    """
    A price alert owned by the alert registry.
    
    `reference_price` is the price observed at creation and anchors the
    proximity scale. `last_side` is the side of target seen on the last
    evaluation and is what crossing detection compares against.
    """
    id: str
    symbol: str
    target_price: float
    direction: Direction
    reference_price: float
    is_recurring: bool = False
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    last_triggered_at: Optional[datetime] = None
    arm_state: ArmState = ArmState.ARMED
    last_side: Optional[Side] = None
    trigger_count: int = 0
    
    @property
    def is_terminal(self) -> bool:
        return self.arm_state == ArmState.TRIGGERED_ONESHOT
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "target_price": self.target_price,
            "direction": self.direction.value,
            "reference_price": self.reference_price,
            "is_recurring": self.is_recurring,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat(),
            "last_triggered_at": self.last_triggered_at.isoformat() if self.last_triggered_at else None,
            "arm_state": self.arm_state.value,
            "last_side": self.last_side.value if self.last_side else None,
            "trigger_count": self.trigger_count,
        }


@dataclass(frozen=True)
class Quote:
    """Latest known price for a symbol."""
    symbol: str
    price: float
    observed_at: ObservedAt


@dataclass(frozen=True)
class CacheUpdate:
    """Outcome of a quote cache update."""
    accepted: bool
    reason: str = "accepted"  # "accepted" or "stale"


@dataclass(frozen=True)
class TriggerEvent:
    """Immutable record of an alert crossing its target."""
    alert_id: str
    symbol: str
    target_price: float
    trigger_price: float
    direction: Direction
    triggered_at: datetime
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "alert_id": self.alert_id,
            "symbol": self.symbol,
            "target_price": self.target_price,
            "trigger_price": self.trigger_price,
            "direction": self.direction.value,
            "triggered_at": self.triggered_at.isoformat(),
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TriggerEvent":
        return cls(
            alert_id=data["alert_id"],
            symbol=data["symbol"],
            target_price=float(data["target_price"]),
            trigger_price=float(data["trigger_price"]),
            direction=Direction(data["direction"]),
            triggered_at=datetime.fromisoformat(data["triggered_at"]),
        )
