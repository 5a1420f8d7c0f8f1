"""Proximity of a price to an alert target.

proximity = clamp(100 * (1 - distance / span), 0, 100)

where distance = |target - current| and span = |target - reference|, the
reference being the price observed when the alert was created. The scale is
anchored at creation so the value rises monotonically as price approaches
target and reaches 100 exactly at the target. A price that has gone through
the target (further from the reference than the target is) stays at 100.
It is informational only; crossing detection lives in the trigger scheduler.
"""
from typing import Optional

from pricewatch.engine.models import Alert


# Band thresholds used by the dashboard cards
NEAR_THRESHOLD = 90.0
APPROACHING_THRESHOLD = 70.0


def proximity(target_price: float, reference_price: float, current_price: float) -> float:
    """
    Compute proximity of a price to a target on a 0-100 scale.
    
    Args:
        target_price: Alert target
        reference_price: Price observed at alert creation
        current_price: Latest price
        
    Returns:
        Proximity percentage in [0, 100]
    """
    span = abs(target_price - reference_price)
    if span == 0:
        return 100.0
    
    # Overshoot past the target, on the far side from the reference
    if (reference_price < target_price <= current_price) or (reference_price > target_price >= current_price):
        return 100.0
    
    distance = abs(target_price - current_price)
    value = 100.0 * (1.0 - distance / span)
    return max(0.0, min(100.0, value))


def alert_proximity(alert: Alert, current_price: Optional[float]) -> Optional[float]:
    """Proximity for an alert, or None when no price is known."""
    if current_price is None:
        return None
    return proximity(alert.target_price, alert.reference_price, current_price)


def distance_pct(target_price: float, current_price: float) -> float:
    """Distance to target as a percentage of the current price."""
    if current_price <= 0:
        raise ValueError("current_price must be positive")
    return abs(target_price - current_price) / current_price * 100.0


def proximity_band(value: Optional[float]) -> Optional[str]:
    """Bucket a proximity value into near / approaching / far."""
    if value is None:
        return None
    if value >= NEAR_THRESHOLD:
        return "near"
    if value >= APPROACHING_THRESHOLD:
        return "approaching"
    return "far"
