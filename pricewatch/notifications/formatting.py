"""Notification message formatting utilities."""
from pricewatch.engine.models import Direction, TriggerEvent


def format_price(price: float) -> str:
    """Format a price with 2 to 8 decimals, trimming trailing zeros past the cents."""
    text = f"{price:,.8f}".rstrip("0")
    whole, _, decimals = text.partition(".")
    return f"{whole}.{decimals.ljust(2, '0')}"


def format_trigger_message(event: TriggerEvent) -> str:
    """
    Format a trigger event into a chat message.
    
    Args:
        event: TriggerEvent produced by the scheduler
        
    Returns:
        Formatted message string
    """
    arrow = "📈" if event.direction == Direction.ABOVE else "📉"
    side = "above" if event.direction == Direction.ABOVE else "below"
    
    message = f"""
🚨 Price Alert: {event.symbol}

{arrow} Price moved {side} target
🎯 Target: ${format_price(event.target_price)}
💰 Trigger Price: ${format_price(event.trigger_price)}

🕐 Triggered: {event.triggered_at.strftime('%Y-%m-%d %H:%M:%S UTC')}
🆔 Alert: {event.alert_id}
    """.strip()
    
    return message


def format_test_message(channel: str) -> str:
    """Message sent when a user tests a notification channel."""
    return f"✅ Test notification from pricewatch ({channel}). Alerts will be delivered here."
