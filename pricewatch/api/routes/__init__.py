"""API routes package initialization."""
from pricewatch.api.routes import alerts, quotes, notifications, health

__all__ = ["alerts", "quotes", "notifications", "health"]
