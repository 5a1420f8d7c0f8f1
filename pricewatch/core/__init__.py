"""Core package initialization."""
from pricewatch.core.config import settings
from pricewatch.core.database import Base, get_db, init_db
from pricewatch.core.redis import get_redis, close_redis

__all__ = ["settings", "Base", "get_db", "init_db", "get_redis", "close_redis"]
