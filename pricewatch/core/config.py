"""Core configuration management using Pydantic settings."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import model_validator, field_validator
from typing import Optional, List


# Valid log levels
VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

# Supported trigger event queue backends
VALID_QUEUE_BACKENDS = ['memory', 'redis']


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )
    
    # Database
    database_url: str = "sqlite+aiosqlite:///./data/pricewatch.db"
    
    # Redis (redis_url should contain full connection string including port)
    redis_url: str = "redis://localhost:6379/0"
    
    # Trigger event queue between the scheduler and the dispatcher
    event_queue_backend: str = "memory"
    event_queue_name: str = "trigger_queue"
    
    # Notification channels (optional, a channel is enabled when configured)
    discord_webhook_url: Optional[str] = None
    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None
    
    # Delivery retry policy
    notification_max_attempts: int = 3
    notification_backoff_multiplier: float = 1.0
    notification_backoff_min: float = 1.0
    notification_backoff_max: float = 10.0
    notification_timeout_seconds: float = 10.0
    
    # Market data feed
    feed_enabled: bool = False
    feed_poll_seconds: int = 5
    feed_symbols: str = "BTCUSDT,ETHUSDT,ADAUSDT,SOLUSDT,DOTUSDT"  # Always polled, comma-separated
    binance_base_url: str = "https://api.binance.com"
    
    # Active alerts above this proximity count as "high proximity" in summaries
    high_proximity_threshold: float = 80.0
    
    # Logging
    log_level: str = "INFO"
    
    # API Configuration
    backend_port: int = 8000
    
    # CORS Configuration
    cors_origins: str = "http://localhost:3000"  # Comma-separated list of allowed origins
    
    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        upper_v = v.upper()
        if upper_v not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {VALID_LOG_LEVELS}")
        return upper_v
    
    @field_validator('event_queue_backend')
    @classmethod
    def validate_queue_backend(cls, v: str) -> str:
        """Validate the event queue backend name."""
        lower_v = v.lower()
        if lower_v not in VALID_QUEUE_BACKENDS:
            raise ValueError(f"event_queue_backend must be one of {VALID_QUEUE_BACKENDS}")
        return lower_v
    
    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string to list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]
    
    @property
    def feed_symbols_list(self) -> List[str]:
        """Parse feed symbols from comma-separated string to upper-case list."""
        return [s.strip().upper() for s in self.feed_symbols.split(",") if s.strip()]
    
    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)
    
    @model_validator(mode='after')
    def validate_config(self) -> 'Settings':
        """Validate configuration after all fields are set."""
        if self.notification_max_attempts < 1:
            raise ValueError("notification_max_attempts must be at least 1")
        if self.notification_backoff_min > self.notification_backoff_max:
            raise ValueError("notification_backoff_min cannot exceed notification_backoff_max")
        if self.feed_poll_seconds < 1:
            raise ValueError("feed_poll_seconds must be at least 1")
        # Telegram needs both halves of its configuration
        if bool(self.telegram_bot_token) != bool(self.telegram_chat_id):
            raise ValueError("telegram_bot_token and telegram_chat_id must be set together")
        return self


# Global settings instance
settings = Settings()
