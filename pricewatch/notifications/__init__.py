"""Abstract interface for notification delivery channels."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of delivering one message to one channel."""
    channel: str
    delivered: bool
    attempts: int
    alert_id: Optional[str] = None
    error: Optional[str] = None


class NotificationChannel(ABC):
    """Abstract base class for notification channels (Discord, Telegram, ...)."""
    
    name: str = "channel"
    
    @abstractmethod
    async def send(self, text: str) -> None:
        """
        Deliver a text message.
        
        Args:
            text: Formatted message body
            
        Raises:
            DeliveryFailure: If delivery fails; `retryable` tells the
                dispatcher whether another attempt may succeed
        """
        pass
    
    async def close(self) -> None:
        """Release any underlying client resources."""
        pass
