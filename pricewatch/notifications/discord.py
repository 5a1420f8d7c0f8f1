"""Discord webhook notification channel."""
import logging
from typing import Optional

import httpx

from pricewatch.engine.errors import DeliveryFailure
from pricewatch.notifications import NotificationChannel

logger = logging.getLogger(__name__)


# Discord rejects message content longer than this
MAX_CONTENT_LENGTH = 2000


class DiscordWebhookChannel(NotificationChannel):
    """Posts messages to a Discord channel webhook."""
    
    name = "discord"
    
    def __init__(self, webhook_url: str, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.webhook_url = webhook_url
        self.client = client or httpx.AsyncClient(timeout=timeout)
    
    async def send(self, text: str) -> None:
        """Post a message to the webhook, mapping failures to DeliveryFailure."""
        payload = {"content": text[:MAX_CONTENT_LENGTH]}
        
        try:
            response = await self.client.post(self.webhook_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            # Rate limits and server errors are worth another attempt
            retryable = status_code == 429 or status_code >= 500
            raise DeliveryFailure(f"Discord webhook returned {status_code}", retryable=retryable)
        except (httpx.TimeoutException, httpx.TransportError) as e:
            raise DeliveryFailure(f"Discord webhook connection error: {str(e)}")
    
    async def close(self) -> None:
        await self.client.aclose()
