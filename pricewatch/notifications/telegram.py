"""Telegram bot notification channel."""
import logging
from typing import Optional

from telegram import Bot
from telegram.error import BadRequest, Forbidden, InvalidToken, NetworkError, TelegramError

from pricewatch.engine.errors import DeliveryFailure
from pricewatch.notifications import NotificationChannel

logger = logging.getLogger(__name__)


class TelegramChannel(NotificationChannel):
    """Sends messages to a Telegram chat through a bot."""
    
    name = "telegram"
    
    def __init__(self, bot_token: str, chat_id: str, bot: Optional[Bot] = None):
        self.chat_id = chat_id
        self.bot = bot or Bot(token=bot_token)
    
    async def send(self, text: str) -> None:
        """Send a message, mapping Telegram errors to DeliveryFailure."""
        try:
            await self.bot.send_message(chat_id=self.chat_id, text=text)
        except (BadRequest, Forbidden, InvalidToken) as e:
            # Wrong chat id, bot blocked or bad token: retrying cannot help
            raise DeliveryFailure(f"Telegram rejected message: {e}", retryable=False)
        except NetworkError as e:
            raise DeliveryFailure(f"Telegram network error: {e}")
        except TelegramError as e:
            # Includes RetryAfter (flood control)
            raise DeliveryFailure(f"Telegram error: {e}")
    
    async def close(self) -> None:
        await self.bot.shutdown()
