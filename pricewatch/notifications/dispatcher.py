"""Notification dispatcher for delivering trigger events to channels."""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from pricewatch.core.config import Settings
from pricewatch.engine.errors import DeliveryFailure
from pricewatch.engine.models import TriggerEvent
from pricewatch.notifications import DeliveryResult, NotificationChannel
from pricewatch.notifications.formatting import format_test_message, format_trigger_message
from pricewatch.notifications.queue import EventQueue

logger = logging.getLogger(__name__)


Journal = Callable[[TriggerEvent], Awaitable[None]]


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, DeliveryFailure) and exc.retryable


def build_channels(settings: Settings) -> List[NotificationChannel]:
    """Create a channel for every notification target present in settings."""
    channels: List[NotificationChannel] = []

    if settings.discord_webhook_url:
        from pricewatch.notifications.discord import DiscordWebhookChannel
        channels.append(DiscordWebhookChannel(
            settings.discord_webhook_url,
            timeout=settings.notification_timeout_seconds
        ))

    if settings.telegram_enabled:
        from pricewatch.notifications.telegram import TelegramChannel
        channels.append(TelegramChannel(settings.telegram_bot_token, settings.telegram_chat_id))

    logger.info(f"Notification channels configured: {[c.name for c in channels] or 'none'}")
    return channels


class NotificationDispatcher:
    """
    Consumes trigger events and forwards them to every configured channel.

    Delivery is decoupled from the scheduler by an EventQueue. Transient
    failures are retried with bounded exponential backoff; exhausted or
    permanent failures are logged and counted. A failed delivery never
    re-enqueues the event and never touches alert state.
    """

    def __init__(
        self,
        channels: List[NotificationChannel],
        queue: Optional[EventQueue] = None,
        max_attempts: int = 3,
        backoff_multiplier: float = 1.0,
        backoff_min: float = 1.0,
        backoff_max: float = 10.0,
        journal: Optional[Journal] = None
    ):
        self.channels = channels
        self.queue = queue
        self.max_attempts = max_attempts
        self.backoff_multiplier = backoff_multiplier
        self.backoff_min = backoff_min
        self.backoff_max = backoff_max
        self.journal = journal
        self._running = False
        self._stats = {
            "events": 0,
            "delivered": 0,
            "failed": 0,
            "journal_errors": 0,
        }

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        queue: Optional[EventQueue] = None,
        journal: Optional[Journal] = None
    ) -> "NotificationDispatcher":
        return cls(
            channels=build_channels(settings),
            queue=queue,
            max_attempts=settings.notification_max_attempts,
            backoff_multiplier=settings.notification_backoff_multiplier,
            backoff_min=settings.notification_backoff_min,
            backoff_max=settings.notification_backoff_max,
            journal=journal,
        )

    def get_channel(self, name: str) -> Optional[NotificationChannel]:
        for channel in self.channels:
            if channel.name == name:
                return channel
        return None

    async def dispatch(self, event: TriggerEvent) -> List[DeliveryResult]:
        """
        Deliver one trigger event to all channels.

        Args:
            event: TriggerEvent to deliver

        Returns:
            One DeliveryResult per channel
        """
        self._stats["events"] += 1

        if self.journal is not None:
            try:
                await self.journal(event)
            except Exception as e:
                self._stats["journal_errors"] += 1
                logger.error(f"Failed to journal trigger for alert {event.alert_id}: {e}", exc_info=True)

        if not self.channels:
            logger.debug(f"No notification channels configured, trigger {event.alert_id} not delivered")
            return []

        text = format_trigger_message(event)
        return list(await asyncio.gather(
            *(self._deliver(channel, text, event.alert_id) for channel in self.channels)
        ))

    async def send_test(self, channel_name: str) -> Optional[DeliveryResult]:
        """Send a test message to one channel. Returns None if it is not configured."""
        channel = self.get_channel(channel_name)
        if channel is None:
            return None
        return await self._deliver(channel, format_test_message(channel_name))

    async def _deliver(
        self,
        channel: NotificationChannel,
        text: str,
        alert_id: Optional[str] = None
    ) -> DeliveryResult:
        attempts = 0
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(
                    multiplier=self.backoff_multiplier,
                    min=self.backoff_min,
                    max=self.backoff_max
                ),
                retry=retry_if_exception(_is_retryable),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True
            ):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    await channel.send(text)
        except Exception as e:
            self._stats["failed"] += 1
            logger.error(
                f"Delivery to {channel.name} failed after {attempts} attempt(s)"
                f" (alert={alert_id}): {e}"
            )
            return DeliveryResult(
                channel=channel.name,
                delivered=False,
                attempts=attempts,
                alert_id=alert_id,
                error=str(e)
            )

        self._stats["delivered"] += 1
        logger.info(f"Delivered alert {alert_id} to {channel.name} (attempts={attempts})")
        return DeliveryResult(channel=channel.name, delivered=True, attempts=attempts, alert_id=alert_id)

    async def run(self):
        """Run dispatcher loop, processing trigger events from the queue."""
        if self.queue is None:
            raise RuntimeError("NotificationDispatcher.run() requires a queue")

        logger.info("Notification dispatcher started")
        self._running = True

        while self._running:
            try:
                event = await self.queue.get(timeout=1.0)
                if event is not None:
                    await self.dispatch(event)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Dispatcher error: {e}", exc_info=True)
                await asyncio.sleep(1)

        logger.info("Notification dispatcher stopped")

    def stop(self):
        self._running = False

    async def close(self):
        """Cleanup resources."""
        for channel in self.channels:
            try:
                await channel.close()
            except Exception as e:
                logger.warning(f"Error closing {channel.name} channel: {e}")

    def stats(self) -> Dict[str, int]:
        return dict(self._stats)
