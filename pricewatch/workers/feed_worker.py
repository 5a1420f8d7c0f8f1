"""Feed worker polling a quote provider on a fixed cadence."""
import logging
from typing import List, Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from pricewatch.core.config import settings
from pricewatch.engine.runtime import AlertEngine
from pricewatch.providers import QuoteProvider, ProviderError

logger = logging.getLogger(__name__)


class FeedWorker:
    """Polls prices for watched symbols and feeds them to the ingestor."""
    
    def __init__(
        self,
        engine: AlertEngine,
        provider: Optional[QuoteProvider] = None,
        poll_seconds: Optional[int] = None,
        watch_symbols: Optional[List[str]] = None
    ):
        if provider is None:
            from pricewatch.providers.binance import BinanceQuoteProvider
            provider = BinanceQuoteProvider()
        self.engine = engine
        self.provider = provider
        self.poll_seconds = poll_seconds or settings.feed_poll_seconds
        self.watch_symbols = watch_symbols if watch_symbols is not None else settings.feed_symbols_list
        self.scheduler = AsyncIOScheduler()
    
    def symbols_to_poll(self) -> List[str]:
        """Configured watch list plus every symbol with an active alert."""
        return sorted(set(self.watch_symbols) | set(self.engine.registry.active_symbols()))
    
    async def poll_once(self) -> int:
        """
        Fetch one round of prices and ingest them.
        
        Returns:
            Number of quotes ingested
        """
        symbols = self.symbols_to_poll()
        if not symbols:
            logger.debug("No symbols to poll")
            return 0
        
        try:
            quotes = await self.provider.get_prices(symbols)
        except ProviderError as e:
            logger.error(f"Quote provider error: {e}")
            return 0
        except Exception as e:
            logger.error(f"Unexpected error polling quotes: {e}", exc_info=True)
            return 0
        
        events = await self.engine.ingestor.ingest_many(
            [(quote.symbol, quote.price, quote.observed_at) for quote in quotes]
        )
        
        if events:
            logger.info(f"Polled {len(quotes)} quotes, {len(events)} alert(s) triggered")
        else:
            logger.debug(f"Polled {len(quotes)} quotes")
        return len(quotes)
    
    def start(self):
        """Start the polling job."""
        logger.info(f"Starting feed worker: every {self.poll_seconds}s, watching {self.watch_symbols}")
        
        self.scheduler.add_job(
            self.poll_once,
            trigger=IntervalTrigger(seconds=self.poll_seconds),
            id="poll_quotes",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        
        self.scheduler.start()
        logger.info("Feed worker started")
    
    async def shutdown(self):
        """Stop polling and release the provider."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        await self.provider.close()
        logger.info("Feed worker stopped")
