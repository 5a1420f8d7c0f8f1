"""Binance spot ticker price provider implementation."""
import httpx
import json
import logging
import time
from typing import List, Optional
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log
)
from pricewatch.providers import QuoteProvider, ProviderError, UnknownSymbolError
from pricewatch.engine.models import Quote
from pricewatch.core.config import settings


logger = logging.getLogger(__name__)


class BinanceQuoteProvider(QuoteProvider):
    """Polls Binance's public ticker price endpoint."""
    
    def __init__(self, base_url: Optional[str] = None):
        self.base_url = (base_url or settings.binance_base_url).rstrip("/")
        self.client = httpx.AsyncClient(timeout=10.0)
    
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
        before_sleep=before_sleep_log(logger, logging.WARNING)
    )
    async def _make_request(self, url: str, params: dict):
        """Make HTTP request with retry logic for transient failures.
        
        Retries up to 3 times with exponential backoff for timeouts and
        connection errors. HTTP errors (4xx, 5xx) are not retried.
        """
        response = await self.client.get(url, params=params)
        response.raise_for_status()
        return response.json()
    
    async def get_prices(self, symbols: List[str]) -> List[Quote]:
        """
        Fetch latest prices for the given symbols.
        
        observed_at is the local receipt time in milliseconds, since the
        ticker endpoint carries no timestamp. Binance rejects the whole batch
        when any symbol is unknown; in that case each symbol is fetched on
        its own and the unknown ones are skipped.
        """
        if not symbols:
            return []
        
        unique = sorted(set(symbols))
        observed_at = int(time.time() * 1000)
        
        try:
            data = await self._fetch({"symbols": json.dumps(unique, separators=(",", ":"))})
        except UnknownSymbolError:
            if len(unique) == 1:
                raise
            logger.warning(f"Binance rejected batch of {len(unique)} symbols, fetching one by one")
            return await self._get_prices_individually(unique, observed_at)
        
        if not isinstance(data, list):
            raise ProviderError(f"Unexpected Binance response: {data!r}")
        
        return self._parse_prices(data, observed_at=observed_at)
    
    async def _get_prices_individually(self, symbols: List[str], observed_at: int) -> List[Quote]:
        quotes = []
        for symbol in symbols:
            try:
                data = await self._fetch({"symbol": symbol})
            except UnknownSymbolError:
                logger.warning(f"Binance does not list {symbol}, skipping")
                continue
            
            if not isinstance(data, dict):
                logger.warning(f"Unexpected Binance response for {symbol}: {data!r}")
                continue
            quotes.extend(self._parse_prices([data], observed_at=observed_at))
        
        return quotes
    
    async def _fetch(self, params: dict):
        """Call the ticker endpoint, mapping HTTP failures to ProviderError."""
        url = f"{self.base_url}/api/v3/ticker/price"
        
        try:
            return await self._make_request(url, params)
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 400:
                raise UnknownSymbolError(f"Binance rejected symbol list {params}: {e.response.text}")
            elif e.response.status_code in (418, 429):
                raise ProviderError(
                    f"Binance API rate limit exceeded ({e.response.status_code}). "
                    "Please wait before making more requests."
                )
            raise ProviderError(f"Binance API error: {str(e)}")
        except httpx.TimeoutException as e:
            raise ProviderError(f"Binance API timeout after retries: {str(e)}")
        except httpx.HTTPError as e:
            raise ProviderError(f"Binance API connection error: {str(e)}")
    
    def _parse_prices(self, results: List[dict], observed_at: int) -> List[Quote]:
        """Parse Binance ticker entries into Quote objects, skipping bad rows."""
        quotes = []
        
        for item in results:
            symbol = item.get("symbol")
            try:
                price = float(item.get("price"))
            except (TypeError, ValueError):
                logger.warning(f"Skipping ticker with invalid price: {item}")
                continue
            
            if not symbol or price <= 0:
                logger.warning(f"Skipping ticker entry: {item}")
                continue
            
            quotes.append(Quote(symbol=symbol, price=price, observed_at=observed_at))
        
        return quotes
    
    async def close(self):
        await self.client.aclose()
