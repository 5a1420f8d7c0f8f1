"""Latest-quote cache keyed by symbol."""
import logging
import threading
from typing import Dict, List, Optional

from pricewatch.engine.models import CacheUpdate, ObservedAt, Quote

logger = logging.getLogger(__name__)


class QuoteCache:
    """
    Holds the most recent quote per symbol.
    
    A tick is accepted only when its `observed_at` is strictly greater than
    the cached one, so a multiplexed feed delivering out of order cannot move
    the price backwards. The cache never evaluates alerts itself.
    """
    
    def __init__(self):
        self._quotes: Dict[str, Quote] = {}
        self._lock = threading.Lock()
        self.stale_count = 0
    
    def update(self, symbol: str, price: float, observed_at: ObservedAt) -> CacheUpdate:
        """Store a tick unless it is older than (or as old as) the cached one."""
        with self._lock:
            current = self._quotes.get(symbol)
            if current is not None and observed_at <= current.observed_at:
                self.stale_count += 1
                logger.debug(
                    f"Dropped stale tick for {symbol}: observed_at={observed_at} "
                    f"<= cached {current.observed_at}"
                )
                return CacheUpdate(accepted=False, reason="stale")
            
            self._quotes[symbol] = Quote(symbol=symbol, price=price, observed_at=observed_at)
            return CacheUpdate(accepted=True)
    
    def get(self, symbol: str) -> Optional[float]:
        """Latest price for a symbol, or None if never seen."""
        quote = self._quotes.get(symbol)
        return quote.price if quote else None
    
    def get_quote(self, symbol: str) -> Optional[Quote]:
        return self._quotes.get(symbol)
    
    def symbols(self) -> List[str]:
        return sorted(self._quotes)
    
    def snapshot(self) -> List[Quote]:
        """All cached quotes ordered by symbol."""
        with self._lock:
            return [self._quotes[symbol] for symbol in sorted(self._quotes)]
    
    def __len__(self) -> int:
        return len(self._quotes)
