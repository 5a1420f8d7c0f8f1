"""Abstract interface for market data quote providers."""
from abc import ABC, abstractmethod
from typing import List
from pricewatch.engine.models import Quote


class QuoteProvider(ABC):
    """Abstract base class for market data providers."""
    
    @abstractmethod
    async def get_prices(self, symbols: List[str]) -> List[Quote]:
        """
        Fetch the latest price for each symbol.
        
        Args:
            symbols: Instrument symbols (e.g. BTCUSDT)
            
        Returns:
            One Quote per symbol the provider knows about
            
        Raises:
            ProviderError: If API call fails
        """
        pass
    
    async def close(self) -> None:
        pass


class ProviderError(Exception):
    """Exception raised when provider API fails."""
    pass


class UnknownSymbolError(ProviderError):
    """Raised when the provider rejects a request because of a symbol it doesn't list."""
    pass
