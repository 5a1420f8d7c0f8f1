"""Quote API routes."""
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from typing import Optional, Union
import time

from pricewatch.api.deps import get_engine
from pricewatch.engine.registry import normalize_symbol
from pricewatch.engine.runtime import AlertEngine

router = APIRouter(prefix="/api/quotes", tags=["quotes"])


class TickRequest(BaseModel):
    """A manually submitted price tick."""
    symbol: str
    price: float
    observed_at: Optional[Union[int, float, str]] = None


@router.get("")
async def list_quotes(engine: AlertEngine = Depends(get_engine)):
    """Latest cached quote for every symbol."""
    return [
        {"symbol": quote.symbol, "price": quote.price, "observed_at": quote.observed_at}
        for quote in engine.cache.snapshot()
    ]


@router.get("/{symbol}")
async def get_quote(symbol: str, engine: AlertEngine = Depends(get_engine)):
    """Latest cached quote for one symbol."""
    quote = engine.cache.get_quote(normalize_symbol(symbol))
    if quote is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No quote for {symbol.upper()}")
    return {"symbol": quote.symbol, "price": quote.price, "observed_at": quote.observed_at}


@router.post("")
async def submit_tick(request: TickRequest, engine: AlertEngine = Depends(get_engine)):
    """
    Ingest a price tick.
    
    observed_at defaults to the current time in milliseconds. Stale or
    invalid ticks are reported, not rejected with an error status.
    """
    observed_at = request.observed_at if request.observed_at is not None else int(time.time() * 1000)
    result = await engine.ingestor.ingest(request.symbol, request.price, observed_at)
    
    return {
        "accepted": result.accepted,
        "reason": result.reason,
        "symbol": result.symbol,
        "triggers": [event.to_dict() for event in result.events]
    }
