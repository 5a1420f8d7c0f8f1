"""Unit tests for Quote Routes."""
import pytest
from fastapi import status, HTTPException

from pricewatch.api.routes.quotes import TickRequest, get_quote, list_quotes, submit_tick
from tests.conftest import make_spec


@pytest.mark.unit
@pytest.mark.asyncio
class TestQuoteRoutes:
    """Test tick submission and quote lookup."""
    
    async def test_submit_tick_triggers(self, engine, event_queue):
        """✅ Crossing tick → accepted with trigger details."""
        alert = engine.create_alert(make_spec())
        
        response = await submit_tick(
            TickRequest(symbol="btcusdt", price=45010.5, observed_at=1), engine=engine
        )
        
        assert response["accepted"] is True
        assert response["symbol"] == "BTCUSDT"
        assert response["triggers"][0]["alert_id"] == alert.id
        assert response["triggers"][0]["trigger_price"] == 45010.5
        assert await event_queue.size() == 1
    
    async def test_submit_stale_tick(self, engine):
        """✅ Older tick reported as stale, not an error."""
        await submit_tick(TickRequest(symbol="BTCUSDT", price=44000.0, observed_at=10), engine=engine)
        
        response = await submit_tick(TickRequest(symbol="BTCUSDT", price=43000.0, observed_at=5), engine=engine)
        
        assert response["accepted"] is False
        assert response["reason"] == "stale"
        assert engine.cache.get("BTCUSDT") == 44000.0
    
    async def test_submit_default_timestamp(self, engine):
        """✅ Missing observed_at defaults to now."""
        response = await submit_tick(TickRequest(symbol="ETHUSDT", price=2500.0), engine=engine)
        
        assert response["accepted"] is True
        assert engine.cache.get_quote("ETHUSDT").observed_at > 1_600_000_000_000
    
    async def test_submit_invalid_price(self, engine):
        """✅ Non-positive price reported as invalid."""
        response = await submit_tick(TickRequest(symbol="ETHUSDT", price=-3.0, observed_at=1), engine=engine)
        
        assert response["accepted"] is False
        assert response["reason"] == "invalid"
    
    async def test_list_and_get(self, engine):
        """✅ Cached quotes listed by symbol and fetched case-insensitively."""
        await engine.ingestor.ingest("SOLUSDT", 100.0, 1)
        await engine.ingestor.ingest("ADAUSDT", 0.5, 1)
        
        quotes = await list_quotes(engine=engine)
        quote = await get_quote("adausdt", engine=engine)
        
        assert [q["symbol"] for q in quotes] == ["ADAUSDT", "SOLUSDT"]
        assert quote["price"] == 0.5
    
    async def test_get_unknown(self, engine):
        """❌ No quote → 404."""
        with pytest.raises(HTTPException) as exc_info:
            await get_quote("NOPE", engine=engine)
        
        assert exc_info.value.status_code == status.HTTP_404_NOT_FOUND
