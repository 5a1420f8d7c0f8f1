"""Health check endpoints for API, engine and database monitoring."""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from pricewatch.api.deps import get_engine
from pricewatch.core.database import get_db
from pricewatch.engine.runtime import AlertEngine
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "pricewatch-api"}


@router.get("/health/engine")
async def check_engine_health(request: Request, engine: AlertEngine = Depends(get_engine)):
    """
    Engine counters: alerts, cached symbols, stale and invalid ticks,
    triggers, dispatcher deliveries and queue depth.
    """
    dispatcher = getattr(request.app.state, "dispatcher", None)
    queue_size = await engine.queue.size() if engine.queue is not None else None
    
    return {
        "status": "healthy",
        "engine": engine.stats(),
        "dispatcher": dispatcher.stats() if dispatcher else None,
        "queue_size": queue_size
    }


@router.get("/health/db")
async def check_database_health(db: AsyncSession = Depends(get_db)):
    """Database connectivity check."""
    try:
        await db.execute(text("SELECT 1"))
        return {"status": "healthy"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        return {
            "status": "unhealthy",
            "error": str(e),
            "error_type": type(e).__name__
        }
