"""FastAPI application hosting the alert engine."""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pricewatch.core.config import settings
from pricewatch.core.database import AsyncSessionLocal, init_db
from pricewatch.core.redis import close_redis
from pricewatch.engine.models import Alert, TriggerEvent
from pricewatch.engine.runtime import AlertEngine
from pricewatch.notifications.dispatcher import NotificationDispatcher
from pricewatch.notifications.queue import create_event_queue
from pricewatch.services import AlertStore
import asyncio
import logging
import time
import sys

# Import routers
from pricewatch.api.routes import alerts, quotes, notifications, health

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Pricewatch Alert Engine API", version="1.0.0")


def make_alert_persister(engine: AlertEngine):
    """Save an alert snapshot unless the alert has been deleted meanwhile."""

    async def persist(alert: Alert):
        async with AsyncSessionLocal() as db:
            await AlertStore.save_alert(db, alert, is_current=engine.has_alert)

    return persist


async def journal_trigger(event: TriggerEvent):
    """Append a delivered trigger to the history."""
    async with AsyncSessionLocal() as db:
        await AlertStore.record_trigger(db, event)


@app.on_event("startup")
async def startup_event():
    """Initialize engine, dispatcher and feed on startup."""
    logger.info("Application starting up...")

    await init_db()

    queue = await create_event_queue(settings)
    engine = AlertEngine(queue=queue, high_proximity_threshold=settings.high_proximity_threshold)
    engine.persist_alert = make_alert_persister(engine)

    async with AsyncSessionLocal() as db:
        engine.registry.restore(await AlertStore.load_alerts(db))

    dispatcher = NotificationDispatcher.from_settings(settings, queue=queue, journal=journal_trigger)
    app.state.engine = engine
    app.state.dispatcher = dispatcher
    app.state.dispatcher_task = None
    app.state.feed_worker = None

    # With the Redis backend a separate dispatcher_worker consumes the queue
    if settings.event_queue_backend == "memory":
        app.state.dispatcher_task = asyncio.create_task(dispatcher.run())

    if settings.feed_enabled:
        from pricewatch.workers.feed_worker import FeedWorker
        feed_worker = FeedWorker(engine)
        feed_worker.start()
        app.state.feed_worker = feed_worker
    else:
        logger.info("Market data feed disabled (FEED_ENABLED=false); ticks accepted via POST /api/quotes")

    logger.info("Application startup complete")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop workers and flush alert state."""
    logger.info("Application shutting down...")

    feed_worker = getattr(app.state, "feed_worker", None)
    if feed_worker is not None:
        await feed_worker.shutdown()

    dispatcher = getattr(app.state, "dispatcher", None)
    task = getattr(app.state, "dispatcher_task", None)
    if dispatcher is not None:
        dispatcher.stop()
    if task is not None:
        try:
            await asyncio.wait_for(task, timeout=5)
        except asyncio.TimeoutError:
            task.cancel()

    engine = getattr(app.state, "engine", None)
    if engine is not None:
        async with AsyncSessionLocal() as db:
            for alert in engine.registry.list():
                await AlertStore.save_alert(db, alert, is_current=engine.has_alert)
        logger.info(f"Flushed {len(engine.registry)} alerts to the store")

    if dispatcher is not None:
        await dispatcher.close()
    await close_redis()


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests and responses."""
    start_time = time.time()

    logger.info(f"→ {request.method} {request.url.path}")
    logger.debug(f"  Query params: {dict(request.query_params)}")

    try:
        response = await call_next(request)
        process_time = time.time() - start_time

        logger.info(f"← {request.method} {request.url.path} - Status: {response.status_code} - Time: {process_time:.3f}s")

        return response
    except Exception as e:
        process_time = time.time() - start_time
        logger.error(f"← {request.method} {request.url.path} - ERROR after {process_time:.3f}s: {str(e)}")
        raise


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions."""
    logger.error(f"Unhandled exception in {request.method} {request.url.path}: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error": str(exc) if settings.log_level == "DEBUG" else "Internal server error"
        }
    )

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(alerts.router)
app.include_router(quotes.router)
app.include_router(notifications.router)
app.include_router(health.router)


@app.get("/")
async def root():
    """Service banner."""
    return {"status": "ok", "service": "pricewatch-api"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.backend_port)
