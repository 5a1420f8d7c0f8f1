"""FastAPI dependencies for the running engine and dispatcher."""
from fastapi import HTTPException, Request, status
from pricewatch.engine.runtime import AlertEngine
from pricewatch.notifications.dispatcher import NotificationDispatcher


def get_engine(request: Request) -> AlertEngine:
    """Alert engine created at application startup."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Engine not started")
    return engine


def get_dispatcher(request: Request) -> NotificationDispatcher:
    """Notification dispatcher created at application startup."""
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Dispatcher not started")
    return dispatcher
