"""Notification channel API routes."""
from fastapi import APIRouter, Depends, HTTPException, status

from pricewatch.api.deps import get_dispatcher
from pricewatch.notifications.dispatcher import NotificationDispatcher

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("/channels")
async def list_channels(dispatcher: NotificationDispatcher = Depends(get_dispatcher)):
    """Names of the configured delivery channels."""
    return {"channels": [channel.name for channel in dispatcher.channels]}


@router.post("/test/{channel}")
async def send_test_notification(
    channel: str,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    """
    Send a test message through one channel.
    
    Returns 404 if the channel is not configured and 502 if delivery
    failed after retries.
    """
    result = await dispatcher.send_test(channel.lower())
    
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Notification channel '{channel}' is not configured"
        )
    
    if not result.delivered:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Test notification failed after {result.attempts} attempt(s): {result.error}"
        )
    
    return {
        "channel": result.channel,
        "delivered": result.delivered,
        "attempts": result.attempts,
        "message": f"Test notification sent to {result.channel}"
    }
