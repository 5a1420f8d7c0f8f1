"""Alert management API routes."""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import logging

from pricewatch.api.deps import get_engine
from pricewatch.core.database import get_db
from pricewatch.engine.errors import InvalidSpec, InvalidTransition
from pricewatch.engine.models import AlertSpec, SortKey, StatusFilter
from pricewatch.engine.runtime import AlertEngine
from pricewatch.services.alert_store import AlertStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/alerts", tags=["alerts"])


class CreateAlertRequest(BaseModel):
    """Request to create a price alert."""
    symbol: str
    target_price: float
    direction: str  # "above" or "below", checked by the registry
    is_recurring: bool = False
    reference_price: Optional[float] = None


class SetActiveRequest(BaseModel):
    """Request to activate or deactivate an alert."""
    is_active: bool


class AlertSummaryResponse(BaseModel):
    """Counts for the alerts overview."""
    total: int
    active: int
    recurring: int
    high_proximity: int


class TriggerEventResponse(BaseModel):
    """A recorded trigger event."""
    alert_id: str
    symbol: str
    target_price: float
    trigger_price: float
    direction: str
    triggered_at: str


@router.get("")
async def list_alerts(
    search: Optional[str] = None,
    status_filter: StatusFilter = Query(StatusFilter.ALL, alias="status"),
    sort: SortKey = SortKey.PROXIMITY,
    engine: AlertEngine = Depends(get_engine)
):
    """
    List alerts with live proximity.

    Filter by symbol substring and status; sort by proximity (desc),
    creation time (desc) or symbol (asc).
    """
    alerts = engine.list_alerts(search=search, status=status_filter, sort=sort)
    return [engine.describe(alert) for alert in alerts]


@router.get("/summary", response_model=AlertSummaryResponse)
async def get_summary(engine: AlertEngine = Depends(get_engine)):
    """Total, active, recurring and high-proximity alert counts."""
    return engine.summary()


@router.get("/history", response_model=List[TriggerEventResponse])
async def get_history(
    symbol: Optional[str] = None,
    alert_id: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db)
):
    """Recent trigger events, newest first."""
    records = await AlertStore.get_trigger_history(db, symbol=symbol, alert_id=alert_id, limit=limit)

    return [
        {
            "alert_id": record.alert_id,
            "symbol": record.symbol,
            "target_price": record.target_price,
            "trigger_price": record.trigger_price,
            "direction": record.direction,
            "triggered_at": record.triggered_at.isoformat()
        }
        for record in records
    ]


@router.get("/{alert_id}")
async def get_alert(alert_id: str, engine: AlertEngine = Depends(get_engine)):
    """Get a single alert."""
    alert = engine.get_alert(alert_id)
    if alert is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Alert {alert_id} not found")
    return engine.describe(alert)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_alert(
    request: CreateAlertRequest,
    engine: AlertEngine = Depends(get_engine),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a price alert.

    The reference price defaults to the latest cached quote for the symbol;
    creation fails with 400 if neither is available.
    """
    spec = AlertSpec(
        symbol=request.symbol,
        target_price=request.target_price,
        direction=request.direction,
        is_recurring=request.is_recurring,
        reference_price=request.reference_price
    )

    try:
        alert = engine.create_alert(spec)
    except InvalidSpec as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    await AlertStore.save_alert(db, alert, is_current=engine.has_alert)

    return {
        **engine.describe(alert),
        "message": f"Alert for {alert.symbol} created"
    }


@router.delete("/{alert_id}", status_code=status.HTTP_200_OK)
async def delete_alert(
    alert_id: str,
    engine: AlertEngine = Depends(get_engine),
    db: AsyncSession = Depends(get_db)
):
    """Delete an alert. Its trigger history is kept."""
    if not engine.delete_alert(alert_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Alert {alert_id} not found")

    await AlertStore.delete_alert(db, alert_id)

    return {
        "message": f"Alert {alert_id} deleted"
    }


@router.patch("/{alert_id}/active")
async def set_alert_active(
    alert_id: str,
    request: SetActiveRequest,
    engine: AlertEngine = Depends(get_engine),
    db: AsyncSession = Depends(get_db)
):
    """Activate or deactivate an alert."""
    try:
        alert = engine.set_active(alert_id, request.is_active)
    except InvalidTransition as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    if alert is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Alert {alert_id} not found")

    await AlertStore.save_alert(db, alert, is_current=engine.has_alert)

    return engine.describe(alert)
