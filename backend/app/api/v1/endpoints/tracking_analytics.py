"""
Tracking Analytics API Endpoints.

Admin dashboards over location, route and geofence data.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.schemas.tracking_analytics import TrackingAnalytics, DriverStatusBoard
from backend.app.core.guards import require_admin
from backend.app.services.tracking_analytics import TrackingAnalyticsService

router = APIRouter(prefix="/admin/tracking", tags=["Admin - Tracking Analytics"])


@router.get("/analytics", response_model=TrackingAnalytics)
async def get_tracking_analytics(
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Driver, location volume, route and geofence statistics."""
    return await TrackingAnalyticsService.get_tracking_analytics(db)


@router.get("/drivers", response_model=DriverStatusBoard)
async def get_driver_status_board(
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Every active driver classified online / idle / offline."""
    return await TrackingAnalyticsService.get_driver_status_board(db)
