"""
Location Tracking API Endpoints.

Drivers submit GPS samples (single or batch); drivers, admins and delivery
owners read history and current positions.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import ResourceNotFoundError
from backend.app.core.guards import OwnershipGuard, require_role
from backend.app.core.redis_client import get_redis
from backend.app.db.session import get_db
from backend.app.models.delivery import Delivery
from backend.app.models.enums import UserRole
from backend.app.schemas.location import (
    BatchLocationRequest, BatchLocationResponse, CurrentLocationResponse,
    DeliveryLocationResponse, LocationHistoryResponse, LocationResponse,
    LocationSubmitResponse, LocationUpdateRequest
)
from backend.app.services import location_store
from backend.app.services.geo import Coordinate, distance_meters
from backend.app.services.location_ingestion import LocationIngestionService

driver_router = APIRouter(prefix="/driver", tags=["Driver - Location"])
router = APIRouter(tags=["Location Tracking"])
ownership_guard = OwnershipGuard()


@driver_router.post("/location", response_model=LocationSubmitResponse)
async def submit_location(
    location: LocationUpdateRequest,
    current_user: dict = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """
    Submit the calling driver's current GPS position.
    
    Samples worse than the accuracy threshold are stored but come back
    with filtered=true and a reason.
    """
    return await LocationIngestionService.submit_single(db, redis, current_user, location)


@driver_router.post("/location/batch", response_model=BatchLocationResponse)
async def submit_location_batch(
    batch: BatchLocationRequest,
    response: Response,
    current_user: dict = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """
    Submit 1-100 buffered GPS samples.
    
    Status: 200 all stored, 207 partially stored, 400 none stored. The body
    itemises every failure by array index.
    """
    result = await LocationIngestionService.submit_batch(db, redis, current_user, batch)
    
    if result.failure_count and result.success_count:
        response.status_code = status.HTTP_207_MULTI_STATUS
    elif result.failure_count:
        response.status_code = status.HTTP_400_BAD_REQUEST
    
    return result


@router.get("/drivers/{driver_id}/location/history", response_model=LocationHistoryResponse)
async def get_location_history(
    driver_id: int = Path(..., description="Driver ID"),
    limit: int = Query(settings.location_history_default_limit, ge=1, le=settings.location_history_max_limit),
    from_time: Optional[datetime] = Query(None, alias="from"),
    to_time: Optional[datetime] = Query(None, alias="to"),
    current_user: dict = Depends(require_role([UserRole.DRIVER, UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """Samples for a driver, newest first (the driver itself or an admin)."""
    ownership_guard.enforce_driver(driver_id, current_user, "location history")
    
    samples = await location_store.history(db, driver_id, limit=limit, from_time=from_time, to_time=to_time)
    
    return LocationHistoryResponse(
        driver_id=driver_id,
        history=[LocationResponse.model_validate(s) for s in samples],
        count=len(samples)
    )


@router.get("/drivers/{driver_id}/location", response_model=CurrentLocationResponse)
async def get_driver_location(
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(require_role([UserRole.DRIVER, UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    ownership_guard.enforce_driver(driver_id, current_user, "driver location")
    
    current = await location_store.get_driver_current_location(db, driver_id)
    if not current:
        raise ResourceNotFoundError("Driver location", driver_id)
    
    return CurrentLocationResponse.model_validate(current)


@router.get("/deliveries/{delivery_id}/location", response_model=DeliveryLocationResponse)
async def get_delivery_location(
    delivery_id: int = Path(..., description="Delivery ID"),
    current_user: dict = Depends(require_role([UserRole.ADMIN, UserRole.DRIVER, UserRole.BUSINESS])),
    db: AsyncSession = Depends(get_db)
):
    """
    Live position of a delivery's driver plus distance to the drop-off.
    
    Visible to admins, the assigned driver and the owning business.
    """
    result = await db.execute(select(Delivery).where(Delivery.id == delivery_id))
    delivery = result.scalar_one_or_none()
    ownership_guard.enforce_delivery(delivery, current_user, allow_business=True)
    
    current = await location_store.get_delivery_current_location(db, delivery_id)
    if not current:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No location reported for this delivery yet"
        )
    
    destination = Coordinate(delivery.delivery_latitude, delivery.delivery_longitude)
    
    return DeliveryLocationResponse(
        delivery_id=delivery_id,
        driver_id=current.driver_id,
        status=delivery.status.value,
        latitude=current.latitude,
        longitude=current.longitude,
        accuracy=current.accuracy,
        heading=current.heading,
        speed=current.speed,
        updated_at=current.updated_at,
        distance_to_destination_meters=round(distance_meters(current, destination), 2)
    )
