"""
Geofence API Endpoints.

Circular regions attached to a delivery. Geofences are created, listed and
deactivated here; enter/exit events are produced by location ingestion.
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.models.delivery import Delivery
from backend.app.models.enums import UserRole
from backend.app.models.geofence import Geofence
from backend.app.schemas.geofence import (
    GeofenceCheckRequest, GeofenceCheckResponse, GeofenceCreate,
    GeofenceCreateResponse, GeofenceEventListResponse, GeofenceEventResponse,
    GeofenceResponse
)
from backend.app.core.exceptions import ResourceNotFoundError, ValidationFailureError
from backend.app.core.guards import require_role, OwnershipGuard
from backend.app.services.audit import log_event, AuditAction
from backend.app.services.geofence_engine import GeofenceEngine
from typing import List

router = APIRouter(tags=["Geofences"])
ownership_guard = OwnershipGuard()

ALL_ROLES = [UserRole.ADMIN, UserRole.DRIVER, UserRole.BUSINESS]


async def _get_delivery(db: AsyncSession, delivery_id: int, current_user: dict) -> Delivery:
    result = await db.execute(select(Delivery).where(Delivery.id == delivery_id))
    delivery = result.scalar_one_or_none()
    ownership_guard.enforce_delivery(delivery, current_user, allow_business=True)
    return delivery


async def _get_geofence(db: AsyncSession, geofence_id: int, current_user: dict) -> Geofence:
    geofence = await db.get(Geofence, geofence_id)
    if not geofence:
        raise ResourceNotFoundError("Geofence", geofence_id)
    await _get_delivery(db, geofence.delivery_id, current_user)
    return geofence


@router.post(
    "/deliveries/{delivery_id}/geofences",
    response_model=GeofenceCreateResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_geofence(
    data: GeofenceCreate,
    delivery_id: int = Path(..., description="Delivery ID"),
    current_user: dict = Depends(require_role(ALL_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a geofence for a delivery.
    
    Allowed for admins, the assigned driver and the owning business.
    Overlapping geofences on the same delivery are permitted.
    """
    if data.delivery_id is not None and data.delivery_id != delivery_id:
        raise ValidationFailureError(
            "delivery_id in body does not match the path",
            details={"path": delivery_id, "body": data.delivery_id}
        )
    
    await _get_delivery(db, delivery_id, current_user)
    
    geofence = await GeofenceEngine.create_geofence(db, delivery_id, data, current_user["user_id"])
    
    await log_event(
        db=db,
        action=AuditAction.GEOFENCE_CREATED,
        actor_id=current_user["user_id"],
        actor_username=current_user.get("sub"),
        resource_type="geofence",
        resource_id=geofence.id,
        metadata={
            "delivery_id": delivery_id,
            "type": geofence.type.value,
            "radius_meters": geofence.radius_meters
        }
    )
    await db.commit()
    
    return GeofenceCreateResponse(geofence_id=geofence.id, message="Geofence created successfully")


@router.get("/deliveries/{delivery_id}/geofences", response_model=List[GeofenceResponse])
async def list_geofences(
    delivery_id: int = Path(..., description="Delivery ID"),
    include_inactive: bool = Query(False),
    current_user: dict = Depends(require_role(ALL_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    await _get_delivery(db, delivery_id, current_user)
    geofences = await GeofenceEngine.list_geofences(db, delivery_id, include_inactive)
    return [GeofenceResponse.model_validate(g) for g in geofences]


@router.get("/deliveries/{delivery_id}/geofence-events", response_model=GeofenceEventListResponse)
async def list_geofence_events(
    delivery_id: int = Path(..., description="Delivery ID"),
    limit: int = Query(100, ge=1, le=1000),
    current_user: dict = Depends(require_role(ALL_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Enter/exit transitions for a delivery, newest first."""
    await _get_delivery(db, delivery_id, current_user)
    events = await GeofenceEngine.list_events(db, delivery_id, limit)
    return GeofenceEventListResponse(
        delivery_id=delivery_id,
        events=[GeofenceEventResponse.model_validate(e) for e in events],
        count=len(events)
    )


@router.post("/geofences/{geofence_id}/deactivate", response_model=GeofenceResponse)
async def deactivate_geofence(
    geofence_id: int = Path(..., description="Geofence ID"),
    current_user: dict = Depends(require_role(ALL_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Stop evaluating a geofence. Its past events are kept."""
    geofence = await _get_geofence(db, geofence_id, current_user)
    
    if not geofence.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Geofence is already inactive"
        )
    
    await GeofenceEngine.deactivate(db, geofence)
    
    await log_event(
        db=db,
        action=AuditAction.GEOFENCE_DEACTIVATED,
        actor_id=current_user["user_id"],
        actor_username=current_user.get("sub"),
        resource_type="geofence",
        resource_id=geofence.id,
        metadata={"delivery_id": geofence.delivery_id}
    )
    await db.commit()
    
    return GeofenceResponse.model_validate(geofence)


@router.post("/geofences/{geofence_id}/check", response_model=GeofenceCheckResponse)
async def check_geofence(
    point: GeofenceCheckRequest,
    geofence_id: int = Path(..., description="Geofence ID"),
    current_user: dict = Depends(require_role(ALL_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """
    Dry run: would a sample at this point be inside, and which event would
    it trigger? Nothing is written.
    """
    geofence = await _get_geofence(db, geofence_id, current_user)
    return GeofenceCheckResponse(**await GeofenceEngine.check(db, geofence, point))
