"""
Geofence Engine.

Per-geofence two-state machine (outside / inside). Every sample tagged with
a delivery is tested against that delivery's active geofences; an event is
written only when containment flips, never on every contained sample.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import ValidationFailureError
from backend.app.models.enums import GeofenceEventType, GeofenceType
from backend.app.models.driver_location import DriverLocation
from backend.app.models.geofence import Geofence
from backend.app.models.geofence_event import GeofenceEvent
from backend.app.models.geofence_state import GeofenceState
from backend.app.schemas.geofence import GeofenceCreate
from backend.app.services.geo import Coordinate, distance_meters

logger = logging.getLogger(__name__)


def _center(geofence: Geofence) -> Coordinate:
    return Coordinate(geofence.center_latitude, geofence.center_longitude)


def _transition(was_inside: bool, is_inside: bool) -> Optional[GeofenceEventType]:
    if is_inside and not was_inside:
        return GeofenceEventType.ENTER
    if was_inside and not is_inside:
        return GeofenceEventType.EXIT
    return None


class GeofenceEngine:

    @staticmethod
    async def create_geofence(
        db: AsyncSession,
        delivery_id: int,
        data: GeofenceCreate,
        created_by: int
    ) -> Geofence:
        """
        Validate and persist a geofence. Overlap with sibling geofences is allowed.
        
        Raises:
            ValidationFailureError: radius out of (0, max] or unknown type
        """
        if not 0 < data.radius <= settings.geofence_max_radius_meters:
            raise ValidationFailureError(
                f"Geofence radius must be within (0, {settings.geofence_max_radius_meters}] meters",
                details={"field": "radius", "value": data.radius}
            )
        try:
            fence_type = GeofenceType(data.type)
        except ValueError:
            raise ValidationFailureError(
                "Unknown geofence type",
                details={"field": "type", "value": data.type}
            )
        
        geofence = Geofence(
            delivery_id=delivery_id,
            center_latitude=data.latitude,
            center_longitude=data.longitude,
            radius_meters=data.radius,
            type=fence_type,
            is_active=True,
            meta_data=data.metadata or {},
            created_by=created_by
        )
        db.add(geofence)
        await db.flush()
        
        return geofence

    @staticmethod
    async def get_active_geofences(db: AsyncSession, delivery_id: int) -> List[Geofence]:
        result = await db.execute(
            select(Geofence).where(
                Geofence.delivery_id == delivery_id,
                Geofence.is_active == True
            ).order_by(Geofence.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def evaluate(db: AsyncSession, delivery_id: int, location: DriverLocation) -> List[GeofenceEvent]:
        """
        Run one sample through every active geofence of the delivery.
        
        Returns:
            Events written for this sample (empty when nothing changed)
        """
        geofences = await GeofenceEngine.get_active_geofences(db, delivery_id)
        events = []
        
        for geofence in geofences:
            distance = distance_meters(location, _center(geofence))
            is_inside = distance <= geofence.radius_meters
            
            state = await db.get(GeofenceState, geofence.id)
            was_inside = state.is_inside if state else False
            
            event_type = _transition(was_inside, is_inside)
            if event_type:
                event = GeofenceEvent(
                    delivery_id=delivery_id,
                    geofence_id=geofence.id,
                    driver_id=location.driver_id,
                    location_id=location.id,
                    event_type=event_type,
                    latitude=location.latitude,
                    longitude=location.longitude,
                    distance_meters=round(distance, 2),
                    meta_data=location.meta_data or {},
                    occurred_at=location.captured_at
                )
                db.add(event)
                events.append(event)
                logger.info(
                    "Geofence %s %s by driver %s (delivery %s, %.1fm from center)",
                    geofence.id, event_type.value, location.driver_id, delivery_id, distance
                )
            
            if state is None:
                db.add(GeofenceState(
                    geofence_id=geofence.id,
                    delivery_id=delivery_id,
                    is_inside=is_inside,
                    last_location_id=location.id,
                    updated_at=datetime.utcnow()
                ))
            else:
                state.is_inside = is_inside
                state.last_location_id = location.id
                state.updated_at = datetime.utcnow()
        
        await db.flush()
        return events

    @staticmethod
    async def check(db: AsyncSession, geofence: Geofence, point) -> dict:
        """
        Answer what a sample at `point` would do to the geofence without
        writing anything.
        """
        distance = distance_meters(point, _center(geofence))
        is_inside = distance <= geofence.radius_meters
        
        state = await db.get(GeofenceState, geofence.id)
        was_inside = state.is_inside if state else False
        event_type = _transition(was_inside, is_inside) if geofence.is_active else None
        
        return {
            "geofence_id": geofence.id,
            "inside_geofence": is_inside,
            "distance_meters": round(distance, 2),
            "currently_inside": was_inside,
            "event_triggered": event_type.value if event_type else None,
        }

    @staticmethod
    async def deactivate(db: AsyncSession, geofence: Geofence) -> Geofence:
        geofence.is_active = False
        await db.flush()
        return geofence

    @staticmethod
    async def list_geofences(db: AsyncSession, delivery_id: int, include_inactive: bool = False) -> List[Geofence]:
        stmt = select(Geofence).where(Geofence.delivery_id == delivery_id)
        if not include_inactive:
            stmt = stmt.where(Geofence.is_active == True)
        result = await db.execute(stmt.order_by(Geofence.id))
        return list(result.scalars().all())

    @staticmethod
    async def list_events(db: AsyncSession, delivery_id: int, limit: int = 100) -> List[GeofenceEvent]:
        result = await db.execute(
            select(GeofenceEvent)
            .where(GeofenceEvent.delivery_id == delivery_id)
            .order_by(GeofenceEvent.occurred_at.desc(), GeofenceEvent.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
