"""
Location store.

Append-only history of GPS samples plus the two "current location"
projections (per driver and per delivery/driver pair).

Functions flush but never commit; the caller owns the transaction.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import StoreFailureError
from backend.app.db.session import dialect_name
from backend.app.models.driver_location import DriverLocation
from backend.app.models.current_location import DriverCurrentLocation, DeliveryCurrentLocation
from backend.app.schemas.location import LocationPoint

logger = logging.getLogger(__name__)


def to_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize to naive UTC, the representation every timestamp column uses."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


async def record_sample(
    db: AsyncSession,
    driver_id: int,
    point: LocationPoint,
    delivery_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    is_filtered: bool = False
) -> DriverLocation:
    """
    Append one sample to the history.
    
    Returns:
        The flushed DriverLocation (id populated)
    
    Raises:
        StoreFailureError: If the insert fails
    """
    location = DriverLocation(
        driver_id=driver_id,
        delivery_id=delivery_id,
        latitude=point.latitude,
        longitude=point.longitude,
        accuracy=point.accuracy,
        altitude=point.altitude,
        altitude_accuracy=point.altitude_accuracy,
        heading=point.heading,
        speed=point.speed,
        is_filtered=is_filtered,
        meta_data=metadata or {},
        captured_at=to_utc_naive(point.timestamp),
        received_at=datetime.utcnow()
    )
    
    try:
        db.add(location)
        await db.flush()
    except SQLAlchemyError as e:
        raise StoreFailureError("record_sample", str(e)) from e
    
    return location


async def _upsert(db: AsyncSession, model, key_columns: List[str], values: Dict[str, Any]) -> None:
    """Atomic insert-or-update keyed on key_columns, using the dialect's native upsert."""
    dialect = dialect_name(db)
    
    if dialect in ("postgresql", "sqlite"):
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        else:
            from sqlalchemy.dialects.sqlite import insert
        
        stmt = insert(model).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=key_columns,
            set_={name: stmt.excluded[name] for name in values if name not in key_columns}
        )
        await db.execute(stmt)
        return
    
    # Fallback for dialects without ON CONFLICT
    filters = [getattr(model, name) == values[name] for name in key_columns]
    existing = (await db.execute(select(model).where(*filters))).scalar_one_or_none()
    if existing is None:
        db.add(model(**values))
    else:
        for name, value in values.items():
            setattr(existing, name, value)
    await db.flush()


async def update_current_location(db: AsyncSession, driver_id: int, location: DriverLocation) -> None:
    """
    Upsert the driver's current location, and the delivery's when the sample
    is tagged with one. Last write wins.
    
    Raises:
        StoreFailureError: If either upsert fails
    """
    values = {
        "latitude": location.latitude,
        "longitude": location.longitude,
        "accuracy": location.accuracy,
        "heading": location.heading,
        "speed": location.speed,
        "location_id": location.id,
        "updated_at": location.captured_at,
    }
    
    try:
        await _upsert(db, DriverCurrentLocation, ["driver_id"], {"driver_id": driver_id, **values})
        
        if location.delivery_id is not None:
            await _upsert(
                db,
                DeliveryCurrentLocation,
                ["delivery_id", "driver_id"],
                {"delivery_id": location.delivery_id, "driver_id": driver_id, **values}
            )
    except SQLAlchemyError as e:
        raise StoreFailureError("update_current_location", str(e)) from e


async def history(
    db: AsyncSession,
    driver_id: int,
    limit: int = None,
    from_time: Optional[datetime] = None,
    to_time: Optional[datetime] = None
) -> List[DriverLocation]:
    """
    Samples for a driver, newest captured_at first.
    
    from_time and to_time are inclusive and each optional. No cursor is kept:
    callers needing more than `limit` rows request a narrower time slice.
    """
    limit = limit or settings.location_history_default_limit
    
    stmt = select(DriverLocation).where(DriverLocation.driver_id == driver_id)
    if from_time is not None:
        stmt = stmt.where(DriverLocation.captured_at >= to_utc_naive(from_time))
    if to_time is not None:
        stmt = stmt.where(DriverLocation.captured_at <= to_utc_naive(to_time))
    
    stmt = stmt.order_by(DriverLocation.captured_at.desc(), DriverLocation.id.desc()).limit(limit)
    
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_driver_current_location(db: AsyncSession, driver_id: int) -> Optional[DriverCurrentLocation]:
    result = await db.execute(
        select(DriverCurrentLocation)
        .where(DriverCurrentLocation.driver_id == driver_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_delivery_current_location(db: AsyncSession, delivery_id: int) -> Optional[DeliveryCurrentLocation]:
    """Most recently updated position for a delivery, across drivers."""
    result = await db.execute(
        select(DeliveryCurrentLocation)
        .where(DeliveryCurrentLocation.delivery_id == delivery_id)
        .order_by(DeliveryCurrentLocation.updated_at.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()
