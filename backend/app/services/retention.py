"""
Location data retention.

Moves samples older than the retention window from the hot
`driver_locations` table to `archived_driver_locations`, and purges
geofence events older than the same cut-off.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, delete, insert
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.models.archived_driver_location import ArchivedDriverLocation
from backend.app.models.driver_location import DriverLocation
from backend.app.models.geofence_event import GeofenceEvent

logger = logging.getLogger(__name__)


async def archive_locations(
    db: AsyncSession,
    days_to_keep: Optional[int] = None,
    batch_size: Optional[int] = None
) -> dict:
    """
    Archive old samples batch by batch and delete expired geofence events.
    
    Each batch is committed on its own so a long run never holds one huge
    transaction.
    """
    days_to_keep = settings.location_retention_days if days_to_keep is None else days_to_keep
    batch_size = batch_size or settings.archival_batch_size
    cutoff_date = datetime.utcnow() - timedelta(days=days_to_keep)
    
    rows_archived = 0
    while True:
        stmt = (
            select(DriverLocation)
            .where(DriverLocation.captured_at < cutoff_date)
            .order_by(DriverLocation.id)
            .limit(batch_size)
        )
        rows_to_archive = (await db.execute(stmt)).scalars().all()
        if not rows_to_archive:
            break
        
        archived_at = datetime.utcnow()
        archive_data = [
            {
                "original_id": r.id,
                "driver_id": r.driver_id,
                "delivery_id": r.delivery_id,
                "latitude": r.latitude,
                "longitude": r.longitude,
                "accuracy": r.accuracy,
                "altitude": r.altitude,
                "altitude_accuracy": r.altitude_accuracy,
                "heading": r.heading,
                "speed": r.speed,
                "is_filtered": r.is_filtered,
                "meta_data": r.meta_data,
                "captured_at": r.captured_at,
                "received_at": r.received_at,
                "archived_at": archived_at
            }
            for r in rows_to_archive
        ]
        await db.execute(insert(ArchivedDriverLocation), archive_data)
        
        ids_to_delete = [r.id for r in rows_to_archive]
        await db.execute(delete(DriverLocation).where(DriverLocation.id.in_(ids_to_delete)))
        await db.commit()
        
        rows_archived += len(rows_to_archive)
        if len(rows_to_archive) < batch_size:
            break
    
    result = await db.execute(delete(GeofenceEvent).where(GeofenceEvent.occurred_at < cutoff_date))
    events_deleted = result.rowcount or 0
    await db.commit()
    
    logger.info(
        "Archived %d location samples and purged %d geofence events older than %s",
        rows_archived, events_deleted, cutoff_date.isoformat()
    )
    
    return {
        "cutoff": cutoff_date,
        "rows_archived": rows_archived,
        "geofence_events_deleted": events_deleted
    }
