"""
Location Ingestion Service.

Pipeline for accepted GPS samples:
record sample -> update current location -> geofence evaluation -> broadcast.

Recording is the only step whose failure fails the request. Geofence
evaluation runs in a savepoint and broadcast is fire-and-forget; both
report problems as warnings on the response.
"""

import logging
from typing import List, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import InsufficientPermissionsError, StoreFailureError
from backend.app.core.guards import can_access_delivery
from backend.app.models.delivery import Delivery
from backend.app.models.driver_location import DriverLocation
from backend.app.schemas.location import (
    BatchItemFailure, BatchLocationRequest, BatchLocationResponse,
    LocationPoint, LocationSubmitResponse, LocationUpdateRequest
)
from backend.app.services import location_store
from backend.app.services.broadcast import LocationBroadcaster
from backend.app.services.geofence_engine import GeofenceEngine

logger = logging.getLogger(__name__)

LOW_ACCURACY_REASON = "GPS accuracy too low ({accuracy}m > {threshold}m threshold)"


def accuracy_filter_reason(point: LocationPoint) -> Optional[str]:
    """Reason a sample is flagged as filtered, or None if it is usable."""
    threshold = settings.gps_accuracy_threshold_meters
    if point.accuracy is not None and point.accuracy > threshold:
        return LOW_ACCURACY_REASON.format(accuracy=point.accuracy, threshold=threshold)
    return None


def _format_validation_error(error: ValidationError) -> Tuple[str, list]:
    errors = error.errors(include_url=False, include_context=False)
    reason = "; ".join(
        f"{'.'.join(str(p) for p in e['loc']) or 'item'}: {e['msg']}" for e in errors
    )
    return reason, [{"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]} for e in errors]


class LocationIngestionService:

    @staticmethod
    async def authorize_delivery(db: AsyncSession, delivery_id: Optional[int], current_user: dict) -> None:
        """
        Samples may only be tagged with a delivery assigned to the submitting driver.
        
        Raises:
            InsufficientPermissionsError: unknown delivery or not the driver's
        """
        if delivery_id is None:
            return
        
        result = await db.execute(select(Delivery).where(Delivery.id == delivery_id))
        delivery = result.scalar_one_or_none()
        
        if delivery is None or not can_access_delivery(delivery, current_user):
            raise InsufficientPermissionsError(
                "Insufficient permissions for this delivery",
                details={"delivery_id": delivery_id}
            )

    @staticmethod
    async def _evaluate_geofences(
        db: AsyncSession,
        location: DriverLocation,
        warnings: List[str]
    ) -> List[int]:
        try:
            async with db.begin_nested():
                events = await GeofenceEngine.evaluate(db, location.delivery_id, location)
        except Exception as e:
            logger.warning("Geofence evaluation failed for location %s: %s", location.id, e)
            warnings.append(f"Geofence evaluation failed for location {location.id}")
            return []
        return [event.id for event in events]

    @staticmethod
    async def _broadcast(broadcaster: LocationBroadcaster, location: DriverLocation, warnings: List[str]) -> None:
        if settings.broadcast_enabled and not await broadcaster.publish_location(location):
            warnings.append(f"Real-time broadcast unavailable for location {location.id}")

    @staticmethod
    async def submit_single(
        db: AsyncSession,
        redis,
        current_user: dict,
        request: LocationUpdateRequest
    ) -> LocationSubmitResponse:
        """
        Record one sample for the calling driver.
        
        Low-accuracy samples are stored with is_filtered=True and skip every
        downstream step.
        
        Raises:
            InsufficientPermissionsError: delivery_id is not the caller's
            StoreFailureError: the sample or projection could not be written
        """
        driver_id = current_user["user_id"]
        await LocationIngestionService.authorize_delivery(db, request.delivery_id, current_user)
        
        reason = accuracy_filter_reason(request)
        location = await location_store.record_sample(
            db,
            driver_id,
            request,
            delivery_id=request.delivery_id,
            metadata=request.metadata,
            is_filtered=reason is not None
        )
        
        warnings = []
        event_ids = []
        if reason is None:
            await location_store.update_current_location(db, driver_id, location)
            if location.delivery_id is not None:
                event_ids = await LocationIngestionService._evaluate_geofences(db, location, warnings)
        else:
            logger.info("Location %s from driver %s filtered: %s", location.id, driver_id, reason)
        
        await db.commit()
        
        if reason is None:
            await LocationIngestionService._broadcast(LocationBroadcaster(redis), location, warnings)
        
        return LocationSubmitResponse(
            location_id=location.id,
            filtered=reason is not None,
            reason=reason,
            geofence_events=event_ids,
            warnings=warnings,
            received_at=location.received_at
        )

    @staticmethod
    async def submit_batch(
        db: AsyncSession,
        redis,
        current_user: dict,
        request: BatchLocationRequest
    ) -> BatchLocationResponse:
        """
        Record up to `location_batch_max_size` samples sharing delivery_id and metadata.
        
        Every item is validated and written in its own savepoint, so one bad
        item never takes down its siblings. Of the stored unfiltered samples,
        the one with the greatest captured_at (later array position on ties)
        becomes the current location; geofences see them in captured_at order.
        
        Raises:
            InsufficientPermissionsError: delivery_id is not the caller's (nothing written)
        """
        driver_id = current_user["user_id"]
        await LocationIngestionService.authorize_delivery(db, request.delivery_id, current_user)
        
        location_ids = []
        filtered_ids = []
        failures = []
        warnings = []
        accepted: List[Tuple[int, DriverLocation]] = []
        
        for index, item in enumerate(request.locations):
            try:
                point = LocationPoint.model_validate(item)
            except ValidationError as e:
                reason, errors = _format_validation_error(e)
                failures.append(BatchItemFailure(index=index, reason=reason, errors=errors))
                continue
            
            filter_reason = accuracy_filter_reason(point)
            metadata = {**(request.metadata or {}), **(point.metadata or {})}
            
            try:
                async with db.begin_nested():
                    location = await location_store.record_sample(
                        db,
                        driver_id,
                        point,
                        delivery_id=request.delivery_id,
                        metadata=metadata,
                        is_filtered=filter_reason is not None
                    )
            except StoreFailureError as e:
                logger.warning("Batch item %d for driver %s not stored: %s", index, driver_id, e.details)
                failures.append(BatchItemFailure(index=index, reason=e.message))
                continue
            
            location_ids.append(location.id)
            if filter_reason is None:
                accepted.append((index, location))
            else:
                filtered_ids.append(location.id)
        
        latest = None
        if accepted:
            ordered = sorted(accepted, key=lambda pair: (pair[1].captured_at, pair[0]))
            latest = ordered[-1][1]
            
            try:
                async with db.begin_nested():
                    await location_store.update_current_location(db, driver_id, latest)
            except StoreFailureError as e:
                logger.warning("Current location for driver %s not updated: %s", driver_id, e.details)
                warnings.append("Current location could not be updated")
                latest = None
            
            if request.delivery_id is not None:
                for _, location in ordered:
                    await LocationIngestionService._evaluate_geofences(db, location, warnings)
        
        await db.commit()
        
        if latest is not None:
            await LocationIngestionService._broadcast(LocationBroadcaster(redis), latest, warnings)
        
        logger.info(
            "Batch from driver %s: %d stored, %d failed, %d filtered",
            driver_id, len(location_ids), len(failures), len(filtered_ids)
        )
        
        return BatchLocationResponse(
            processed_count=len(request.locations),
            success_count=len(location_ids),
            failure_count=len(failures),
            location_ids=location_ids,
            filtered_ids=filtered_ids,
            failures=failures,
            warnings=warnings
        )
