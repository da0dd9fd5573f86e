"""
Admin Operations API Endpoints.

Maintenance jobs for the tracking data set and the audit trail.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.db.session import get_db
from backend.app.models.enums import UserRole
from backend.app.core.guards import require_role
from backend.app.services.audit import log_event, get_audit_trail, AuditAction
from backend.app.schemas.audit import AuditLogResponse, AuditTrailResponse
from backend.app.services.retention import archive_locations

router = APIRouter(prefix="/admin/ops", tags=["Admin - Ops"])


@router.post("/trigger-archival")
async def trigger_data_archival(
    days_to_keep: int = Query(settings.location_retention_days, ge=1),
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """
    Trigger archival of location samples older than N days.
    Moves data from hot table to archive table and drops expired geofence events.
    """
    result = await archive_locations(db, days_to_keep=days_to_keep)
    
    await log_event(
        db=db,
        action=AuditAction.LOCATION_DATA_ARCHIVED,
        actor_id=current_user["user_id"],
        actor_username=current_user.get("sub"),
        resource_type="driver_locations",
        metadata={
            "days_to_keep": days_to_keep,
            "rows_archived": result["rows_archived"],
            "geofence_events_deleted": result["geofence_events_deleted"]
        }
    )
    await db.commit()
    
    return {
        "message": "Archival job completed",
        "cutoff": result["cutoff"],
        "rows_archived": result["rows_archived"],
        "geofence_events_deleted": result["geofence_events_deleted"]
    }


@router.get("/audit-logs", response_model=AuditTrailResponse)
async def get_audit_logs(
    action: str = Query(None, description="Filter by action type"),
    resource_type: str = Query(None, description="Filter by resource kind"),
    limit: int = Query(100, ge=1, le=500),
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """Recent route, geofence and archival actions (admin-only)."""
    logs = await get_audit_trail(db, action=action, resource_type=resource_type, limit=limit)
    
    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )
