"""
Audit logging service for operator-visible tracking actions.

Entries are written in the caller's transaction so the audit row commits
(or rolls back) together with the change it describes.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from backend.app.models.audit_log import AuditLog


class AuditAction:
    """Standardized audit action constants."""
    ROUTE_OPTIMIZED = "ROUTE_OPTIMIZED"
    
    GEOFENCE_CREATED = "GEOFENCE_CREATED"
    GEOFENCE_DEACTIVATED = "GEOFENCE_DEACTIVATED"
    
    LOCATION_DATA_ARCHIVED = "LOCATION_DATA_ARCHIVED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_username: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Add an audit entry to the current session.
    
    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action
        actor_username: Username of actor
        resource_type: Kind of record touched ("route", "geofence", ...)
        resource_id: ID of the record touched
        metadata: Additional context as JSON
        
    Returns:
        Pending AuditLog instance (flushed, not committed)
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_username=actor_username,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        meta_data=metadata
    )
    
    db.add(audit_log)
    await db.flush()
    
    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """Most recent audit entries, optionally filtered."""
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))
    
    if action:
        query = query.where(AuditLog.action == action)
    
    if resource_type:
        query = query.where(AuditLog.resource_type == resource_type)
    
    result = await db.execute(query.limit(limit))
    return result.scalars().all()
