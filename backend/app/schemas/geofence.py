"""
Geofence schemas.
"""

from pydantic import AliasChoices, BaseModel, Field
from datetime import datetime
from typing import Any, Dict, List, Optional

from backend.app.core.config import settings
from backend.app.models.enums import GeofenceEventType, GeofenceType


class GeofenceCreate(BaseModel):
    """Schema for creating a geofence on a delivery."""
    delivery_id: Optional[int] = None  # Must match the path when given
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    radius: float = Field(..., ge=1, le=settings.geofence_max_radius_meters)
    type: GeofenceType
    metadata: Optional[Dict[str, Any]] = None


class GeofenceCreateResponse(BaseModel):
    geofence_id: int
    message: str


class GeofenceResponse(BaseModel):
    id: int
    delivery_id: int
    center_latitude: float
    center_longitude: float
    radius_meters: float
    type: GeofenceType
    is_active: bool
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias=AliasChoices("meta_data", "metadata"))
    created_by: int
    created_at: datetime
    
    class Config:
        from_attributes = True


class GeofenceEventResponse(BaseModel):
    id: int
    delivery_id: int
    geofence_id: int
    driver_id: Optional[int]
    event_type: GeofenceEventType
    latitude: float
    longitude: float
    distance_meters: Optional[float]
    occurred_at: datetime
    
    class Config:
        from_attributes = True


class GeofenceEventListResponse(BaseModel):
    delivery_id: int
    events: List[GeofenceEventResponse]
    count: int


class GeofenceCheckRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: Optional[float] = Field(None, ge=0)


class GeofenceCheckResponse(BaseModel):
    """Containment answer for a hypothetical sample. Nothing is written."""
    geofence_id: int
    inside_geofence: bool
    distance_meters: float
    currently_inside: bool
    event_triggered: Optional[str]
