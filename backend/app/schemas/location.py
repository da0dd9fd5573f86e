"""
Location ingestion and history schemas.
"""

from pydantic import AliasChoices, BaseModel, Field
from datetime import datetime
from typing import Any, Dict, List, Optional

from backend.app.core.config import settings


class LocationPoint(BaseModel):
    """One GPS fix as reported by the device."""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: Optional[float] = Field(None, ge=0)  # meters
    altitude: Optional[float] = None
    altitude_accuracy: Optional[float] = Field(None, ge=0)
    heading: Optional[float] = Field(None, ge=0, lt=360)
    speed: Optional[float] = Field(None, ge=0)  # m/s
    timestamp: datetime  # ISO-8601 or epoch (seconds or milliseconds)
    metadata: Optional[Dict[str, Any]] = None


class LocationUpdateRequest(LocationPoint):
    """Schema for a single location submission."""
    delivery_id: Optional[int] = None


class BatchLocationRequest(BaseModel):
    """
    Schema for batch submission.
    
    Items are kept loose here and validated one by one so a bad item fails
    alone instead of rejecting the batch.
    """
    delivery_id: Optional[int] = None
    locations: List[Dict[str, Any]] = Field(
        ..., min_length=1, max_length=settings.location_batch_max_size
    )
    metadata: Optional[Dict[str, Any]] = None


class LocationSubmitResponse(BaseModel):
    """Response after recording a single location."""
    location_id: int
    filtered: bool = False
    reason: Optional[str] = None
    geofence_events: List[int] = []
    warnings: List[str] = []
    received_at: datetime


class BatchItemFailure(BaseModel):
    """One rejected batch item."""
    index: int
    reason: str
    errors: List[Dict[str, Any]] = []


class BatchLocationResponse(BaseModel):
    """Itemised outcome of a batch submission."""
    processed_count: int
    success_count: int
    failure_count: int
    location_ids: List[int]
    filtered_ids: List[int] = []
    failures: List[BatchItemFailure] = []
    warnings: List[str] = []


class LocationResponse(BaseModel):
    """Stored GPS sample."""
    id: int
    driver_id: int
    delivery_id: Optional[int]
    latitude: float
    longitude: float
    accuracy: Optional[float]
    altitude: Optional[float]
    altitude_accuracy: Optional[float]
    heading: Optional[float]
    speed: Optional[float]
    is_filtered: bool
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias=AliasChoices("meta_data", "metadata"))
    captured_at: datetime
    received_at: datetime
    
    class Config:
        from_attributes = True


class LocationHistoryResponse(BaseModel):
    driver_id: int
    history: List[LocationResponse]
    count: int


class CurrentLocationResponse(BaseModel):
    """Latest known position of a driver."""
    driver_id: int
    latitude: float
    longitude: float
    accuracy: Optional[float]
    heading: Optional[float]
    speed: Optional[float]
    updated_at: datetime
    
    class Config:
        from_attributes = True


class DeliveryLocationResponse(BaseModel):
    """Customer-facing tracking view of an active delivery."""
    delivery_id: int
    driver_id: int
    status: str
    latitude: float
    longitude: float
    accuracy: Optional[float]
    heading: Optional[float]
    speed: Optional[float]
    updated_at: datetime
    distance_to_destination_meters: float
