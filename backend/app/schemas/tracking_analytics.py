"""
Tracking Analytics Schemas.
"""

from pydantic import BaseModel
from typing import Dict, List, Optional
from datetime import datetime


class DriverTrackingStats(BaseModel):
    total_tracked: int
    online: int
    offline: int


class HourlyLocationVolume(BaseModel):
    hour: str  # ISO hour bucket, e.g. 2024-05-01T13:00:00
    count: int


class LocationVolumeStats(BaseModel):
    total_last_24h: int
    tracked_drivers: int
    hourly_updates: List[HourlyLocationVolume]


class RouteStats(BaseModel):
    total_routes: int
    avg_distance_meters: float
    avg_duration_seconds: float
    avg_optimization_score: float


class GeofenceStats(BaseModel):
    total_active: int
    deliveries_covered: int
    by_type: Dict[str, int]


class TrackingAnalytics(BaseModel):
    """Operational dashboard payload for admins."""
    drivers: DriverTrackingStats
    locations: LocationVolumeStats
    routes: RouteStats
    geofences: GeofenceStats
    generated_at: datetime


class DriverStatusEntry(BaseModel):
    driver_id: int
    username: str
    status: str  # online / idle / offline
    latitude: Optional[float]
    longitude: Optional[float]
    speed: Optional[float]
    heading: Optional[float]
    updated_at: Optional[datetime]


class DriverStatusBoard(BaseModel):
    drivers: List[DriverStatusEntry]
    counts: Dict[str, int]
    generated_at: datetime
