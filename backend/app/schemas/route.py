"""
Route optimization schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

from backend.app.core.config import settings
from backend.app.models.enums import VehicleType, OptimizationType


class StartLocation(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    timestamp: Optional[datetime] = None


class RouteOptimizationRequest(BaseModel):
    """Schema for a route optimization request."""
    delivery_ids: List[int] = Field(..., min_length=1, max_length=settings.route_max_deliveries)
    start_location: Optional[StartLocation] = None
    vehicle_type: VehicleType = VehicleType.CAR
    optimization_type: OptimizationType = OptimizationType.TIME
    max_stops: int = Field(10, ge=1, le=settings.route_max_deliveries)


class RoutePoint(BaseModel):
    latitude: float
    longitude: float


class RouteWaypoint(BaseModel):
    delivery_id: int
    latitude: float
    longitude: float
    address: Optional[str]
    description: str
    estimated_duration_seconds: int


class RouteSegment(BaseModel):
    start: RoutePoint
    end: RoutePoint
    distance_meters: float
    duration_seconds: float
    instructions: List[str]


class OptimizedRouteSchema(BaseModel):
    """Full route document as stored and returned."""
    id: Optional[int] = None
    driver_id: int
    waypoints: List[RouteWaypoint]
    segments: List[RouteSegment]
    total_distance_meters: float
    total_duration_seconds: float
    optimization_score: float
    vehicle_type: VehicleType
    optimization_type: OptimizationType
    max_stops: int
    algorithm: str
    created_at: datetime


class RouteOptimizationResponse(BaseModel):
    route_id: int
    route: OptimizedRouteSchema
    optimized_at: datetime


class StoredRouteResponse(BaseModel):
    route: OptimizedRouteSchema
