"""
Geo-math utilities.

Great-circle distance, travel-time estimates and radius tests used by
geofencing and route optimization. Pure functions, no state.
"""

import math
from typing import NamedTuple

from backend.app.core.config import settings

# Mean Earth radius in meters
EARTH_RADIUS_METERS = 6371000.0


class Coordinate(NamedTuple):
    latitude: float
    longitude: float


def distance_meters(a, b) -> float:
    """
    Calculate the great-circle (haversine) distance between two points.
    
    Args:
        a, b: Anything with latitude/longitude attributes in degrees
    
    Returns:
        Distance in meters
    """
    lat1_rad = math.radians(a.latitude)
    lat2_rad = math.radians(b.latitude)
    dlat = lat2_rad - lat1_rad
    dlon = math.radians(b.longitude - a.longitude)
    
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    # Rounding can push h just outside [0, 1] for antipodal points
    h = min(1.0, max(0.0, h))
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    
    return EARTH_RADIUS_METERS * c


def estimate_travel_seconds(distance: float, avg_speed_kph: float = None) -> float:
    """
    Constant-speed travel time. A rough ETA, not a road-network estimate.
    
    Args:
        distance: Distance in meters
        avg_speed_kph: Average speed, defaults to settings.default_avg_speed_kph
    """
    speed = avg_speed_kph or settings.default_avg_speed_kph
    return (distance / 1000) / speed * 3600


def is_within_radius(point, center, radius_meters: float) -> bool:
    """Inclusive containment test: a point exactly on the boundary is inside."""
    return distance_meters(point, center) <= radius_meters
