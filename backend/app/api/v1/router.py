"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import (
    location_tracking, route_optimization, geofences,
    tracking_analytics, admin_ops, live_tracking
)

router = APIRouter()

# Location ingestion and reads
router.include_router(location_tracking.driver_router)
router.include_router(location_tracking.router)

# Route optimization
router.include_router(route_optimization.router)

# Geofences
router.include_router(geofences.router)

# Admin dashboards and maintenance
router.include_router(tracking_analytics.router)
router.include_router(admin_ops.router)

# Live WebSocket feed
router.include_router(live_tracking.router)
