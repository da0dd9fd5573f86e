"""
FastAPI Application Entry Point.

This is the main application file for the GPS Tracking Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends, HTTPException
from fastapi.exceptions import RequestValidationError
from backend.app.core.config import settings
from backend.app.api.v1.router import router as api_v1_router
from backend.app.core.dependencies import get_current_user
from backend.app.core.observability import ObservabilityMiddleware, configure_logging
from backend.app.core.redis_client import get_redis, ping_redis
from backend.app.db.session import engine, Base
from backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from backend.app.models.user import User
from backend.app.models.audit_log import AuditLog
from backend.app.models.delivery import Delivery
from backend.app.models.driver_location import DriverLocation
from backend.app.models.current_location import DriverCurrentLocation, DeliveryCurrentLocation
from backend.app.models.geofence import Geofence
from backend.app.models.geofence_state import GeofenceState
from backend.app.models.geofence_event import GeofenceEvent
from backend.app.models.optimized_route import OptimizedRoute
from backend.app.models.archived_driver_location import ArchivedDriverLocation

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.
    
    Creates database tables on startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="GPS ingestion, geofencing, route optimization and tracking analytics",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check(redis=Depends(get_redis)):
    """
    Health check endpoint.
    
    The service stays healthy without Redis; only live broadcast is lost.
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "connected" if await ping_redis(redis) else "unavailable",
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.
    
    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to GPS Tracking Backend API",
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/auth/me", tags=["Authentication"])
async def whoami(current_user: dict = Depends(get_current_user)):
    """Echo the resolved caller identity (id, username, role)."""
    return {
        "user_id": current_user["user_id"],
        "username": current_user.get("sub"),
        "role": current_user["role"],
    }
