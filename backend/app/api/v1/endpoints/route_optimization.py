"""
Route Optimization API Endpoints.

Drivers order their assigned deliveries into a visiting sequence and read
back previously computed routes.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.models.enums import UserRole
from backend.app.schemas.route import (
    RouteOptimizationRequest, RouteOptimizationResponse, StoredRouteResponse
)
from backend.app.core.guards import require_role
from backend.app.services.audit import log_event, AuditAction
from backend.app.services.route_optimizer import RouteOptimizer

router = APIRouter(prefix="/driver", tags=["Driver - Route Optimization"])


@router.post("/route/optimize", response_model=RouteOptimizationResponse)
async def optimize_route(
    request: RouteOptimizationRequest,
    current_user: dict = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db)
):
    """
    Optimize a route over the driver's deliveries (Driver only).
    
    Deliveries not assigned to the caller, or not in an assigned /
    confirmed / picked-up status, are left out of the route. Returns 404
    when nothing is left.
    """
    driver_id = current_user["user_id"]
    
    route = await RouteOptimizer.optimize(db, driver_id, request)
    
    await log_event(
        db=db,
        action=AuditAction.ROUTE_OPTIMIZED,
        actor_id=driver_id,
        actor_username=current_user.get("sub"),
        resource_type="route",
        resource_id=route.id,
        metadata={
            "requested_delivery_ids": request.delivery_ids,
            "waypoint_count": route.waypoint_count,
            "algorithm": route.algorithm
        }
    )
    await db.commit()
    
    return RouteOptimizationResponse(
        route_id=route.id,
        route=RouteOptimizer.to_schema(route),
        optimized_at=route.created_at
    )


@router.get("/route/{route_id}", response_model=StoredRouteResponse)
async def get_route(
    route_id: int = Path(..., description="Route ID"),
    current_user: dict = Depends(require_role([UserRole.DRIVER])),
    db: AsyncSession = Depends(get_db)
):
    """Fetch one of the caller's stored routes."""
    route = await RouteOptimizer.get_route(db, route_id, current_user["user_id"])
    return StoredRouteResponse(route=RouteOptimizer.to_schema(route))
