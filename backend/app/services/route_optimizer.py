"""
Route Optimizer.

Orders a driver's deliveries into a visiting sequence with the greedy
nearest-neighbor heuristic (O(n^2)), then prices each leg with the
constant-speed travel model. Only one candidate tour is ever built.
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import NoDeliveriesFoundError, ResourceNotFoundError
from backend.app.models.delivery import Delivery
from backend.app.models.enums import ROUTABLE_DELIVERY_STATUSES
from backend.app.models.optimized_route import OptimizedRoute
from backend.app.schemas.route import (
    OptimizedRouteSchema, RouteOptimizationRequest, RoutePoint,
    RouteSegment, RouteWaypoint, StartLocation
)
from backend.app.services.geo import distance_meters, estimate_travel_seconds

logger = logging.getLogger(__name__)

ALGORITHM_NEAREST_NEIGHBOR = "nearest_neighbor"
ALGORITHM_AS_REQUESTED = "as_requested"

# On-site handling time per service type, seconds
SERVICE_DWELL_SECONDS = {
    "express": 300,
    "same_day": 600,
    "next_day": 900,
    "standard": 600,
}
DEFAULT_DWELL_SECONDS = 600


def waypoint_for(delivery: Delivery) -> RouteWaypoint:
    service_type = delivery.service_type.value if delivery.service_type else "standard"
    return RouteWaypoint(
        delivery_id=delivery.id,
        latitude=delivery.delivery_latitude,
        longitude=delivery.delivery_longitude,
        address=delivery.delivery_address,
        description=f"{service_type} - {delivery.customer_name or 'customer'}",
        estimated_duration_seconds=SERVICE_DWELL_SECONDS.get(service_type, DEFAULT_DWELL_SECONDS),
    )


def nearest_neighbor_order(
    waypoints: Sequence[RouteWaypoint],
    start: Optional[StartLocation]
) -> List[RouteWaypoint]:
    """
    Greedy tour from `start`: always visit the closest unvisited waypoint.
    
    Without a start the input order is returned unchanged. Ties keep the
    earliest waypoint in input order.
    """
    if start is None:
        return list(waypoints)
    
    unvisited = list(waypoints)
    ordered = []
    current = start
    
    while unvisited:
        nearest_index = 0
        nearest_distance = distance_meters(current, unvisited[0])
        
        for i in range(1, len(unvisited)):
            distance = distance_meters(current, unvisited[i])
            if distance < nearest_distance:
                nearest_distance = distance
                nearest_index = i
        
        nearest = unvisited.pop(nearest_index)
        ordered.append(nearest)
        current = nearest
    
    return ordered


def build_segments(
    waypoints: Sequence[RouteWaypoint],
    start: Optional[StartLocation]
) -> List[RouteSegment]:
    """
    One segment per waypoint. The first leg starts at `start`, or at the
    first waypoint itself (zero length) when no start is given.
    """
    segments = []
    if not waypoints:
        return segments
    
    current = start or waypoints[0]
    for waypoint in waypoints:
        distance = distance_meters(current, waypoint)
        segments.append(RouteSegment(
            start=RoutePoint(latitude=current.latitude, longitude=current.longitude),
            end=RoutePoint(latitude=waypoint.latitude, longitude=waypoint.longitude),
            distance_meters=distance,
            duration_seconds=estimate_travel_seconds(distance),
            instructions=[f"Travel {round(distance)}m to {waypoint.description}"],
        ))
        current = waypoint
    
    return segments


def optimization_score(total_distance: float, total_duration: float, waypoint_count: int) -> float:
    """Lower is better: km + minutes + 2 per stop."""
    return (total_distance / 1000) + (total_duration / 60) + (waypoint_count * 2)


def plan_route(
    driver_id: int,
    deliveries: Sequence[Delivery],
    request: RouteOptimizationRequest
) -> OptimizedRouteSchema:
    """Build the route document for already-resolved deliveries. No I/O."""
    waypoints = [waypoint_for(d) for d in deliveries]
    start = request.start_location
    
    ordered = nearest_neighbor_order(waypoints, start)
    segments = build_segments(ordered, start)
    
    total_distance = sum(s.distance_meters for s in segments)
    total_duration = sum(s.duration_seconds for s in segments)
    
    return OptimizedRouteSchema(
        driver_id=driver_id,
        waypoints=ordered,
        segments=segments,
        total_distance_meters=total_distance,
        total_duration_seconds=total_duration,
        optimization_score=optimization_score(total_distance, total_duration, len(ordered)),
        vehicle_type=request.vehicle_type,
        optimization_type=request.optimization_type,
        max_stops=request.max_stops,
        algorithm=ALGORITHM_NEAREST_NEIGHBOR if start else ALGORITHM_AS_REQUESTED,
        created_at=datetime.utcnow(),
    )


class RouteOptimizer:

    @staticmethod
    async def resolve_deliveries(
        db: AsyncSession,
        delivery_ids: Sequence[int],
        driver_id: int
    ) -> List[Delivery]:
        """
        Deliveries the driver can route, in request order.
        
        Unknown, foreign, or non-routable IDs are dropped silently.
        """
        requested = list(dict.fromkeys(delivery_ids))
        result = await db.execute(
            select(Delivery).where(
                Delivery.id.in_(requested),
                Delivery.driver_id == driver_id,
                Delivery.status.in_(ROUTABLE_DELIVERY_STATUSES)
            )
        )
        by_id = {d.id: d for d in result.scalars().all()}
        return [by_id[i] for i in requested if i in by_id]

    @staticmethod
    async def optimize(
        db: AsyncSession,
        driver_id: int,
        request: RouteOptimizationRequest
    ) -> OptimizedRoute:
        """
        Resolve, order, price and persist a route.
        
        Raises:
            NoDeliveriesFoundError: nothing in the request is routable by this driver
        """
        deliveries = await RouteOptimizer.resolve_deliveries(db, request.delivery_ids, driver_id)
        if not deliveries:
            raise NoDeliveriesFoundError(request.delivery_ids)
        
        dropped = len(set(request.delivery_ids)) - len(deliveries)
        if dropped:
            logger.info("Route for driver %s skipped %d unroutable deliveries", driver_id, dropped)
        
        plan = plan_route(driver_id, deliveries, request)
        
        route = OptimizedRoute(
            driver_id=driver_id,
            route_data=plan.model_dump(mode="json", exclude={"id"}),
            waypoint_count=len(plan.waypoints),
            total_distance_meters=plan.total_distance_meters,
            total_duration_seconds=plan.total_duration_seconds,
            optimization_score=plan.optimization_score,
            vehicle_type=plan.vehicle_type,
            optimization_type=plan.optimization_type,
            algorithm=plan.algorithm,
            created_at=plan.created_at
        )
        db.add(route)
        await db.flush()
        
        return route

    @staticmethod
    async def get_route(db: AsyncSession, route_id: int, driver_id: int) -> OptimizedRoute:
        """
        Raises:
            ResourceNotFoundError: no such route for this driver
        """
        result = await db.execute(
            select(OptimizedRoute).where(
                OptimizedRoute.id == route_id,
                OptimizedRoute.driver_id == driver_id
            )
        )
        route = result.scalar_one_or_none()
        if not route:
            raise ResourceNotFoundError("Route", route_id)
        return route

    @staticmethod
    def to_schema(route: OptimizedRoute) -> OptimizedRouteSchema:
        return OptimizedRouteSchema.model_validate({**route.route_data, "id": route.id})
