"""
Tracking Analytics Service.

Read-only aggregations for the operations dashboard, recomputed on every
request.
"""

from datetime import datetime, timedelta
from typing import List

from sqlalchemy import select, func, distinct
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.db.session import dialect_name
from backend.app.models.current_location import DriverCurrentLocation
from backend.app.models.driver_location import DriverLocation
from backend.app.models.enums import UserRole
from backend.app.models.geofence import Geofence
from backend.app.models.optimized_route import OptimizedRoute
from backend.app.models.user import User
from backend.app.services.location_store import to_utc_naive
from backend.app.schemas.tracking_analytics import (
    DriverStatusBoard, DriverStatusEntry, DriverTrackingStats, GeofenceStats,
    HourlyLocationVolume, LocationVolumeStats, RouteStats, TrackingAnalytics
)

# Status board is stricter than the dashboard's online window
STATUS_BOARD_ONLINE_MINUTES = 5
ROUTE_STATS_WINDOW_DAYS = 7


def _hour_bucket(db: AsyncSession, column):
    if dialect_name(db) == "sqlite":
        return func.strftime("%Y-%m-%dT%H:00:00", column)
    return func.date_trunc("hour", column)


def classify_driver(updated_at, now: datetime) -> str:
    if updated_at is None:
        return "offline"
    age = now - to_utc_naive(updated_at)
    if age < timedelta(minutes=STATUS_BOARD_ONLINE_MINUTES):
        return "online"
    if age < timedelta(minutes=settings.driver_idle_window_minutes):
        return "idle"
    return "offline"


class TrackingAnalyticsService:

    @staticmethod
    async def get_driver_stats(db: AsyncSession, now: datetime) -> DriverTrackingStats:
        """Drivers that ever reported, and how many reported within the online window."""
        total = (await db.execute(
            select(func.count(DriverCurrentLocation.driver_id))
        )).scalar() or 0
        
        online_since = now - timedelta(minutes=settings.driver_online_window_minutes)
        online = (await db.execute(
            select(func.count(DriverCurrentLocation.driver_id)).where(
                DriverCurrentLocation.updated_at >= online_since
            )
        )).scalar() or 0
        
        return DriverTrackingStats(total_tracked=total, online=online, offline=total - online)

    @staticmethod
    async def get_location_volume(db: AsyncSession, now: datetime) -> LocationVolumeStats:
        """Samples received over the last 24 hours, bucketed by hour."""
        since = now - timedelta(hours=24)
        window = DriverLocation.received_at >= since
        
        total = (await db.execute(
            select(func.count(DriverLocation.id)).where(window)
        )).scalar() or 0
        
        tracked_drivers = (await db.execute(
            select(func.count(distinct(DriverLocation.driver_id))).where(window)
        )).scalar() or 0
        
        bucket = _hour_bucket(db, DriverLocation.received_at).label("hour")
        rows = await db.execute(
            select(bucket, func.count(DriverLocation.id).label("count"))
            .where(window)
            .group_by(bucket)
            .order_by(bucket)
        )
        
        hourly = []
        for row in rows:
            hour = row.hour.isoformat() if isinstance(row.hour, datetime) else str(row.hour)
            hourly.append(HourlyLocationVolume(hour=hour, count=row.count))
        
        return LocationVolumeStats(total_last_24h=total, tracked_drivers=tracked_drivers, hourly_updates=hourly)

    @staticmethod
    async def get_route_stats(db: AsyncSession, now: datetime) -> RouteStats:
        since = now - timedelta(days=ROUTE_STATS_WINDOW_DAYS)
        row = (await db.execute(
            select(
                func.count(OptimizedRoute.id).label("total"),
                func.avg(OptimizedRoute.total_distance_meters).label("avg_distance"),
                func.avg(OptimizedRoute.total_duration_seconds).label("avg_duration"),
                func.avg(OptimizedRoute.optimization_score).label("avg_score"),
            ).where(OptimizedRoute.created_at >= since)
        )).one()
        
        return RouteStats(
            total_routes=row.total or 0,
            avg_distance_meters=float(row.avg_distance or 0.0),
            avg_duration_seconds=float(row.avg_duration or 0.0),
            avg_optimization_score=float(row.avg_score or 0.0)
        )

    @staticmethod
    async def get_geofence_stats(db: AsyncSession) -> GeofenceStats:
        active = Geofence.is_active == True
        
        total = (await db.execute(select(func.count(Geofence.id)).where(active))).scalar() or 0
        covered = (await db.execute(
            select(func.count(distinct(Geofence.delivery_id))).where(active)
        )).scalar() or 0
        
        rows = await db.execute(
            select(Geofence.type, func.count(Geofence.id)).where(active).group_by(Geofence.type)
        )
        by_type = {fence_type.value: count for fence_type, count in rows}
        
        return GeofenceStats(total_active=total, deliveries_covered=covered, by_type=by_type)

    @staticmethod
    async def get_tracking_analytics(db: AsyncSession) -> TrackingAnalytics:
        now = datetime.utcnow()
        return TrackingAnalytics(
            drivers=await TrackingAnalyticsService.get_driver_stats(db, now),
            locations=await TrackingAnalyticsService.get_location_volume(db, now),
            routes=await TrackingAnalyticsService.get_route_stats(db, now),
            geofences=await TrackingAnalyticsService.get_geofence_stats(db),
            generated_at=now
        )

    @staticmethod
    async def get_driver_status_board(db: AsyncSession) -> DriverStatusBoard:
        """Every active driver with their last known position and freshness class."""
        now = datetime.utcnow()
        rows = await db.execute(
            select(User.id, User.username, DriverCurrentLocation)
            .outerjoin(DriverCurrentLocation, DriverCurrentLocation.driver_id == User.id)
            .where(User.role == UserRole.DRIVER, User.is_active == True)
            .order_by(User.id)
        )
        
        entries: List[DriverStatusEntry] = []
        counts = {"online": 0, "idle": 0, "offline": 0}
        for driver_id, username, current in rows:
            updated_at = current.updated_at if current else None
            driver_status = classify_driver(updated_at, now)
            counts[driver_status] += 1
            entries.append(DriverStatusEntry(
                driver_id=driver_id,
                username=username,
                status=driver_status,
                latitude=current.latitude if current else None,
                longitude=current.longitude if current else None,
                speed=current.speed if current else None,
                heading=current.heading if current else None,
                updated_at=updated_at
            ))
        
        return DriverStatusBoard(drivers=entries, counts=counts, generated_at=now)
