"""
Optimized Route database model.

Immutable result of one route-optimization request.
"""

from sqlalchemy import Column, Integer, Float, String, ForeignKey, DateTime, JSON, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.enums import VehicleType, OptimizationType


class OptimizedRoute(Base):
    """
    Optimized Route model.
    
    route_data holds the full ordered waypoints and segments; the scalar
    columns duplicate the aggregates for analytics queries.
    """
    __tablename__ = "optimized_routes"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    driver_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    
    route_data = Column(JSON, nullable=False)
    waypoint_count = Column(Integer, nullable=False)
    total_distance_meters = Column(Float, nullable=False)
    total_duration_seconds = Column(Float, nullable=False)
    optimization_score = Column(Float, nullable=False)
    
    vehicle_type = Column(Enum(VehicleType), default=VehicleType.CAR, nullable=False)
    optimization_type = Column(Enum(OptimizationType), default=OptimizationType.TIME, nullable=False)
    algorithm = Column(String(50), nullable=False)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    
    def __repr__(self):
        return f"<OptimizedRoute(id={self.id}, driver_id={self.driver_id}, waypoints={self.waypoint_count})>"
