"""
Geofence Event database model.

Append-only log of enter/exit transitions.
"""

from sqlalchemy import Column, Integer, Float, ForeignKey, DateTime, JSON, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.enums import GeofenceEventType


class GeofenceEvent(Base):
    """A detected geofence transition."""
    __tablename__ = "geofence_events"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    delivery_id = Column(Integer, ForeignKey('deliveries.id'), nullable=False, index=True)
    geofence_id = Column(Integer, ForeignKey('geofences.id'), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)
    location_id = Column(Integer, nullable=True)
    
    event_type = Column(Enum(GeofenceEventType), nullable=False, index=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    distance_meters = Column(Float, nullable=True)
    meta_data = Column(JSON, nullable=True)
    
    occurred_at = Column(DateTime(timezone=True), nullable=False, index=True)  # Sample captured_at
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<GeofenceEvent(geofence_id={self.geofence_id}, type='{self.event_type.value}')>"
