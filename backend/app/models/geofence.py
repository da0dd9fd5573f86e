"""
Geofence database model.

Circular regions attached to a delivery and evaluated against every sample
tagged with that delivery.
"""

from sqlalchemy import Column, Integer, Float, Boolean, ForeignKey, DateTime, JSON, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.enums import GeofenceType


class Geofence(Base):
    """
    Geofence model.
    
    Only is_active may change after creation.
    """
    __tablename__ = "geofences"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    delivery_id = Column(Integer, ForeignKey('deliveries.id'), nullable=False, index=True)
    
    center_latitude = Column(Float, nullable=False)
    center_longitude = Column(Float, nullable=False)
    radius_meters = Column(Float, nullable=False)
    
    type = Column(Enum(GeofenceType), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    meta_data = Column(JSON, nullable=True)
    
    created_by = Column(Integer, ForeignKey('users.id'), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<Geofence(id={self.id}, delivery_id={self.delivery_id}, type='{self.type.value}', r={self.radius_meters})>"
