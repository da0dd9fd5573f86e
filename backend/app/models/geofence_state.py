"""
Geofence State database model.

Last known containment per geofence, so events fire only on transitions.
"""

from sqlalchemy import Column, Integer, Boolean, ForeignKey, DateTime
from backend.app.db.session import Base


class GeofenceState(Base):
    """
    Two-state machine (outside / inside) per geofence.
    
    A geofence with no row is outside.
    """
    __tablename__ = "geofence_states"
    
    geofence_id = Column(Integer, ForeignKey('geofences.id'), primary_key=True)
    delivery_id = Column(Integer, ForeignKey('deliveries.id'), nullable=False, index=True)
    
    is_inside = Column(Boolean, default=False, nullable=False)
    last_location_id = Column(Integer, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    
    def __repr__(self):
        return f"<GeofenceState(geofence_id={self.geofence_id}, inside={self.is_inside})>"
