"""
Current location projections.

Latest known position per driver and per (delivery, driver) pair, upserted
on every accepted sample.
"""

from sqlalchemy import Column, Integer, Float, ForeignKey, DateTime, UniqueConstraint
from backend.app.db.session import Base


class DriverCurrentLocation(Base):
    """Latest position of a driver. One row per driver that ever reported."""
    __tablename__ = "driver_current_locations"
    
    driver_id = Column(Integer, ForeignKey('users.id'), primary_key=True)
    
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    accuracy = Column(Float, nullable=True)
    heading = Column(Float, nullable=True)
    speed = Column(Float, nullable=True)
    
    location_id = Column(Integer, nullable=True)  # Sample that produced this row
    updated_at = Column(DateTime(timezone=True), nullable=False, index=True)
    
    def __repr__(self):
        return f"<DriverCurrentLocation(driver_id={self.driver_id}, lat={self.latitude}, lng={self.longitude})>"


class DeliveryCurrentLocation(Base):
    """Latest position reported for an active delivery, for customer-facing tracking."""
    __tablename__ = "delivery_current_locations"
    __table_args__ = (
        UniqueConstraint("delivery_id", "driver_id", name="uq_delivery_current_location"),
    )
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    delivery_id = Column(Integer, ForeignKey('deliveries.id'), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    accuracy = Column(Float, nullable=True)
    heading = Column(Float, nullable=True)
    speed = Column(Float, nullable=True)
    
    location_id = Column(Integer, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    
    def __repr__(self):
        return f"<DeliveryCurrentLocation(delivery_id={self.delivery_id}, driver_id={self.driver_id})>"
