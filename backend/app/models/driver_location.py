"""
Driver Location database model.

Append-only history of raw GPS samples.
"""

from sqlalchemy import Column, Integer, Float, Boolean, ForeignKey, DateTime, JSON, Index
from sqlalchemy.sql import func
from backend.app.db.session import Base


class DriverLocation(Base):
    """
    One raw GPS reading reported by a driver.
    
    Rows are never updated. captured_at is the device clock and may be skewed
    relative to received_at.
    """
    __tablename__ = "driver_locations"
    __table_args__ = (
        Index("ix_driver_locations_driver_captured", "driver_id", "captured_at"),
    )
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # References
    driver_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    delivery_id = Column(Integer, ForeignKey('deliveries.id'), nullable=True, index=True)
    
    # GPS fix
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    accuracy = Column(Float, nullable=True)  # meters
    altitude = Column(Float, nullable=True)  # meters
    altitude_accuracy = Column(Float, nullable=True)  # meters
    heading = Column(Float, nullable=True)  # degrees, [0, 360)
    speed = Column(Float, nullable=True)  # m/s
    
    # Stored but excluded from real-time projections (accuracy over threshold)
    is_filtered = Column(Boolean, default=False, nullable=False)
    
    meta_data = Column(JSON, nullable=True)
    
    # Timing
    captured_at = Column(DateTime(timezone=True), nullable=False, index=True)  # Device clock
    received_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)  # Server clock
    
    def __repr__(self):
        return f"<DriverLocation(driver_id={self.driver_id}, lat={self.latitude}, lng={self.longitude})>"
