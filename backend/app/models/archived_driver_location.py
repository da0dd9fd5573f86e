"""
Archived Driver Location Model.

Table for long-term storage of old GPS samples.
"""

from sqlalchemy import Column, Integer, Float, Boolean, DateTime, JSON
from backend.app.db.session import Base


class ArchivedDriverLocation(Base):
    """
    Archived Driver Location.
    Same fields as DriverLocation but designed for cold storage.
    Optimized for bulk inserts, not real-time query.
    """
    __tablename__ = "archived_driver_locations"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    
    original_id = Column(Integer, nullable=False)  # Keep reference
    driver_id = Column(Integer, nullable=False, index=True)
    delivery_id = Column(Integer, nullable=True)
    
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    accuracy = Column(Float, nullable=True)
    altitude = Column(Float, nullable=True)
    altitude_accuracy = Column(Float, nullable=True)
    heading = Column(Float, nullable=True)
    speed = Column(Float, nullable=True)
    is_filtered = Column(Boolean, default=False, nullable=False)
    meta_data = Column(JSON, nullable=True)
    
    captured_at = Column(DateTime(timezone=True), nullable=False)
    received_at = Column(DateTime(timezone=True), nullable=False)
    archived_at = Column(DateTime(timezone=True), nullable=False)
