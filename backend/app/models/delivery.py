"""
Delivery database model.

Deliveries are owned by the dispatch side of the platform. Tracking reads
them to authorize location tagging and to build routes.
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.enums import DeliveryStatus, ServiceType


class Delivery(Base):
    """
    Delivery model.
    
    A delivery is assigned to at most one driver and has one drop-off point.
    """
    __tablename__ = "deliveries"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    tracking_number = Column(String(50), unique=True, index=True, nullable=True)
    
    # Ownership
    business_id = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)
    driver_id = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)
    
    status = Column(Enum(DeliveryStatus), default=DeliveryStatus.PENDING, nullable=False, index=True)
    service_type = Column(Enum(ServiceType), default=ServiceType.STANDARD, nullable=False)
    customer_name = Column(String(255), nullable=True)
    
    # Drop-off point
    delivery_latitude = Column(Float, nullable=False)
    delivery_longitude = Column(Float, nullable=False)
    delivery_address = Column(String(500), nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<Delivery(id={self.id}, driver_id={self.driver_id}, status='{self.status.value}')>"
