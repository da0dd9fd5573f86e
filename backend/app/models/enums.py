"""
Enumerations shared by models and schemas.

Roles follow the platform's identity service; the remaining enums define the
GPS tracking vocabulary.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.
    
    Roles:
        ADMIN: Platform operator with system-level access
        BUSINESS: Company that books deliveries
        DRIVER: Courier that reports locations and runs routes
    """
    ADMIN = "ADMIN"
    BUSINESS = "BUSINESS"
    DRIVER = "DRIVER"


class DeliveryStatus(str, enum.Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    CONFIRMED = "confirmed"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Statuses a driver may still put on a route
ROUTABLE_DELIVERY_STATUSES = (
    DeliveryStatus.ASSIGNED,
    DeliveryStatus.CONFIRMED,
    DeliveryStatus.PICKED_UP,
)


class ServiceType(str, enum.Enum):
    EXPRESS = "express"
    SAME_DAY = "same_day"
    NEXT_DAY = "next_day"
    STANDARD = "standard"


class GeofenceType(str, enum.Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"
    HUB = "hub"
    RESTRICTED = "restricted"


class GeofenceEventType(str, enum.Enum):
    ENTER = "enter"
    EXIT = "exit"


class VehicleType(str, enum.Enum):
    CAR = "car"
    MOTORCYCLE = "motorcycle"
    BICYCLE = "bicycle"
    WALKING = "walking"


class OptimizationType(str, enum.Enum):
    TIME = "time"
    DISTANCE = "distance"
    PRIORITY = "priority"  # Reserved: orders like TIME until weights exist
