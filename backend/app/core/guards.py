"""
Security guards for role-based and ownership-based access control.

Provides dependencies for protecting endpoints.
"""

from typing import List, Optional
from fastapi import Depends, HTTPException, status
from backend.app.models.enums import UserRole
from backend.app.core.dependencies import get_current_user


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.
    
    Usage:
        @router.post("/drivers/me/location")
        async def submit(current_user: dict = Depends(require_role([UserRole.DRIVER]))):
            ...
    
    Raises:
        HTTPException 403 if user role is not in allowed_roles
    """
    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        user_role_str = current_user.get("role")
        
        if not user_role_str:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Role information missing from token"
            )
        
        try:
            user_role = UserRole(user_role_str)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid role in token"
            )
        
        if user_role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )
        
        return current_user
    
    return role_checker


def require_admin(current_user: dict = Depends(get_current_user)) -> dict:
    """
    Dependency for admin-only endpoints.
    
    Returns:
        User payload if admin, raises 403 otherwise
    """
    if current_user.get("role") != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    
    return current_user


def is_admin(current_user: dict) -> bool:
    return current_user.get("role") == UserRole.ADMIN.value


def can_view_driver(driver_id: int, current_user: dict) -> bool:
    """Drivers see their own data; admins see everyone's."""
    return is_admin(current_user) or current_user.get("user_id") == driver_id


def can_access_delivery(delivery, current_user: dict, allow_business: bool = False) -> bool:
    """
    Verify the current user may act on a delivery.
    
    For Admins: always allowed
    For Drivers: must be the assigned driver
    For Businesses: must own the delivery (read paths only, see allow_business)
    """
    if is_admin(current_user):
        return True
    
    user_id = current_user.get("user_id")
    role = current_user.get("role")
    
    if role == UserRole.DRIVER.value:
        return delivery.driver_id == user_id
    
    if allow_business and role == UserRole.BUSINESS.value:
        return delivery.business_id == user_id
    
    return False


class OwnershipGuard:
    """
    Class-based ownership guard for validating multi-tenant access.
    
    Usage:
        ownership_guard = OwnershipGuard()
        
        delivery = await get_delivery(db, delivery_id)
        ownership_guard.enforce_delivery(delivery, current_user)
    """
    
    def enforce_driver(self, driver_id: int, current_user: dict, resource_name: str = "driver data"):
        """Raise 403 unless the caller is the driver or an admin."""
        if not can_view_driver(driver_id, current_user):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions to view {resource_name}"
            )
    
    def enforce_delivery(
        self,
        delivery: Optional[object],
        current_user: dict,
        allow_business: bool = False
    ):
        """
        Raise 403 if the caller may not access the delivery.
        
        Missing deliveries are reported the same way as foreign ones so the
        check does not leak which delivery IDs exist.
        """
        if delivery is None or not can_access_delivery(delivery, current_user, allow_business):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions for this delivery"
            )
