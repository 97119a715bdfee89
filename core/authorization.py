# core/authorization.py
from fastapi import Depends
from core.dependencies import get_current_user, CurrentUser
from core.exceptions import ForbiddenException
from models.user import Role
from utils.logger import get_logger

logger = get_logger("Authorization")

def require_role(*allowed_roles):
    """
    Ensures the current user has one of the allowed roles.
    """
    allowed = {r.value if isinstance(r, Role) else r for r in allowed_roles}

    async def _dependency(current_user: CurrentUser = Depends(get_current_user)):
        if current_user.role not in allowed:
            logger.warning(f"Forbidden: {current_user.id} role {current_user.role} not in allowed {sorted(allowed)}")
            raise ForbiddenException("Forbidden: insufficient role")
        return current_user
    return _dependency

def is_admin(current_user: CurrentUser) -> bool:
    return current_user.role == Role.ADMIN.value

def owner_scope(current_user: CurrentUser):
    """
    Owner filter for booking queries: None lets admins see every booking,
    everybody else is scoped to their own.
    """
    return None if is_admin(current_user) else current_user.id

def ensure_restaurant_manager(current_user: CurrentUser, restaurant: dict):
    """Admins manage every restaurant, owners only the ones they created."""
    if is_admin(current_user):
        return
    if current_user.role == Role.RESTAURANT_OWNER.value and restaurant.get("owner_id") == current_user.id:
        return
    logger.warning(f"Forbidden: {current_user.id} is not allowed to manage restaurant {restaurant.get('id')}")
    raise ForbiddenException("You are not allowed to manage this restaurant")
