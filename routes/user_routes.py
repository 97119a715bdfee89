from fastapi import APIRouter, Depends, Query, Path, Body
from typing import List, Literal
from core.authorization import require_role
from core.dependencies import get_current_user, CurrentUser
from models.auth import MessageResponse
from models.user import Role, RoleChangeRequest, UserOut, UserUpdate
from services import user_service
from utils.logger import get_logger

router = APIRouter(prefix="/users", tags=["Users"])
logger = get_logger("User_Route")

@router.get("/me", response_model=UserOut)
async def read_me(current_user: CurrentUser = Depends(get_current_user)):
    return await user_service.get_user(current_user.id)

@router.put("/me", response_model=UserOut)
async def update_me(payload: UserUpdate = Body(...), current_user: CurrentUser = Depends(get_current_user)):
    return await user_service.update_profile(current_user.id, payload)

@router.get("/", response_model=List[UserOut], dependencies=[Depends(require_role(Role.ADMIN))])
async def list_all_users(skip: int = Query(0, ge=0), limit: int = Query(50, ge=1, le=200)):
    """
    List users (admin only). Pagination supported via skip & limit.
    """
    return await user_service.list_users(skip=skip, limit=limit)

@router.get("/{user_id}", response_model=UserOut, dependencies=[Depends(require_role(Role.ADMIN))])
async def api_get_user(user_id: str = Path(..., description="User ObjectId string")):
    return await user_service.get_user(user_id)

@router.patch("/{user_id}/role", response_model=UserOut)
async def api_change_role(
    user_id: str,
    payload: RoleChangeRequest,
    current_admin: CurrentUser = Depends(require_role(Role.ADMIN))
):
    return await user_service.change_role(user_id, payload.role.value, current_admin.id)

@router.delete(
    "/{lookup_type}/{identifier}",
    response_model=MessageResponse,
    dependencies=[Depends(require_role(Role.ADMIN))]
)
async def api_delete_user(lookup_type: Literal["id", "email"], identifier: str):
    logger.info(f"Delete requested for user {lookup_type}={identifier}")
    return await user_service.delete_user(lookup_type, identifier)
