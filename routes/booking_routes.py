from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pymongo.errors import PyMongoError
from typing import List, Optional
from core.authorization import ensure_restaurant_manager, is_admin, owner_scope, require_role
from core.dependencies import get_current_user, CurrentUser
from models.booking import BookingCreate, BookingListItem, BookingOut, BookingUpdate, RestaurantBookingItem
from models.user import Role
from services import booking_service, restaurant_service
from utils.logger import get_logger

logger = get_logger("Booking_Route")

router = APIRouter(prefix="/bookings", tags=["Bookings"])

def _db_error(action: str) -> HTTPException:
    logger.exception(f"Database error while {action}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")

@router.post("/", response_model=BookingOut, status_code=status.HTTP_201_CREATED)
async def create_booking(payload: BookingCreate, current_user: CurrentUser = Depends(get_current_user)):
    """Book a table for the current user"""
    logger.info(f"Booking request from {current_user.id} for restaurant {payload.restaurant_id}")
    try:
        return await booking_service.create_booking(payload, current_user.id)
    except PyMongoError:
        raise _db_error("creating booking")

@router.get("/", response_model=List[BookingListItem])
async def list_bookings(
    all: bool = Query(False, description="Every booking (admins only)"),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Own bookings, or every booking for an admin asking with all=true"""
    owner_id = None if (all and is_admin(current_user)) else current_user.id
    return await booking_service.list_bookings(owner_id)

@router.get(
    "/restaurant/{restaurant_id}",
    response_model=List[RestaurantBookingItem]
)
async def list_restaurant_bookings(
    restaurant_id: str,
    date: Optional[date] = Query(None, description="Single day, YYYY-MM-DD"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    current_user: CurrentUser = Depends(require_role(Role.ADMIN, Role.RESTAURANT_OWNER))
):
    restaurant = await restaurant_service.get_restaurant(restaurant_id)
    ensure_restaurant_manager(current_user, restaurant)
    return await booking_service.get_bookings_by_restaurant(
        restaurant["id"], booking_date=date, date_from=date_from, date_to=date_to
    )

@router.get("/{booking_id}", response_model=BookingOut)
async def get_booking(booking_id: str, current_user: CurrentUser = Depends(get_current_user)):
    return await booking_service.get_booking(booking_id, owner_scope(current_user))

@router.patch("/{booking_id}", response_model=BookingOut)
async def update_booking(booking_id: str, payload: BookingUpdate, current_user: CurrentUser = Depends(get_current_user)):
    logger.info(f"Received update request for booking {booking_id} from user {current_user.id}")
    try:
        return await booking_service.update_booking(booking_id, payload, owner_scope(current_user))
    except PyMongoError:
        raise _db_error(f"updating booking {booking_id}")

@router.patch("/{booking_id}/cancel", response_model=BookingOut)
async def cancel_booking(booking_id: str, current_user: CurrentUser = Depends(get_current_user)):
    logger.info(f"Received cancellation request for booking {booking_id} from user {current_user.id}")
    try:
        return await booking_service.cancel_booking(booking_id, owner_scope(current_user))
    except PyMongoError:
        raise _db_error(f"cancelling booking {booking_id}")
