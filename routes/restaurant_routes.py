# routes/restaurant_routes.py
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status, Query, Body, Path
from pymongo.errors import PyMongoError
from typing import List, Optional
from core.authorization import ensure_restaurant_manager, require_role
from core.dependencies import CurrentUser
from models.restaurant import PriceRange, RestaurantCreate, RestaurantOut, RestaurantSearchResponse, RestaurantUpdate
from models.user import Role
from services import availability_service, restaurant_service
from utils.logger import get_logger

logger = get_logger("Restaurant_Route")
router = APIRouter(prefix="/restaurants", tags=["Restaurants"])

# Admin / owner: create restaurant, the creator becomes its owner
@router.post("/", response_model=RestaurantOut, status_code=status.HTTP_201_CREATED)
async def api_create_restaurant(
    payload: RestaurantCreate = Body(...),
    current_user: CurrentUser = Depends(require_role(Role.ADMIN, Role.RESTAURANT_OWNER))
):
    try:
        return await restaurant_service.create_restaurant(payload, owner_id=current_user.id)
    except PyMongoError:
        logger.exception("Error creating restaurant")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")

# Public: search active restaurants
@router.get("/", response_model=RestaurantSearchResponse)
async def api_search_restaurants(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    cuisine: Optional[str] = Query(None, description="Cuisine tag, e.g. Italian"),
    price_range: Optional[PriceRange] = Query(None),
    min_rating: Optional[float] = Query(None, ge=0, le=5),
    search: Optional[str] = Query(None, description="Matches name, description or address")
):
    return await restaurant_service.search_restaurants(
        page=page,
        limit=limit,
        cuisine=cuisine,
        price_range=price_range.value if price_range else None,
        min_rating=min_rating,
        search=search
    )

# Public: get single restaurant
@router.get("/{restaurant_id}", response_model=RestaurantOut)
async def api_get_restaurant(restaurant_id: str = Path(...)):
    return await restaurant_service.get_restaurant(restaurant_id)

# Public: free slots for a date
@router.get("/{restaurant_id}/available-slots", response_model=List[str])
async def api_available_slots(
    restaurant_id: str,
    date: date = Query(..., description="YYYY-MM-DD"),
    guests: int = Query(1, ge=1, le=20, description="Party size the slot must still fit")
):
    return await availability_service.get_available_slots(restaurant_id, date, guests=guests)

# Admin or owning restaurant owner: update
@router.patch("/{restaurant_id}", response_model=RestaurantOut)
async def api_update_restaurant(
    restaurant_id: str,
    payload: RestaurantUpdate = Body(...),
    current_user: CurrentUser = Depends(require_role(Role.ADMIN, Role.RESTAURANT_OWNER))
):
    restaurant = await restaurant_service.get_restaurant(restaurant_id)
    ensure_restaurant_manager(current_user, restaurant)
    try:
        return await restaurant_service.update_restaurant(restaurant_id, payload)
    except PyMongoError:
        logger.exception("Error updating restaurant")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")

# Admin: soft delete
@router.delete("/{restaurant_id}", response_model=RestaurantOut, dependencies=[Depends(require_role(Role.ADMIN))])
async def api_deactivate_restaurant(restaurant_id: str):
    try:
        return await restaurant_service.deactivate_restaurant(restaurant_id)
    except PyMongoError:
        logger.exception("Error deactivating restaurant")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")
