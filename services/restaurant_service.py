# services/restaurant_service.py
import math
import re
from datetime import datetime
from db.db_operation import mongo_conn
from core.exceptions import NotFoundException
from utils.ids import parse_object_id
from utils.logger import get_logger

logger = get_logger("Restaurant_Service")

def _not_found(restaurant_id) -> NotFoundException:
    return NotFoundException(f"Restaurant with ID {restaurant_id} not found")

def serialize_restaurant(doc: dict) -> dict:
    return {
        "id": str(doc["_id"]),
        "name": doc["name"],
        "description": doc.get("description"),
        "address": doc.get("address"),
        "phone_number": doc.get("phone_number"),
        "email": doc.get("email"),
        "website": doc.get("website"),
        "cuisine": doc.get("cuisine", []),
        "price_range": doc.get("price_range"),
        "rating": doc.get("rating"),
        "capacity": doc["capacity"],
        "image_urls": doc.get("image_urls", []),
        "opening_hours": doc.get("opening_hours", {}),
        "is_active": doc.get("is_active", True),
        "owner_id": doc.get("owner_id"),
        "created_at": doc.get("created_at"),
        "updated_at": doc.get("updated_at")
    }

def summarize_restaurant(doc: dict) -> dict:
    return {
        "id": str(doc["_id"]),
        "name": doc["name"],
        "address": doc.get("address"),
        "phone_number": doc.get("phone_number")
    }

async def get_capacity(restaurant_id: str) -> int:
    """
    Seating capacity of an active restaurant.
    Missing and deactivated restaurants are both NotFound: neither takes new bookings.
    """
    doc = await get_active_restaurant_doc(restaurant_id)
    return int(doc["capacity"])

async def exists(restaurant_id: str) -> bool:
    oid = parse_object_id(restaurant_id)
    if oid is None:
        return False
    return await mongo_conn.restaurants_collection.find_one({"_id": oid}, {"_id": 1}) is not None

async def get_restaurant_doc(restaurant_id: str) -> dict:
    """Raw restaurant document, active or not."""
    oid = parse_object_id(restaurant_id)
    doc = await mongo_conn.restaurants_collection.find_one({"_id": oid}) if oid else None
    if not doc:
        raise _not_found(restaurant_id)
    return doc

async def get_active_restaurant_doc(restaurant_id: str) -> dict:
    oid = parse_object_id(restaurant_id)
    doc = await mongo_conn.restaurants_collection.find_one({"_id": oid, "is_active": True}) if oid else None
    if not doc:
        raise _not_found(restaurant_id)
    return doc

async def create_restaurant(payload, owner_id: str = None):
    now = datetime.utcnow()
    doc = payload.model_dump(mode="json")
    doc.update({
        "owner_id": owner_id,
        "created_at": now,
        "updated_at": now
    })
    result = await mongo_conn.restaurants_collection.insert_one(doc)
    logger.info("Restaurant created", extra={"owner_id": owner_id, "restaurant_id": str(result.inserted_id)})
    return serialize_restaurant(doc)

async def get_restaurant(restaurant_id: str):
    # deactivated restaurants stay readable so historical bookings resolve
    return serialize_restaurant(await get_restaurant_doc(restaurant_id))

async def search_restaurants(page: int = 1, limit: int = 10, cuisine: str | None = None,
                             price_range: str | None = None, min_rating: float | None = None,
                             search: str | None = None):
    """Paginated listing of active restaurants, best rated first."""
    q = {"is_active": True}
    if cuisine:
        q["cuisine"] = cuisine
    if price_range:
        q["price_range"] = price_range
    if min_rating is not None:
        q["rating"] = {"$gte": min_rating}
    if search:
        pattern = re.escape(search)
        q["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
            {"address": {"$regex": pattern, "$options": "i"}}
        ]

    skip = (page - 1) * limit
    cursor = mongo_conn.restaurants_collection.find(q).sort("rating", -1).skip(skip).limit(limit)
    docs = await cursor.to_list(length=limit)
    total = await mongo_conn.restaurants_collection.count_documents(q)
    return {
        "items": [serialize_restaurant(d) for d in docs],
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit) if total else 0
    }

async def update_restaurant(restaurant_id: str, payload):
    oid = parse_object_id(restaurant_id)
    if oid is None:
        raise _not_found(restaurant_id)
    update_doc = {k: v for k, v in payload.model_dump(mode="json").items() if v is not None}
    update_doc["updated_at"] = datetime.utcnow()
    result = await mongo_conn.restaurants_collection.update_one({"_id": oid}, {"$set": update_doc})
    if result.matched_count == 0:
        raise _not_found(restaurant_id)
    logger.info("Restaurant updated", extra={"restaurant_id": restaurant_id, "fields": sorted(update_doc)})
    return await get_restaurant(restaurant_id)

async def deactivate_restaurant(restaurant_id: str):
    """Soft delete. Bookings keep pointing at the restaurant."""
    oid = parse_object_id(restaurant_id)
    if oid is None:
        raise _not_found(restaurant_id)
    result = await mongo_conn.restaurants_collection.update_one(
        {"_id": oid},
        {"$set": {"is_active": False, "updated_at": datetime.utcnow()}}
    )
    if result.matched_count == 0:
        raise _not_found(restaurant_id)
    logger.info("Restaurant deactivated", extra={"restaurant_id": restaurant_id})
    return await get_restaurant(restaurant_id)
