# services/availability_service.py
"""
Slot availability for restaurant bookings.

The day is a fixed grid of 30 minute slots from 10:00 up to the last
seating at 21:30. Occupancy of a slot is the sum of guest_count over the
active (PENDING / CONFIRMED) bookings sharing restaurant, date and slot.

Reads aggregate the bookings directly. Writes go through a per-slot seat
counter in ``slot_occupancy`` that is only incremented by a conditional
update, so two concurrent bookings cannot both squeeze into the last seats.
"""
from datetime import date, datetime
from pymongo import ReturnDocument
from db.db_operation import mongo_conn
from core.exceptions import ValidationFailure
from models.booking import ACTIVE_STATUSES
from services import restaurant_service
from utils.logger import get_logger

logger = get_logger("Availability_Service")

SLOT_UNAVAILABLE = "Selected time slot is not available"

FIRST_SLOT_MINUTES = 10 * 60
CLOSING_MINUTES = 22 * 60
SLOT_STEP_MINUTES = 30

# TODO: derive the grid from restaurant opening_hours once owners maintain them reliably
TIME_SLOTS = tuple(
    f"{minutes // 60:02d}:{minutes % 60:02d}"
    for minutes in range(FIRST_SLOT_MINUTES, CLOSING_MINUTES, SLOT_STEP_MINUTES)
)

def date_key(booking_date) -> str:
    if isinstance(booking_date, (date, datetime)):
        return booking_date.strftime("%Y-%m-%d")
    return str(booking_date)

def slot_key(restaurant_id: str, booking_date, booking_time: str) -> str:
    return f"{restaurant_id}:{date_key(booking_date)}:{booking_time}"

async def get_occupancy(restaurant_id: str, booking_date, exclude_booking_id=None) -> dict:
    """Guests seated per slot label for one restaurant and date."""
    q = {
        "restaurant_id": restaurant_id,
        "booking_date": date_key(booking_date),
        "status": {"$in": ACTIVE_STATUSES}
    }
    if exclude_booking_id is not None:
        q["_id"] = {"$ne": exclude_booking_id}
    cursor = mongo_conn.bookings_collection.find(q, {"booking_time": 1, "guest_count": 1})
    bookings = await cursor.to_list(length=None)

    occupied = {}
    for b in bookings:
        occupied[b["booking_time"]] = occupied.get(b["booking_time"], 0) + int(b["guest_count"])
    return occupied

async def get_available_slots(restaurant_id: str, booking_date, guests: int = 1) -> list[str]:
    """
    Slot labels, ascending, that can still seat ``guests`` more people.
    With the default of one guest this is every slot whose occupancy is
    below capacity. Raises NotFound for missing or inactive restaurants.
    """
    capacity = await restaurant_service.get_capacity(restaurant_id)
    occupied = await get_occupancy(restaurant_id, booking_date)
    return [label for label in TIME_SLOTS if occupied.get(label, 0) + guests <= capacity]

async def is_slot_available(restaurant_id: str, booking_date, booking_time: str, guests: int,
                            capacity: int, exclude_booking_id=None) -> bool:
    if booking_time not in TIME_SLOTS:
        return False
    occupied = await get_occupancy(restaurant_id, booking_date, exclude_booking_id=exclude_booking_id)
    return occupied.get(booking_time, 0) + guests <= capacity

async def ensure_slot_counter(restaurant_id: str, booking_date, booking_time: str) -> str:
    """Create the seat counter for a slot, seeded from the current bookings, if missing."""
    key = slot_key(restaurant_id, booking_date, booking_time)
    counters = mongo_conn.slot_occupancy_collection
    if await counters.find_one({"_id": key}, {"_id": 1}) is not None:
        return key
    occupied = await get_occupancy(restaurant_id, booking_date)
    # concurrent seeders compute the same value, only the first insert sticks
    await counters.update_one(
        {"_id": key},
        {"$setOnInsert": {
            "restaurant_id": restaurant_id,
            "booking_date": date_key(booking_date),
            "booking_time": booking_time,
            "occupied": occupied.get(booking_time, 0),
            "updated_at": datetime.utcnow()
        }},
        upsert=True
    )
    return key

async def reserve_seats(restaurant_id: str, booking_date, booking_time: str, guests: int, capacity: int) -> int:
    """
    Atomically add ``guests`` to a slot's counter, only while the result stays within capacity.
    Returns the new occupancy. Raises ValidationFailure when the seats are not there.
    """
    if booking_time not in TIME_SLOTS:
        raise ValidationFailure(SLOT_UNAVAILABLE)
    key = await ensure_slot_counter(restaurant_id, booking_date, booking_time)
    updated = await mongo_conn.slot_occupancy_collection.find_one_and_update(
        {"_id": key, "occupied": {"$lte": capacity - guests}},
        {"$inc": {"occupied": guests}, "$set": {"updated_at": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER
    )
    if updated is None:
        logger.warning(
            "Seat reservation refused",
            extra={"slot": key, "guests": guests, "capacity": capacity}
        )
        raise ValidationFailure(SLOT_UNAVAILABLE)
    logger.info(f"Reserved {guests} seats at {key}, occupancy now {updated['occupied']}/{capacity}")
    return int(updated["occupied"])

async def release_seats(restaurant_id: str, booking_date, booking_time: str, guests: int):
    if guests <= 0:
        return
    key = slot_key(restaurant_id, booking_date, booking_time)
    await mongo_conn.slot_occupancy_collection.update_one(
        {"_id": key},
        {"$inc": {"occupied": -guests}, "$set": {"updated_at": datetime.utcnow()}}
    )
    logger.info(f"Released {guests} seats at {key}")
