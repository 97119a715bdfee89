# services/booking_service.py
from datetime import datetime
from db.db_operation import mongo_conn
from core.exceptions import ConflictException, NotFoundException, ValidationFailure
from models.booking import ACTIVE_STATUSES, BookingStatus
from services import availability_service, restaurant_service
from services.availability_service import SLOT_UNAVAILABLE
from services.user_service import summarize_user
from utils.ids import parse_object_id
from utils.logger import get_logger

logger = get_logger("Booking_Service")

CANCELLED = BookingStatus.CANCELLED.value

ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING.value: {BookingStatus.CONFIRMED.value, CANCELLED},
    BookingStatus.CONFIRMED.value: {CANCELLED},
    CANCELLED: set()
}

# fields an update was planned from; the write only lands if they are unchanged
GUARDED_FIELDS = ("status", "booking_date", "booking_time", "guest_count")

def serialize_booking(doc: dict) -> dict:
    return {
        "id": str(doc["_id"]),
        "restaurant_id": doc["restaurant_id"],
        "user_id": doc["user_id"],
        "booking_date": doc["booking_date"],
        "booking_time": doc["booking_time"],
        "guest_count": doc["guest_count"],
        "status": doc["status"],
        "customer_name": doc["customer_name"],
        "customer_phone": doc["customer_phone"],
        "customer_email": doc.get("customer_email"),
        "special_requests": doc.get("special_requests"),
        "notes": doc.get("notes"),
        "created_at": doc.get("created_at"),
        "updated_at": doc.get("updated_at")
    }

async def _docs_by_id(collection, ids, projection=None) -> dict:
    oids = [oid for oid in (parse_object_id(i) for i in set(ids)) if oid is not None]
    if not oids:
        return {}
    cursor = collection.find({"_id": {"$in": oids}}, projection)
    docs = await cursor.to_list(length=None)
    return {str(d["_id"]): d for d in docs}

async def _users_by_id(user_ids) -> dict:
    return await _docs_by_id(mongo_conn.users_collection, user_ids, {"password": 0})

def _user_summary(users: dict, user_id: str) -> dict:
    user = users.get(user_id)
    return summarize_user(user) if user else {"id": user_id}

async def _with_relations(doc: dict, restaurant: dict = None) -> dict:
    """Booking joined with its full restaurant and the owner's summary."""
    if restaurant is None:
        restaurant = await restaurant_service.get_restaurant_doc(doc["restaurant_id"])
    users = await _users_by_id([doc["user_id"]])
    return {
        **serialize_booking(doc),
        "restaurant": restaurant_service.serialize_restaurant(restaurant),
        "user": _user_summary(users, doc["user_id"])
    }

async def _load_booking(booking_id: str, owner_id: str | None = None) -> dict:
    """
    Fetch a booking, scoped to owner_id when one is given.
    Someone else's booking is reported exactly like a missing one.
    """
    oid = parse_object_id(booking_id)
    doc = None
    if oid is not None:
        q = {"_id": oid}
        if owner_id is not None:
            q["user_id"] = owner_id
        doc = await mongo_conn.bookings_collection.find_one(q)
    if not doc:
        logger.warning(f"Booking {booking_id} not found or not owned by {owner_id}")
        raise NotFoundException(f"Booking with ID {booking_id} not found")
    return doc

async def create_booking(dto, user_id: str):
    """
    Book a slot for the logged-in user. The restaurant must be active and the
    slot must still seat the whole party. New bookings start as PENDING.
    """
    restaurant = await restaurant_service.get_active_restaurant_doc(dto.restaurant_id)
    restaurant_id = str(restaurant["_id"])
    capacity = int(restaurant["capacity"])

    available = await availability_service.get_available_slots(restaurant_id, dto.booking_date, guests=dto.guest_count)
    if dto.booking_time not in available:
        logger.warning(
            f"Slot {dto.booking_date} {dto.booking_time} unavailable at restaurant {restaurant_id} "
            f"for {dto.guest_count} guests"
        )
        raise ValidationFailure(SLOT_UNAVAILABLE)

    await availability_service.reserve_seats(restaurant_id, dto.booking_date, dto.booking_time, dto.guest_count, capacity)

    now = datetime.utcnow()
    doc = dto.model_dump(mode="json")
    doc.update({
        "restaurant_id": restaurant_id,
        "user_id": user_id,
        "status": BookingStatus.PENDING.value,
        "notes": None,
        "created_at": now,
        "updated_at": now
    })
    inserted = False
    try:
        result = await mongo_conn.bookings_collection.insert_one(doc)
        inserted = True
    finally:
        if not inserted:
            logger.error("Booking insert failed, releasing reserved seats")
            await availability_service.release_seats(restaurant_id, dto.booking_date, dto.booking_time, dto.guest_count)

    logger.info("Booking created", extra={"booking_id": str(result.inserted_id), "user_id": user_id, "restaurant_id": restaurant_id})
    return await _with_relations(doc, restaurant)

async def list_bookings(owner_id: str | None = None):
    """Bookings of owner_id (every booking when None), latest booking date first."""
    q = {} if owner_id is None else {"user_id": owner_id}
    cursor = mongo_conn.bookings_collection.find(q).sort("booking_date", -1)
    docs = await cursor.to_list(length=None)

    restaurants = await _docs_by_id(mongo_conn.restaurants_collection, [d["restaurant_id"] for d in docs])
    users = await _users_by_id([d["user_id"] for d in docs])
    out = []
    for d in docs:
        restaurant = restaurants.get(d["restaurant_id"])
        out.append({
            **serialize_booking(d),
            "restaurant": restaurant_service.summarize_restaurant(restaurant) if restaurant else {"id": d["restaurant_id"], "name": ""},
            "user": _user_summary(users, d["user_id"])
        })
    logger.info(f"Fetched {len(out)} bookings for {owner_id or 'all users'}")
    return out

async def get_bookings_by_restaurant(restaurant_id: str, booking_date=None, date_from=None, date_to=None):
    """Restaurant-side listing, in seating order."""
    q = {"restaurant_id": restaurant_id}
    if booking_date is not None:
        q["booking_date"] = availability_service.date_key(booking_date)
    elif date_from is not None or date_to is not None:
        q["booking_date"] = {}
        if date_from is not None:
            q["booking_date"]["$gte"] = availability_service.date_key(date_from)
        if date_to is not None:
            q["booking_date"]["$lte"] = availability_service.date_key(date_to)

    cursor = mongo_conn.bookings_collection.find(q).sort([("booking_date", 1), ("booking_time", 1)])
    docs = await cursor.to_list(length=None)
    users = await _users_by_id([d["user_id"] for d in docs])
    return [
        {**serialize_booking(d), "user": _user_summary(users, d["user_id"])}
        for d in docs
    ]

async def get_booking(booking_id: str, owner_id: str | None = None):
    doc = await _load_booking(booking_id, owner_id)
    return await _with_relations(doc)

def _plan_seat_moves(booking: dict, changes: dict):
    """
    Seats to take and to give back for an update, as (date, time, guests) or None.
    Only active bookings hold seats.
    """
    was_active = booking["status"] in ACTIVE_STATUSES
    will_be_active = changes.get("status", booking["status"]) in ACTIVE_STATUSES
    old_slot = (booking["booking_date"], booking["booking_time"])
    new_slot = (changes.get("booking_date", old_slot[0]), changes.get("booking_time", old_slot[1]))
    old_guests = int(booking["guest_count"])
    new_guests = int(changes.get("guest_count", old_guests))

    if not was_active:
        return None, None
    if not will_be_active:
        return None, (*old_slot, old_guests)
    if new_slot != old_slot:
        return (*new_slot, new_guests), (*old_slot, old_guests)
    delta = new_guests - old_guests
    if delta > 0:
        return (*new_slot, delta), None
    if delta < 0:
        return None, (*old_slot, -delta)
    return None, None

async def update_booking(booking_id: str, dto, owner_id: str | None = None):
    """
    Partial update. Moving an active booking (date, time or party size) is checked
    against the restaurant's current capacity with the booking's own seats left out.
    """
    booking = await _load_booking(booking_id, owner_id)
    restaurant_id = booking["restaurant_id"]
    changes = {k: v for k, v in dto.model_dump(mode="json").items() if v is not None}

    new_status = changes.get("status", booking["status"])
    if new_status != booking["status"]:
        if booking["status"] == CANCELLED:
            raise ValidationFailure("Cannot change status of a cancelled booking")
        if new_status not in ALLOWED_TRANSITIONS.get(booking["status"], set()):
            logger.warning(f"Booking {booking_id} refused status change {booking['status']} -> {new_status}")
            raise ValidationFailure(f"Cannot change booking status from {booking['status']} to {new_status}")

    reserve, release = _plan_seat_moves(booking, changes)
    if reserve is not None:
        new_date = changes.get("booking_date", booking["booking_date"])
        new_time = changes.get("booking_time", booking["booking_time"])
        new_guests = int(changes.get("guest_count", booking["guest_count"]))
        capacity = await restaurant_service.get_capacity(restaurant_id)
        if not await availability_service.is_slot_available(
            restaurant_id, new_date, new_time, new_guests, capacity, exclude_booking_id=booking["_id"]
        ):
            logger.warning(f"Booking {booking_id} cannot move to {new_date} {new_time} for {new_guests} guests")
            raise ValidationFailure(SLOT_UNAVAILABLE)
    if release is not None:
        # the counter must exist before the write so the release below lands on it
        await availability_service.ensure_slot_counter(restaurant_id, release[0], release[1])
    if reserve is not None:
        await availability_service.reserve_seats(restaurant_id, *reserve, capacity)

    changes["updated_at"] = datetime.utcnow()
    guard = {"_id": booking["_id"], **{field: booking[field] for field in GUARDED_FIELDS}}
    written = False
    try:
        result = await mongo_conn.bookings_collection.update_one(guard, {"$set": changes})
        written = result.matched_count == 1
    finally:
        if not written and reserve is not None:
            await availability_service.release_seats(restaurant_id, *reserve)
    if not written:
        logger.warning(f"Booking {booking_id} changed while being updated")
        raise ConflictException("Booking was changed by another request, please retry")
    if release is not None:
        await availability_service.release_seats(restaurant_id, *release)

    logger.info(f"Booking {booking_id} updated", extra={"fields": sorted(changes)})
    updated = await mongo_conn.bookings_collection.find_one({"_id": booking["_id"]})
    return await _with_relations(updated)

async def cancel_booking(booking_id: str, owner_id: str | None = None):
    """Soft cancel: status becomes CANCELLED and the seats go back to the slot."""
    booking = await _load_booking(booking_id, owner_id)
    if booking["status"] == CANCELLED:
        logger.info(f"Booking {booking_id} already cancelled")
        return await _with_relations(booking)

    await availability_service.ensure_slot_counter(booking["restaurant_id"], booking["booking_date"], booking["booking_time"])
    result = await mongo_conn.bookings_collection.update_one(
        # status in the filter so two concurrent cancels release the seats once
        {"_id": booking["_id"], "status": booking["status"]},
        {"$set": {"status": CANCELLED, "updated_at": datetime.utcnow()}}
    )
    if result.modified_count:
        await availability_service.release_seats(
            booking["restaurant_id"], booking["booking_date"], booking["booking_time"], int(booking["guest_count"])
        )
        logger.info(f"Booking {booking_id} cancelled")

    updated = await mongo_conn.bookings_collection.find_one({"_id": booking["_id"]})
    return await _with_relations(updated)
