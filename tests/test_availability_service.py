from datetime import date, datetime

import pytest

from core.exceptions import NotFoundException, ValidationFailure
from services import availability_service, restaurant_service
from services.availability_service import SLOT_UNAVAILABLE, TIME_SLOTS

XMAS = date(2024, 12, 25)


async def seed_booking(mongo, restaurant_id, booking_time, guests, status="PENDING", booking_date="2024-12-25"):
    now = datetime.utcnow()
    result = await mongo.bookings_collection.insert_one({
        "restaurant_id": restaurant_id,
        "user_id": "000000000000000000000000",
        "booking_date": booking_date,
        "booking_time": booking_time,
        "guest_count": guests,
        "status": status,
        "customer_name": "Seeded",
        "customer_phone": "+15559990000",
        "created_at": now,
        "updated_at": now,
    })
    return result.inserted_id


def test_time_slot_grid():
    assert len(TIME_SLOTS) == 24
    assert TIME_SLOTS[0] == "10:00"
    assert TIME_SLOTS[-1] == "21:30"
    assert list(TIME_SLOTS) == sorted(TIME_SLOTS)
    assert "19:00" in TIME_SLOTS and "19:15" not in TIME_SLOTS


@pytest.mark.asyncio
async def test_empty_day_offers_every_slot(restaurant):
    slots = await availability_service.get_available_slots(restaurant["id"], XMAS)
    assert slots == list(TIME_SLOTS)


@pytest.mark.asyncio
async def test_full_slot_is_excluded(mongo, restaurant):
    await seed_booking(mongo, restaurant["id"], "19:00", 2)
    await seed_booking(mongo, restaurant["id"], "19:00", 2, status="CONFIRMED")

    slots = await availability_service.get_available_slots(restaurant["id"], XMAS)

    assert "19:00" not in slots
    assert len(slots) == 23


@pytest.mark.asyncio
async def test_partially_filled_slot_depends_on_party_size(mongo, restaurant):
    await seed_booking(mongo, restaurant["id"], "20:00", 3)

    assert "20:00" in await availability_service.get_available_slots(restaurant["id"], XMAS)
    assert "20:00" not in await availability_service.get_available_slots(restaurant["id"], XMAS, guests=2)


@pytest.mark.asyncio
async def test_cancelled_and_unrelated_bookings_do_not_count(mongo, restaurant):
    await seed_booking(mongo, restaurant["id"], "19:00", 4, status="CANCELLED")
    await seed_booking(mongo, restaurant["id"], "18:00", 4, booking_date="2024-12-24")
    await seed_booking(mongo, "5f0000000000000000000000", "17:00", 4)

    slots = await availability_service.get_available_slots(restaurant["id"], XMAS)

    assert slots == list(TIME_SLOTS)


@pytest.mark.asyncio
async def test_reads_are_idempotent_and_write_nothing(mongo, restaurant):
    await seed_booking(mongo, restaurant["id"], "12:30", 4)

    first = await availability_service.get_available_slots(restaurant["id"], XMAS)
    second = await availability_service.get_available_slots(restaurant["id"], XMAS)

    assert first == second
    assert await mongo.slot_occupancy_collection.count_documents({}) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("restaurant_id", ["5f0000000000000000000000", "not-an-id"])
async def test_unknown_restaurant_is_not_found(restaurant_id):
    with pytest.raises(NotFoundException) as exc:
        await availability_service.get_available_slots(restaurant_id, XMAS)
    assert exc.value.detail == f"Restaurant with ID {restaurant_id} not found"


@pytest.mark.asyncio
async def test_deactivated_restaurant_is_not_found(restaurant):
    await restaurant_service.deactivate_restaurant(restaurant["id"])

    with pytest.raises(NotFoundException):
        await availability_service.get_available_slots(restaurant["id"], XMAS)


@pytest.mark.asyncio
async def test_is_slot_available_can_leave_a_booking_out(mongo, restaurant):
    booking_id = await seed_booking(mongo, restaurant["id"], "19:00", 4)

    assert not await availability_service.is_slot_available(restaurant["id"], XMAS, "19:00", 4, 4)
    assert await availability_service.is_slot_available(
        restaurant["id"], XMAS, "19:00", 4, 4, exclude_booking_id=booking_id
    )
    assert not await availability_service.is_slot_available(restaurant["id"], XMAS, "19:15", 1, 4)


@pytest.mark.asyncio
async def test_reserve_seats_is_seeded_from_existing_bookings(mongo, restaurant):
    await seed_booking(mongo, restaurant["id"], "19:00", 3)

    occupied = await availability_service.reserve_seats(restaurant["id"], XMAS, "19:00", 1, 4)
    assert occupied == 4

    with pytest.raises(ValidationFailure) as exc:
        await availability_service.reserve_seats(restaurant["id"], XMAS, "19:00", 1, 4)
    assert exc.value.detail == SLOT_UNAVAILABLE


@pytest.mark.asyncio
async def test_reserve_seats_rejects_off_grid_time(restaurant):
    with pytest.raises(ValidationFailure):
        await availability_service.reserve_seats(restaurant["id"], XMAS, "23:00", 1, 4)


@pytest.mark.asyncio
async def test_release_seats_gives_capacity_back(mongo, restaurant):
    await availability_service.reserve_seats(restaurant["id"], XMAS, "19:00", 4, 4)
    await availability_service.release_seats(restaurant["id"], XMAS, "19:00", 3)

    counter = await mongo.slot_occupancy_collection.find_one(
        {"_id": availability_service.slot_key(restaurant["id"], XMAS, "19:00")}
    )
    assert counter["occupied"] == 1
