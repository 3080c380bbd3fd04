"""
Tests for the availability predicate: half-open ranges and blocking statuses.
"""

from datetime import date

import pytest

from reservations.core.errors import InvalidRange, NotFound
from reservations.services import availability_service, booking_service
from reservations.services.availability_service import overlaps


def test_half_open_ranges():
    """A check-out on day N does not collide with a check-in on day N."""
    assert overlaps(date(2025, 1, 10), date(2025, 1, 12), date(2025, 1, 11), date(2025, 1, 13))
    assert overlaps(date(2025, 1, 10), date(2025, 1, 20), date(2025, 1, 12), date(2025, 1, 14))
    assert not overlaps(date(2025, 1, 10), date(2025, 1, 12), date(2025, 1, 12), date(2025, 1, 14))
    assert not overlaps(date(2025, 1, 12), date(2025, 1, 14), date(2025, 1, 10), date(2025, 1, 12))


@pytest.mark.asyncio
async def test_created_booking_blocks_its_own_range(store, room, guest):
    booking = await booking_service.create_booking(
        store, room.id, guest.id, date(2025, 1, 10), date(2025, 1, 12), 2
    )

    assert not await availability_service.is_available(store, room.id, date(2025, 1, 10), date(2025, 1, 12))
    # ...unless the booking itself is excluded, as an edit does
    assert await availability_service.is_available(
        store, room.id, date(2025, 1, 10), date(2025, 1, 12), exclude_booking_id=booking.id
    )


@pytest.mark.asyncio
async def test_back_to_back_stays_are_available(store, room, guest):
    await booking_service.create_booking(store, room.id, guest.id, date(2025, 1, 10), date(2025, 1, 12))

    assert await availability_service.is_available(store, room.id, date(2025, 1, 12), date(2025, 1, 14))
    assert await availability_service.is_available(store, room.id, date(2025, 1, 8), date(2025, 1, 10))


@pytest.mark.asyncio
async def test_cancelled_and_checked_out_bookings_do_not_block(store, room, guest):
    cancelled = await booking_service.create_booking(
        store, room.id, guest.id, date(2025, 1, 10), date(2025, 1, 12)
    )
    await booking_service.cancel_booking(store, cancelled.id, "plans changed")

    stayed = await booking_service.create_booking(store, room.id, guest.id, date(2025, 1, 20), date(2025, 1, 22))
    await booking_service.confirm_booking(store, stayed.id)
    await booking_service.check_in_booking(store, stayed.id)
    await booking_service.check_out_booking(store, stayed.id)

    assert await availability_service.is_available(store, room.id, date(2025, 1, 10), date(2025, 1, 12))
    assert await availability_service.is_available(store, room.id, date(2025, 1, 20), date(2025, 1, 22))


@pytest.mark.asyncio
async def test_find_conflicts_returns_overlapping_bookings(store, room, guest):
    first = await booking_service.create_booking(store, room.id, guest.id, date(2025, 3, 1), date(2025, 3, 4))
    second = await booking_service.create_booking(store, room.id, guest.id, date(2025, 3, 6), date(2025, 3, 8))

    conflicts = await availability_service.find_conflicts(store, room.id, date(2025, 3, 3), date(2025, 3, 7))
    assert [b.id for b in conflicts] == [first.id, second.id]


@pytest.mark.asyncio
async def test_invalid_range(store, room):
    with pytest.raises(InvalidRange):
        await availability_service.is_available(store, room.id, date(2025, 1, 12), date(2025, 1, 12))
    with pytest.raises(InvalidRange):
        await availability_service.is_available(store, room.id, date(2025, 1, 12), date(2025, 1, 10))


@pytest.mark.asyncio
async def test_unknown_room(store):
    with pytest.raises(NotFound):
        await availability_service.is_available(store, 999, date(2025, 1, 10), date(2025, 1, 12))


@pytest.mark.asyncio
async def test_list_available_rooms(store, room, suite, guest):
    await booking_service.create_booking(store, room.id, guest.id, date(2025, 5, 1), date(2025, 5, 3))

    free = await availability_service.list_available_rooms(store, date(2025, 5, 2), date(2025, 5, 4))
    assert [r.room_number for r in free] == ["201"]

    # The suite is the only room that fits a party of three
    free = await availability_service.list_available_rooms(store, date(2025, 6, 1), date(2025, 6, 2), 3)
    assert [r.room_number for r in free] == ["201"]

    free = await availability_service.list_available_rooms(store, date(2025, 6, 1), date(2025, 6, 2))
    assert [r.room_number for r in free] == ["101", "201"]
