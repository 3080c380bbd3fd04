"""
Concurrency tests: mutations on one room are serialized, different rooms
proceed independently.

Each caller gets its own store on its own session, like two clerks on two
requests.
"""

import asyncio
from datetime import date

import pytest
from sqlalchemy import select

from reservations.core.errors import RoomUnavailable, Unavailable
from reservations.models import Booking, BookingStatus
from reservations.services import booking_service
from reservations.services.room_locks import RoomLockRegistry, room_locks


@pytest.mark.asyncio
async def test_concurrent_overlapping_creates(make_store, store, room, guest, other_guest):
    """Of two simultaneous requests for the same nights exactly one wins."""
    results = await asyncio.gather(
        booking_service.create_booking(
            make_store(), room.id, guest.id, date(2025, 1, 10), date(2025, 1, 12)
        ),
        booking_service.create_booking(
            make_store(), room.id, other_guest.id, date(2025, 1, 10), date(2025, 1, 12)
        ),
        return_exceptions=True,
    )

    created = [r for r in results if isinstance(r, Booking)]
    rejected = [r for r in results if isinstance(r, RoomUnavailable)]
    assert len(created) == 1
    assert len(rejected) == 1

    committed = await store.all(select(Booking).where(Booking.room_id == room.id))
    assert [b.id for b in committed] == [created[0].id]


@pytest.mark.asyncio
async def test_many_concurrent_creates_never_overlap(make_store, store, room, guest):
    """Staggered requests: no two committed active bookings share a night."""
    ranges = [(date(2025, 4, d), date(2025, 4, d + 2)) for d in range(1, 11)]
    await asyncio.gather(
        *(
            booking_service.create_booking(make_store(), room.id, guest.id, check_in, check_out)
            for check_in, check_out in ranges
        ),
        return_exceptions=True,
    )

    committed = await store.all(
        select(Booking)
        .where(Booking.room_id == room.id, Booking.status.in_(BookingStatus.ACTIVE))
        .order_by(Booking.check_in_date)
    )
    assert committed
    for earlier, later in zip(committed, committed[1:]):
        assert earlier.check_out_date <= later.check_in_date


@pytest.mark.asyncio
async def test_different_rooms_both_succeed(make_store, room, suite, guest, other_guest):
    first, second = await asyncio.gather(
        booking_service.create_booking(make_store(), room.id, guest.id, date(2025, 1, 10), date(2025, 1, 12)),
        booking_service.create_booking(make_store(), suite.id, other_guest.id, date(2025, 1, 10), date(2025, 1, 12)),
    )

    assert first.room_id == room.id
    assert second.room_id == suite.id


@pytest.mark.asyncio
async def test_concurrent_cancel_and_confirm(make_store, store, room, guest):
    """Both orders are legal; the final state is one of them, never a mix."""
    booking = await booking_service.create_booking(store, room.id, guest.id, date(2025, 1, 10), date(2025, 1, 12))

    await asyncio.gather(
        booking_service.cancel_booking(make_store(), booking.id),
        booking_service.confirm_booking(make_store(), booking.id),
        return_exceptions=True,
    )

    final = await booking_service.get_booking(store, booking.id)
    assert final.status == BookingStatus.CANCELLED


@pytest.mark.asyncio
async def test_lock_registry_releases_entries():
    registry = RoomLockRegistry(timeout=1.0)

    async with registry.hold(3, 1, 2):
        assert len(registry) == 3

    assert len(registry) == 0


@pytest.mark.asyncio
async def test_lock_wait_times_out():
    registry = RoomLockRegistry(timeout=0.05)

    async with registry.hold(1):
        with pytest.raises(Unavailable):
            async with registry.hold(1):
                pass

    # The timed-out waiter gave its entry back
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_same_room_mutations_are_serialized():
    registry = RoomLockRegistry(timeout=1.0)
    active = 0
    peak = 0

    async def critical_section():
        nonlocal active, peak
        async with registry.hold(7):
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1

    await asyncio.gather(*(critical_section() for _ in range(5)))
    assert peak == 1


@pytest.mark.asyncio
async def test_global_registry_is_empty_after_mutations(store, room, guest):
    await booking_service.create_booking(store, room.id, guest.id, date(2025, 1, 10), date(2025, 1, 12))
    assert len(room_locks) == 0


@pytest.mark.asyncio
async def test_timed_out_waiters_never_keep_the_lock():
    """Waiters that give up while the holder releases leave the room free."""
    registry = RoomLockRegistry(timeout=0.02)

    async def waiter():
        try:
            async with registry.hold(5):
                await asyncio.sleep(0)
        except Unavailable:
            return "timeout"
        return "acquired"

    async with registry.hold(5):
        waiters = [asyncio.create_task(waiter()) for _ in range(20)]
        await asyncio.sleep(0.02)
    outcomes = await asyncio.gather(*waiters)

    assert set(outcomes) <= {"timeout", "acquired"}
    async with registry.hold(5):
        pass
    assert len(registry) == 0


async def _assert_no_overlap(store, room_id):
    committed = await store.all(
        select(Booking)
        .where(Booking.room_id == room_id, Booking.status.in_(BookingStatus.ACTIVE))
        .order_by(Booking.check_in_date)
    )
    for earlier, later in zip(committed, committed[1:]):
        assert earlier.check_out_date <= later.check_in_date
    return committed


@pytest.mark.asyncio
async def test_edit_into_room_races_create(make_store, store, room, suite, guest, other_guest):
    """Moving a booking into a room and booking that room for the same nights: one wins."""
    elsewhere = await booking_service.create_booking(
        store, suite.id, guest.id, date(2025, 6, 10), date(2025, 6, 13)
    )

    results = await asyncio.gather(
        booking_service.edit_booking(make_store(), elsewhere.id, room_id=room.id),
        booking_service.create_booking(
            make_store(), room.id, other_guest.id, date(2025, 6, 11), date(2025, 6, 14)
        ),
        return_exceptions=True,
    )

    assert sum(isinstance(r, Booking) for r in results) == 1
    assert sum(isinstance(r, RoomUnavailable) for r in results) == 1
    assert len(await _assert_no_overlap(store, room.id)) == 1


@pytest.mark.asyncio
async def test_date_shift_races_create_and_move(make_store, store, room, suite, guest, other_guest):
    """Three writers aim at overlapping nights of room 101; the room never double-books."""
    resident = await booking_service.create_booking(
        store, room.id, guest.id, date(2025, 7, 1), date(2025, 7, 3)
    )
    mover = await booking_service.create_booking(
        store, suite.id, other_guest.id, date(2025, 7, 4), date(2025, 7, 6)
    )

    results = await asyncio.gather(
        booking_service.edit_booking(make_store(), mover.id, room_id=room.id),
        booking_service.create_booking(
            make_store(), room.id, other_guest.id, date(2025, 7, 5), date(2025, 7, 7)
        ),
        booking_service.edit_booking(
            make_store(), resident.id, check_in=date(2025, 7, 3), check_out=date(2025, 7, 5)
        ),
        return_exceptions=True,
    )

    assert all(isinstance(r, (Booking, RoomUnavailable)) for r in results)
    committed = await _assert_no_overlap(store, room.id)
    # The resident either kept its nights or moved; either way it is still on the room
    assert resident.id in [b.id for b in committed]
