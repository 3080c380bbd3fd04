"""
Tests for the booking lifecycle: creation, the state machine, edits,
cancellation and the derived room occupancy.
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from reservations.core.errors import (
    CapacityExceeded,
    InvalidRange,
    InvalidTransition,
    NotFound,
    RoomUnavailable,
    Unavailable,
)
from reservations.db.session import build_engine, build_session_factory
from reservations.models import AuditEntry, Booking, BookingStatus, Room, RoomStatus
from reservations.schemas.room import RoomUpdate
from reservations.services import booking_service, room_service
from reservations.services.entity_store import EntityStore


async def _count(store, model) -> int:
    return await store.scalar(select(func.count()).select_from(model))


async def _checked_in(store, room, guest, check_in=date(2025, 1, 10), check_out=date(2025, 1, 12)):
    booking = await booking_service.create_booking(store, room.id, guest.id, check_in, check_out)
    await booking_service.confirm_booking(store, booking.id)
    return await booking_service.check_in_booking(store, booking.id)


@pytest.mark.asyncio
async def test_create_booking(store, room, guest):
    """A new booking is pending and priced at rate x nights."""
    booking = await booking_service.create_booking(
        store, room.id, guest.id, date(2025, 1, 10), date(2025, 1, 12), 2
    )

    assert booking.id is not None
    assert booking.status == BookingStatus.PENDING
    assert booking.nights == 2
    assert booking.total_price == Decimal("200.00")


@pytest.mark.asyncio
async def test_overlapping_create_is_rejected(store, room, guest, other_guest):
    await booking_service.create_booking(store, room.id, guest.id, date(2025, 1, 10), date(2025, 1, 12), 2)

    with pytest.raises(RoomUnavailable):
        await booking_service.create_booking(
            store, room.id, other_guest.id, date(2025, 1, 11), date(2025, 1, 13), 1
        )
    assert await _count(store, Booking) == 1


@pytest.mark.asyncio
async def test_checked_out_requires_check_in_first(store, room, guest):
    booking = await booking_service.create_booking(
        store, room.id, guest.id, date(2025, 1, 10), date(2025, 1, 12), 2
    )

    confirmed = await booking_service.transition_booking(store, booking.id, BookingStatus.CONFIRMED)
    assert confirmed.status == BookingStatus.CONFIRMED

    with pytest.raises(InvalidTransition):
        await booking_service.transition_booking(store, booking.id, BookingStatus.CHECKED_OUT)

    fresh = await booking_service.get_booking(store, booking.id)
    assert fresh.status == BookingStatus.CONFIRMED


@pytest.mark.asyncio
async def test_capacity_exceeded_writes_nothing(store, room, guest):
    bookings_before = await _count(store, Booking)
    audit_before = await _count(store, AuditEntry)

    with pytest.raises(CapacityExceeded):
        await booking_service.create_booking(
            store, room.id, guest.id, date(2025, 2, 1), date(2025, 2, 3), 3
        )

    assert await _count(store, Booking) == bookings_before
    assert await _count(store, AuditEntry) == audit_before


@pytest.mark.asyncio
async def test_create_validation_errors(store, room, guest):
    with pytest.raises(NotFound):
        await booking_service.create_booking(store, 999, guest.id, date(2025, 1, 10), date(2025, 1, 12))
    with pytest.raises(NotFound):
        await booking_service.create_booking(store, room.id, 999, date(2025, 1, 10), date(2025, 1, 12))
    with pytest.raises(InvalidRange):
        await booking_service.create_booking(store, room.id, guest.id, date(2025, 1, 12), date(2025, 1, 10))


@pytest.mark.asyncio
async def test_out_of_service_room_cannot_be_booked(store, room, guest):
    await room_service.update_room(store, room.id, RoomUpdate(status="out_of_service"))

    with pytest.raises(RoomUnavailable):
        await booking_service.create_booking(store, room.id, guest.id, date(2025, 1, 10), date(2025, 1, 12))


@pytest.mark.parametrize(
    "current,target,allowed",
    [
        ("pending", "confirmed", True),
        ("pending", "cancelled", True),
        ("pending", "checked_in", False),
        ("confirmed", "checked_in", True),
        ("confirmed", "cancelled", True),
        ("confirmed", "pending", False),
        ("checked_in", "checked_out", True),
        ("checked_in", "cancelled", False),
        ("checked_out", "checked_in", False),
        ("cancelled", "confirmed", False),
    ],
)
def test_state_machine_edges(current, target, allowed):
    assert booking_service.can_transition(current, target) is allowed


@pytest.mark.asyncio
async def test_check_in_and_out_drive_room_occupancy(store, room, guest):
    booking = await _checked_in(store, room, guest)

    occupied = await store.get(Room, room.id)
    assert booking.status == BookingStatus.CHECKED_IN
    assert occupied.status == RoomStatus.OCCUPIED

    await booking_service.check_out_booking(store, booking.id)

    released = await store.get(Room, room.id)
    assert released.status == RoomStatus.AVAILABLE


@pytest.mark.asyncio
async def test_second_check_in_on_occupied_room_is_rejected(store, room, guest, other_guest):
    await _checked_in(store, room, guest, date(2025, 1, 10), date(2025, 1, 12))
    later = await booking_service.create_booking(
        store, room.id, other_guest.id, date(2025, 1, 12), date(2025, 1, 14)
    )
    await booking_service.confirm_booking(store, later.id)

    with pytest.raises(RoomUnavailable):
        await booking_service.check_in_booking(store, later.id)


@pytest.mark.asyncio
async def test_check_in_refused_during_maintenance(store, room, guest):
    booking = await booking_service.create_booking(store, room.id, guest.id, date(2025, 1, 10), date(2025, 1, 12))
    await booking_service.confirm_booking(store, booking.id)
    await room_service.update_room(store, room.id, RoomUpdate(status="maintenance"))

    with pytest.raises(RoomUnavailable):
        await booking_service.check_in_booking(store, booking.id)


@pytest.mark.asyncio
async def test_cancel_is_idempotent(store, room, guest):
    booking = await booking_service.create_booking(store, room.id, guest.id, date(2025, 1, 10), date(2025, 1, 12))

    first = await booking_service.cancel_booking(store, booking.id, "guest request")
    audit_after_first = await _count(store, AuditEntry)
    second = await booking_service.cancel_booking(store, booking.id, "guest request")

    assert first.status == second.status == BookingStatus.CANCELLED
    assert second.cancellation_reason == "guest request"
    # The repeated call writes nothing
    assert await _count(store, AuditEntry) == audit_after_first


@pytest.mark.asyncio
async def test_checked_in_booking_cannot_be_cancelled(store, room, guest):
    booking = await _checked_in(store, room, guest)

    with pytest.raises(InvalidTransition):
        await booking_service.cancel_booking(store, booking.id)


@pytest.mark.asyncio
async def test_edit_booking_reprices(store, room, guest):
    booking = await booking_service.create_booking(store, room.id, guest.id, date(2025, 1, 10), date(2025, 1, 12))

    edited = await booking_service.edit_booking(store, booking.id, check_out=date(2025, 1, 15))

    assert edited.check_out_date == date(2025, 1, 15)
    assert edited.total_price == Decimal("500.00")


@pytest.mark.asyncio
async def test_edit_booking_ignores_itself_but_not_others(store, room, guest, other_guest):
    booking = await booking_service.create_booking(store, room.id, guest.id, date(2025, 1, 10), date(2025, 1, 12))
    await booking_service.create_booking(store, room.id, other_guest.id, date(2025, 1, 14), date(2025, 1, 16))

    # Shifting by one day overlaps only the booking itself
    shifted = await booking_service.edit_booking(
        store, booking.id, check_in=date(2025, 1, 11), check_out=date(2025, 1, 13)
    )
    assert shifted.check_in_date == date(2025, 1, 11)

    with pytest.raises(RoomUnavailable):
        await booking_service.edit_booking(store, booking.id, check_out=date(2025, 1, 15))

    unchanged = await booking_service.get_booking(store, booking.id)
    assert unchanged.check_out_date == date(2025, 1, 13)


@pytest.mark.asyncio
async def test_move_booking_to_another_room(store, room, suite, guest):
    booking = await booking_service.create_booking(store, room.id, guest.id, date(2025, 1, 10), date(2025, 1, 12))

    moved = await booking_service.edit_booking(store, booking.id, room_id=suite.id, number_of_guests=3)

    assert moved.room_id == suite.id
    assert moved.total_price == Decimal("500.00")
    assert await booking_service.list_bookings(store, room_id=room.id) == []


@pytest.mark.asyncio
async def test_terminal_booking_cannot_be_edited(store, room, guest):
    booking = await booking_service.create_booking(store, room.id, guest.id, date(2025, 1, 10), date(2025, 1, 12))
    await booking_service.cancel_booking(store, booking.id)

    with pytest.raises(InvalidTransition):
        await booking_service.edit_booking(store, booking.id, number_of_guests=1)


@pytest.mark.asyncio
async def test_reconcile_room_status(store, room, guest):
    booking = await _checked_in(store, room, guest)
    drifted = await store.get(Room, room.id)
    drifted.status = RoomStatus.AVAILABLE
    await store.commit()

    reconciled = await booking_service.reconcile_room_status(store, room.id)
    assert reconciled.status == RoomStatus.OCCUPIED

    await booking_service.check_out_booking(store, booking.id)
    reconciled = await booking_service.reconcile_room_status(store, room.id)
    assert reconciled.status == RoomStatus.AVAILABLE


@pytest.mark.asyncio
async def test_list_bookings_filters(store, room, suite, guest, other_guest):
    a = await booking_service.create_booking(store, room.id, guest.id, date(2025, 1, 10), date(2025, 1, 12))
    b = await booking_service.create_booking(store, suite.id, other_guest.id, date(2025, 1, 11), date(2025, 1, 15))
    await booking_service.confirm_booking(store, b.id)

    assert [x.id for x in await booking_service.list_bookings(store)] == [a.id, b.id]
    assert [x.id for x in await booking_service.list_bookings(store, status="confirmed")] == [b.id]
    assert [x.id for x in await booking_service.list_bookings(store, guest_id=guest.id)] == [a.id]
    assert [x.id for x in await booking_service.list_bookings(
        store, date_from=date(2025, 1, 12), date_to=date(2025, 1, 20)
    )] == [b.id]


@pytest.mark.asyncio
async def test_storage_failure_surfaces_as_unavailable(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'nowhere.db'}")
    try:
        async with build_session_factory(engine)() as session:
            with pytest.raises(Unavailable):
                await booking_service.get_booking(EntityStore(session), 1)
    finally:
        await engine.dispose()
