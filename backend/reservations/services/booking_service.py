"""
Booking Lifecycle Manager: validates and commits booking state changes.

STATE MACHINE
=============

    pending ──> confirmed ──> checked_in ──> checked_out
       │            │
       └────────────┴──> cancelled

checked_out and cancelled are terminal. Any other edge fails with
InvalidTransition and writes nothing.

CONCURRENCY STRATEGY: Per-room mutual exclusion
===============================================

Problem:
  Two clerks book room 101 for overlapping nights at the same moment.
  Both run the availability check, both see no conflict, both insert.
  Result: a double-booked room.

Solution:
  Every mutation runs its whole validate-then-commit sequence while holding
  the lock of each room it touches (room_locks). The availability check is
  re-run after the lock is acquired, against freshly read committed rows, and
  the commit happens before the lock is released. The second clerk therefore
  always sees the first clerk's booking and gets RoomUnavailable.

  The lock is never held across anything but this one sequence, and waiting
  for it is bounded by ROOM_LOCK_TIMEOUT.

Within a locked section all reads and checks happen before any attribute is
changed: the store re-reads rows with populate_existing, which would discard
a staged change on an object that a later query returned again.

Room occupancy is a projection over bookings: a room is `occupied` iff some
booking on it is checked in. It is recomputed on every transition instead of
being flipped blindly, and administrative states (maintenance,
out_of_service) are never overwritten.
"""

import time
from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal
from typing import AsyncIterator, Optional

from sqlalchemy import select

from reservations.core.errors import (
    CapacityExceeded,
    InvalidTransition,
    ReservationError,
    RoomUnavailable,
    Unavailable,
)
from reservations.core.logging import get_logger
from reservations.core.metrics import booking_mutation_latency, record_booking_mutation
from reservations.models import Booking, BookingStatus, Guest, Room, RoomStatus
from reservations.services.availability_service import find_conflicts, validate_range
from reservations.services.entity_store import EntityStore
from reservations.services.room_locks import room_locks

logger = get_logger(__name__)

CENTS = Decimal("0.01")
MAX_LOCK_ATTEMPTS = 3

ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.CHECKED_IN, BookingStatus.CANCELLED},
    BookingStatus.CHECKED_IN: {BookingStatus.CHECKED_OUT},
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def calculate_total_price(price_per_night: Decimal, check_in: date, check_out: date) -> Decimal:
    nights = (check_out - check_in).days
    return (Decimal(price_per_night) * nights).quantize(CENTS)


@asynccontextmanager
async def _tracked(operation: str) -> AsyncIterator[None]:
    """Record latency and outcome (success or error kind) of a mutation."""
    start = time.perf_counter()
    try:
        yield
    except ReservationError as e:
        record_booking_mutation(operation, e.kind)
        raise
    else:
        record_booking_mutation(operation, "success")
    finally:
        booking_mutation_latency.labels(operation=operation).observe(time.perf_counter() - start)


@asynccontextmanager
async def _locked_booking(
    store: EntityStore,
    booking_id: int,
    *extra_room_ids: Optional[int],
) -> AsyncIterator[Booking]:
    """
    Lock the booking's room (plus any extra rooms) and yield the booking
    re-read under the lock. If the booking moved to another room while we
    waited, release and try again with its new room.
    """
    booking = await store.get(Booking, booking_id)
    for attempt in range(1, MAX_LOCK_ATTEMPTS + 1):
        room_id = booking.room_id
        rooms = [r for r in (room_id, *extra_room_ids) if r is not None]
        async with room_locks.hold(*rooms):
            booking = await store.get(Booking, booking_id)
            if booking.room_id == room_id:
                yield booking
                return
        logger.info("booking_moved_while_waiting", booking_id=booking_id, attempt=attempt)
    raise Unavailable(f"Booking {booking_id} is being modified, please retry")


async def _checked_in_elsewhere(store: EntityStore, room_id: int, booking_id: Optional[int]) -> list[Booking]:
    query = select(Booking).where(
        Booking.room_id == room_id,
        Booking.status == BookingStatus.CHECKED_IN,
    )
    if booking_id is not None:
        query = query.where(Booking.id != booking_id)
    return await store.all(query)


def _project_room_status(room: Room, occupied: bool) -> None:
    if room.status in RoomStatus.ADMINISTRATIVE:
        return
    target = RoomStatus.OCCUPIED if occupied else RoomStatus.AVAILABLE
    if room.status != target:
        room.status = target


async def _validate_stay(
    store: EntityStore,
    room_id: int,
    check_in: date,
    check_out: date,
    number_of_guests: int,
    guest_id: Optional[int] = None,
    exclude_booking_id: Optional[int] = None,
) -> Room:
    """Checks shared by create and edit. Returns the (fresh) room."""
    room = await store.get(Room, room_id)
    if room.status == RoomStatus.OUT_OF_SERVICE:
        raise RoomUnavailable(f"Room {room.room_number} is out of service")
    if guest_id is not None:
        await store.get(Guest, guest_id)
    validate_range(check_in, check_out)
    if number_of_guests > room.capacity:
        raise CapacityExceeded(
            f"Room {room.room_number} capacity ({room.capacity}) exceeded by {number_of_guests} guests"
        )
    conflicts = await find_conflicts(store, room_id, check_in, check_out, exclude_booking_id)
    if conflicts:
        logger.warning(
            "booking_conflict",
            room_id=room_id,
            check_in=check_in.isoformat(),
            check_out=check_out.isoformat(),
            conflicting=[b.id for b in conflicts],
        )
        raise RoomUnavailable(f"Room {room.room_number} is not available for the selected dates")
    return room


async def create_booking(
    store: EntityStore,
    room_id: int,
    guest_id: int,
    check_in: date,
    check_out: date,
    number_of_guests: int = 1,
    special_requests: Optional[str] = None,
    actor: str = "system",
) -> Booking:
    """Reserve a room for a guest. The new booking starts as pending."""
    async with _tracked("create"):
        async with room_locks.hold(room_id):
            room = await _validate_stay(
                store, room_id, check_in, check_out, number_of_guests, guest_id=guest_id,
            )
            booking = Booking(
                room_id=room_id,
                guest_id=guest_id,
                check_in_date=check_in,
                check_out_date=check_out,
                number_of_guests=number_of_guests,
                total_price=calculate_total_price(room.price_per_night, check_in, check_out),
                status=BookingStatus.PENDING,
                special_requests=special_requests,
            )
            store.add(booking)
            await store.commit(actor)

    logger.info(
        "booking_created",
        booking_id=booking.id,
        room_id=room_id,
        guest_id=guest_id,
        nights=booking.nights,
        total_price=str(booking.total_price),
        actor=actor,
    )
    return booking


async def transition_booking(
    store: EntityStore,
    booking_id: int,
    target_status: str,
    actor: str = "system",
) -> Booking:
    """Move a booking along one edge of the state machine."""
    async with _tracked("transition"):
        async with _locked_booking(store, booking_id) as booking:
            current = booking.status
            if not can_transition(current, target_status):
                raise InvalidTransition(
                    f"Cannot move booking {booking_id} from {current} to {target_status}"
                )

            room = await store.get(Room, booking.room_id)
            others = await _checked_in_elsewhere(store, room.id, booking.id)
            if target_status == BookingStatus.CHECKED_IN:
                if room.status in RoomStatus.ADMINISTRATIVE:
                    raise RoomUnavailable(f"Room {room.room_number} is in {room.status}")
                if others:
                    raise RoomUnavailable(
                        f"Room {room.room_number} is already occupied by booking {others[0].id}"
                    )

            booking.status = target_status
            _project_room_status(room, bool(others) or target_status == BookingStatus.CHECKED_IN)
            await store.commit(actor)

    logger.info(
        "booking_transitioned",
        booking_id=booking_id,
        from_status=current,
        to_status=target_status,
        room_status=room.status,
        actor=actor,
    )
    return booking


async def confirm_booking(store: EntityStore, booking_id: int, actor: str = "system") -> Booking:
    return await transition_booking(store, booking_id, BookingStatus.CONFIRMED, actor)


async def check_in_booking(store: EntityStore, booking_id: int, actor: str = "system") -> Booking:
    return await transition_booking(store, booking_id, BookingStatus.CHECKED_IN, actor)


async def check_out_booking(store: EntityStore, booking_id: int, actor: str = "system") -> Booking:
    return await transition_booking(store, booking_id, BookingStatus.CHECKED_OUT, actor)


async def edit_booking(
    store: EntityStore,
    booking_id: int,
    check_in: Optional[date] = None,
    check_out: Optional[date] = None,
    room_id: Optional[int] = None,
    number_of_guests: Optional[int] = None,
    special_requests: Optional[str] = None,
    actor: str = "system",
) -> Booking:
    """
    Change dates, room or party size of a pending/confirmed booking.
    Runs the same validation as create, ignoring the booking itself, and
    re-prices the stay.
    """
    async with _tracked("edit"):
        async with _locked_booking(store, booking_id, room_id) as booking:
            if booking.status not in BookingStatus.EDITABLE:
                raise InvalidTransition(f"Cannot modify a {booking.status} booking")

            new_room_id = room_id if room_id is not None else booking.room_id
            new_check_in = check_in or booking.check_in_date
            new_check_out = check_out or booking.check_out_date
            new_guests = number_of_guests if number_of_guests is not None else booking.number_of_guests

            room = await _validate_stay(
                store,
                new_room_id,
                new_check_in,
                new_check_out,
                new_guests,
                exclude_booking_id=booking.id,
            )

            booking.room_id = new_room_id
            booking.check_in_date = new_check_in
            booking.check_out_date = new_check_out
            booking.number_of_guests = new_guests
            booking.total_price = calculate_total_price(room.price_per_night, new_check_in, new_check_out)
            if special_requests is not None:
                booking.special_requests = special_requests
            await store.commit(actor)

    logger.info(
        "booking_edited",
        booking_id=booking_id,
        room_id=booking.room_id,
        check_in=booking.check_in_date.isoformat(),
        check_out=booking.check_out_date.isoformat(),
        actor=actor,
    )
    return booking


async def cancel_booking(
    store: EntityStore,
    booking_id: int,
    reason: Optional[str] = None,
    actor: str = "system",
) -> Booking:
    """
    Cancel a pending or confirmed booking.
    Cancelling an already cancelled booking succeeds without writing anything,
    so callers can safely retry.
    """
    async with _tracked("cancel"):
        async with _locked_booking(store, booking_id) as booking:
            if booking.status == BookingStatus.CANCELLED:
                logger.info("booking_cancel_repeated", booking_id=booking_id, actor=actor)
                return booking
            if not can_transition(booking.status, BookingStatus.CANCELLED):
                raise InvalidTransition(f"Cannot cancel a {booking.status} booking")

            room = await store.get(Room, booking.room_id)
            others = await _checked_in_elsewhere(store, room.id, booking.id)

            booking.status = BookingStatus.CANCELLED
            booking.cancellation_reason = reason
            _project_room_status(room, bool(others))
            await store.commit(actor)

    logger.info("booking_cancelled", booking_id=booking_id, reason=reason, actor=actor)
    return booking


async def reconcile_room_status(store: EntityStore, room_id: int, actor: str = "system") -> Room:
    """Recompute a room's occupancy from its checked-in bookings."""
    async with room_locks.hold(room_id):
        room = await store.get(Room, room_id)
        checked_in = await _checked_in_elsewhere(store, room_id, None)
        previous = room.status
        _project_room_status(room, bool(checked_in))
        await store.commit(actor)

    if room.status != previous:
        logger.info("room_status_reconciled", room_id=room_id, from_status=previous, to_status=room.status)
    return room


async def get_booking(store: EntityStore, booking_id: int) -> Booking:
    return await store.get(Booking, booking_id)


async def list_bookings(
    store: EntityStore,
    status: Optional[str] = None,
    room_id: Optional[int] = None,
    guest_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = 100,
    offset: int = 0,
) -> list[Booking]:
    """Bookings filtered by status/room/guest and overlapping [date_from, date_to)."""
    query = select(Booking)
    if status:
        query = query.where(Booking.status == status)
    if room_id is not None:
        query = query.where(Booking.room_id == room_id)
    if guest_id is not None:
        query = query.where(Booking.guest_id == guest_id)
    if date_from is not None:
        query = query.where(Booking.check_out_date > date_from)
    if date_to is not None:
        query = query.where(Booking.check_in_date < date_to)
    query = query.order_by(Booking.check_in_date.asc(), Booking.id.asc()).offset(offset).limit(limit)
    return await store.all(query)
