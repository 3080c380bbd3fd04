"""
Availability Checker: does a room have a blocking booking over a date range?

Ranges are half-open [check_in, check_out): a check-out on day N does not
conflict with a check-in on day N. Two ranges overlap iff

    existing.check_in < check_out AND existing.check_out > check_in

Only active bookings (pending, confirmed, checked_in) block a room;
cancelled and checked-out bookings never do.

No side effects. Reads go through the Entity Store, so they reflect committed
state only: the lifecycle manager runs these checks before it stages any
write of its own.
"""

from datetime import date
from typing import Optional

from sqlalchemy import select

from reservations.core.errors import InvalidRange
from reservations.models import Booking, BookingStatus, Room, RoomStatus
from reservations.services.entity_store import EntityStore


def validate_range(check_in: date, check_out: date) -> None:
    if check_out <= check_in:
        raise InvalidRange(
            f"Check-out date {check_out.isoformat()} must be after check-in date {check_in.isoformat()}"
        )


def overlaps(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    return a_start < b_end and b_start < a_end


async def find_conflicts(
    store: EntityStore,
    room_id: int,
    check_in: date,
    check_out: date,
    exclude_booking_id: Optional[int] = None,
) -> list[Booking]:
    """Active bookings on the room whose range overlaps [check_in, check_out)."""
    await store.get(Room, room_id)
    validate_range(check_in, check_out)

    query = select(Booking).where(
        Booking.room_id == room_id,
        Booking.status.in_(BookingStatus.ACTIVE),
        Booking.check_in_date < check_out,
        Booking.check_out_date > check_in,
    )
    if exclude_booking_id is not None:
        query = query.where(Booking.id != exclude_booking_id)
    return await store.all(query.order_by(Booking.check_in_date))


async def is_available(
    store: EntityStore,
    room_id: int,
    check_in: date,
    check_out: date,
    exclude_booking_id: Optional[int] = None,
) -> bool:
    conflicts = await find_conflicts(store, room_id, check_in, check_out, exclude_booking_id)
    return not conflicts


async def list_available_rooms(
    store: EntityStore,
    check_in: date,
    check_out: date,
    number_of_guests: int = 1,
) -> list[Room]:
    """Bookable rooms with enough capacity and no conflict over the range."""
    validate_range(check_in, check_out)

    blocked = (
        select(Booking.room_id)
        .where(
            Booking.status.in_(BookingStatus.ACTIVE),
            Booking.check_in_date < check_out,
            Booking.check_out_date > check_in,
        )
    )
    query = (
        select(Room)
        .where(
            Room.status.not_in(RoomStatus.ADMINISTRATIVE),
            Room.capacity >= number_of_guests,
            Room.id.not_in(blocked),
        )
        .order_by(Room.room_number)
    )
    return await store.all(query)
