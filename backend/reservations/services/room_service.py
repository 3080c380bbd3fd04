"""
Room administration: inventory CRUD through the Entity Store, so every
change lands in the audit trail.
"""

from typing import Optional

from sqlalchemy import func, select

from reservations.core.errors import CapacityExceeded, Conflict
from reservations.core.logging import get_logger
from reservations.models import Booking, BookingStatus, Room, RoomStatus
from reservations.schemas.room import RoomCreate, RoomUpdate
from reservations.services.entity_store import EntityStore
from reservations.services.room_locks import room_locks

logger = get_logger(__name__)


async def _ensure_unique_number(store: EntityStore, room_number: str, room_id: Optional[int] = None) -> None:
    query = select(Room).where(Room.room_number == room_number)
    if room_id is not None:
        query = query.where(Room.id != room_id)
    if await store.first(query):
        logger.warning("room_rejected", reason="number_exists", room_number=room_number)
        raise Conflict(f"Room number {room_number} already exists")


async def _ensure_capacity_fits(store: EntityStore, room: Room, capacity: int) -> None:
    """Active bookings must still fit after the room shrinks."""
    too_large = await store.all(
        select(Booking).where(
            Booking.room_id == room.id,
            Booking.status.in_(BookingStatus.ACTIVE),
            Booking.number_of_guests > capacity,
        )
    )
    if too_large:
        logger.warning(
            "room_rejected", reason="capacity_below_bookings", room_id=room.id, bookings=[b.id for b in too_large]
        )
        raise CapacityExceeded(
            f"Room {room.room_number} cannot shrink to {capacity}: bookings {[b.id for b in too_large]} need more"
        )


async def create_room(store: EntityStore, room_data: RoomCreate, actor: str = "system") -> Room:
    await _ensure_unique_number(store, room_data.room_number)
    room = Room(
        room_number=room_data.room_number,
        type=room_data.type,
        capacity=room_data.capacity,
        price_per_night=room_data.price_per_night,
        amenities=room_data.amenities,
        status=room_data.status,
    )
    store.add(room)
    await store.commit(actor)

    logger.info("room_created", room_id=room.id, room_number=room.room_number, actor=actor)
    return room


async def update_room(store: EntityStore, room_id: int, room_data: RoomUpdate, actor: str = "system") -> Room:
    """
    Edit room attributes or its administrative status.
    Setting `available` re-derives occupancy: a room with a checked-in guest
    goes back to `occupied`. Capacity cannot drop below the party size of
    any active booking (CapacityExceeded).
    """
    changes = room_data.model_dump(exclude_unset=True)
    async with room_locks.hold(room_id):
        room = await store.get(Room, room_id)
        if "room_number" in changes and changes["room_number"] != room.room_number:
            await _ensure_unique_number(store, changes["room_number"], room_id)
        if changes.get("capacity") is not None and changes["capacity"] < room.capacity:
            await _ensure_capacity_fits(store, room, changes["capacity"])

        status = changes.pop("status", None)
        occupied = False
        if status == RoomStatus.AVAILABLE:
            occupied = bool(await store.first(
                select(Booking).where(
                    Booking.room_id == room_id,
                    Booking.status == BookingStatus.CHECKED_IN,
                )
            ))

        for key, value in changes.items():
            setattr(room, key, value)
        if status is not None:
            room.status = RoomStatus.OCCUPIED if occupied else status
        await store.commit(actor)

    logger.info("room_updated", room_id=room_id, fields=sorted(room_data.model_fields_set), actor=actor)
    return room


async def delete_room(store: EntityStore, room_id: int, actor: str = "system") -> None:
    """
    Delete a room. Refused while any non-cancelled booking references it;
    its cancelled bookings are removed with it.
    """
    async with room_locks.hold(room_id):
        room = await store.get(Room, room_id)
        bookings = await store.all(select(Booking).where(Booking.room_id == room_id))
        blocking = [b.id for b in bookings if b.status != BookingStatus.CANCELLED]
        if blocking:
            logger.warning("room_delete_refused", room_id=room_id, bookings=blocking)
            raise Conflict(f"Room {room.room_number} is referenced by bookings {blocking}")
        for booking in bookings:
            await store.delete(booking)
        await store.delete(room)
        await store.commit(actor)

    logger.info("room_deleted", room_id=room_id, cancelled_bookings_removed=len(bookings), actor=actor)


async def get_room(store: EntityStore, room_id: int) -> Room:
    return await store.get(Room, room_id)


async def list_rooms(
    store: EntityStore,
    status: Optional[str] = None,
    room_type: Optional[str] = None,
    min_capacity: Optional[int] = None,
) -> list[Room]:
    query = select(Room)
    if status:
        query = query.where(Room.status == status)
    if room_type:
        query = query.where(Room.type == room_type)
    if min_capacity is not None:
        query = query.where(Room.capacity >= min_capacity)
    return await store.all(query.order_by(Room.room_number))


async def current_occupant(store: EntityStore, room_id: int) -> Optional[Booking]:
    """The checked-in booking occupying the room, if any."""
    await store.get(Room, room_id)
    return await store.first(
        select(Booking).where(
            Booking.room_id == room_id,
            Booking.status == BookingStatus.CHECKED_IN,
        )
    )


async def count_rooms(store: EntityStore) -> int:
    return await store.scalar(select(func.count()).select_from(Room))
