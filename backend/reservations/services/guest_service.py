"""
Guest service: contact records plus statistics derived from booking history.

Statistics are never stored; guest_statistics() recomputes them from the
bookings on every call so they cannot drift from the source records.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import or_, select

from reservations.core.errors import Conflict
from reservations.core.logging import get_logger
from reservations.models import Booking, BookingStatus, Guest
from reservations.schemas.guest import GuestCreate, GuestStatistics, GuestUpdate
from reservations.services.entity_store import EntityStore

logger = get_logger(__name__)


async def _ensure_unique_email(store: EntityStore, email: str, guest_id: Optional[int] = None) -> None:
    query = select(Guest).where(Guest.email == email)
    if guest_id is not None:
        query = query.where(Guest.id != guest_id)
    if await store.first(query):
        logger.warning("guest_rejected", reason="email_exists", email=email)
        raise Conflict(f"A guest with email {email} already exists")


async def create_guest(store: EntityStore, guest_data: GuestCreate, actor: str = "system") -> Guest:
    email = guest_data.email.lower()
    await _ensure_unique_email(store, email)

    guest = Guest(
        full_name=guest_data.full_name,
        email=email,
        phone=guest_data.phone,
        address=guest_data.address,
        id_number=guest_data.id_number,
    )
    store.add(guest)
    await store.commit(actor)

    logger.info("guest_created", guest_id=guest.id, actor=actor)
    return guest


async def update_guest(store: EntityStore, guest_id: int, guest_data: GuestUpdate, actor: str = "system") -> Guest:
    changes = guest_data.model_dump(exclude_unset=True)
    guest = await store.get(Guest, guest_id)
    if changes.get("email"):
        changes["email"] = changes["email"].lower()
        if changes["email"] != guest.email:
            await _ensure_unique_email(store, changes["email"], guest_id)

    for key, value in changes.items():
        setattr(guest, key, value)
    await store.commit(actor)

    logger.info("guest_updated", guest_id=guest_id, fields=sorted(changes), actor=actor)
    return guest


async def delete_guest(store: EntityStore, guest_id: int, actor: str = "system") -> None:
    """Delete a guest with no booking history other than cancelled bookings."""
    guest = await store.get(Guest, guest_id)
    bookings = await store.all(select(Booking).where(Booking.guest_id == guest_id))
    blocking = [b.id for b in bookings if b.status != BookingStatus.CANCELLED]
    if blocking:
        logger.warning("guest_delete_refused", guest_id=guest_id, bookings=blocking)
        raise Conflict(f"Guest {guest.full_name} is referenced by bookings {blocking}")

    for booking in bookings:
        await store.delete(booking)
    await store.delete(guest)
    await store.commit(actor)

    logger.info("guest_deleted", guest_id=guest_id, actor=actor)


async def get_guest(store: EntityStore, guest_id: int) -> Guest:
    return await store.get(Guest, guest_id)


async def search_guests(
    store: EntityStore,
    search: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> list[Guest]:
    query = select(Guest)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.where(
            or_(
                Guest.full_name.ilike(pattern),
                Guest.email.ilike(pattern),
                Guest.phone.ilike(pattern),
            )
        )
    query = query.order_by(Guest.full_name).offset(offset).limit(limit)
    return await store.all(query)


async def guest_statistics(store: EntityStore, guest_id: int, today: Optional[date] = None) -> GuestStatistics:
    await store.get(Guest, guest_id)
    today = today or date.today()
    bookings = await store.all(select(Booking).where(Booking.guest_id == guest_id))

    stays = [b for b in bookings if b.status == BookingStatus.CHECKED_OUT]
    upcoming = [
        b for b in bookings
        if b.status in BookingStatus.EDITABLE and b.check_in_date >= today
    ]
    return GuestStatistics(
        guest_id=guest_id,
        total_bookings=len(bookings),
        total_stays=len(stays),
        total_nights=sum(b.nights for b in stays),
        total_spent=sum((Decimal(b.total_price) for b in stays), Decimal("0.00")),
        last_visit=max((b.check_out_date for b in stays), default=None),
        upcoming_bookings=len(upcoming),
        cancelled_bookings=sum(1 for b in bookings if b.status == BookingStatus.CANCELLED),
    )
