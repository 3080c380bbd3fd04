"""
Booking endpoints: the lifecycle operations of the reservation engine.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from reservations.api.deps import get_actor, get_store
from reservations.schemas.booking import (
    AvailabilityResponse,
    BookingCancel,
    BookingCreate,
    BookingResponse,
    BookingTransition,
    BookingUpdate,
)
from reservations.schemas.room import RoomResponse
from reservations.services import availability_service, booking_service
from reservations.services.entity_store import EntityStore

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    store: EntityStore = Depends(get_store),
    actor: str = Depends(get_actor),
):
    """
    Reserve a room. The booking starts as pending.

    Mutations on the same room are serialized, so of two concurrent requests
    for overlapping dates exactly one succeeds and the other gets a
    RoomUnavailable outcome.
    """
    return await booking_service.create_booking(
        store,
        room_id=booking_data.room_id,
        guest_id=booking_data.guest_id,
        check_in=booking_data.check_in_date,
        check_out=booking_data.check_out_date,
        number_of_guests=booking_data.number_of_guests,
        special_requests=booking_data.special_requests,
        actor=actor,
    )


@router.get("/", response_model=list[BookingResponse])
async def list_bookings(
    status_filter: Optional[str] = Query(None, alias="status"),
    room_id: Optional[int] = Query(None),
    guest_id: Optional[int] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    store: EntityStore = Depends(get_store),
):
    return await booking_service.list_bookings(
        store,
        status=status_filter,
        room_id=room_id,
        guest_id=guest_id,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )


@router.get("/availability", response_model=AvailabilityResponse)
async def check_availability(
    room_id: int = Query(...),
    check_in_date: date = Query(...),
    check_out_date: date = Query(...),
    exclude_booking_id: Optional[int] = Query(None),
    store: EntityStore = Depends(get_store),
):
    """Is the room free over [check_in_date, check_out_date)?"""
    conflicts = await availability_service.find_conflicts(
        store, room_id, check_in_date, check_out_date, exclude_booking_id
    )
    return AvailabilityResponse(
        room_id=room_id,
        check_in_date=check_in_date,
        check_out_date=check_out_date,
        available=not conflicts,
        conflicting_booking_ids=[b.id for b in conflicts],
    )


@router.get("/available-rooms", response_model=list[RoomResponse])
async def available_rooms(
    check_in_date: date = Query(...),
    check_out_date: date = Query(...),
    number_of_guests: int = Query(1, ge=1),
    store: EntityStore = Depends(get_store),
):
    return await availability_service.list_available_rooms(
        store, check_in_date, check_out_date, number_of_guests
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(booking_id: int, store: EntityStore = Depends(get_store)):
    return await booking_service.get_booking(store, booking_id)


@router.patch("/{booking_id}", response_model=BookingResponse)
async def edit_booking(
    booking_id: int,
    changes: BookingUpdate,
    store: EntityStore = Depends(get_store),
    actor: str = Depends(get_actor),
):
    """Change dates, room or party size of a pending or confirmed booking."""
    return await booking_service.edit_booking(
        store,
        booking_id,
        check_in=changes.check_in_date,
        check_out=changes.check_out_date,
        room_id=changes.room_id,
        number_of_guests=changes.number_of_guests,
        special_requests=changes.special_requests,
        actor=actor,
    )


@router.post("/{booking_id}/transition", response_model=BookingResponse)
async def transition_booking(
    booking_id: int,
    transition: BookingTransition,
    store: EntityStore = Depends(get_store),
    actor: str = Depends(get_actor),
):
    return await booking_service.transition_booking(store, booking_id, transition.status, actor)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: int,
    store: EntityStore = Depends(get_store),
    actor: str = Depends(get_actor),
):
    return await booking_service.confirm_booking(store, booking_id, actor)


@router.post("/{booking_id}/check-in", response_model=BookingResponse)
async def check_in_booking(
    booking_id: int,
    store: EntityStore = Depends(get_store),
    actor: str = Depends(get_actor),
):
    """Check the guest in; the room becomes occupied."""
    return await booking_service.check_in_booking(store, booking_id, actor)


@router.post("/{booking_id}/check-out", response_model=BookingResponse)
async def check_out_booking(
    booking_id: int,
    store: EntityStore = Depends(get_store),
    actor: str = Depends(get_actor),
):
    """Check the guest out; the room is released unless another guest is checked in."""
    return await booking_service.check_out_booking(store, booking_id, actor)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: int,
    cancel: Optional[BookingCancel] = Body(None),
    store: EntityStore = Depends(get_store),
    actor: str = Depends(get_actor),
):
    """Cancel a pending or confirmed booking. Repeating the call is a no-op."""
    reason = cancel.reason if cancel else None
    return await booking_service.cancel_booking(store, booking_id, reason, actor)
