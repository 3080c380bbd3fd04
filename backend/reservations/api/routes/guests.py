"""
Guest endpoints: contact records and derived stay statistics.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from reservations.api.deps import get_actor, get_store
from reservations.schemas.booking import BookingResponse
from reservations.schemas.guest import GuestCreate, GuestResponse, GuestStatistics, GuestUpdate
from reservations.services import booking_service, guest_service
from reservations.services.entity_store import EntityStore

router = APIRouter(prefix="/guests", tags=["Guests"])


@router.post("/", response_model=GuestResponse, status_code=status.HTTP_201_CREATED)
async def create_guest(
    guest_data: GuestCreate,
    store: EntityStore = Depends(get_store),
    actor: str = Depends(get_actor),
):
    return await guest_service.create_guest(store, guest_data, actor)


@router.get("/", response_model=list[GuestResponse])
async def search_guests(
    search: Optional[str] = Query(None, min_length=1),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    store: EntityStore = Depends(get_store),
):
    return await guest_service.search_guests(store, search, limit, offset)


@router.get("/{guest_id}", response_model=GuestResponse)
async def get_guest(guest_id: int, store: EntityStore = Depends(get_store)):
    return await guest_service.get_guest(store, guest_id)


@router.patch("/{guest_id}", response_model=GuestResponse)
async def update_guest(
    guest_id: int,
    guest_data: GuestUpdate,
    store: EntityStore = Depends(get_store),
    actor: str = Depends(get_actor),
):
    return await guest_service.update_guest(store, guest_id, guest_data, actor)


@router.delete("/{guest_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_guest(
    guest_id: int,
    store: EntityStore = Depends(get_store),
    actor: str = Depends(get_actor),
):
    await guest_service.delete_guest(store, guest_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{guest_id}/statistics", response_model=GuestStatistics)
async def get_guest_statistics(guest_id: int, store: EntityStore = Depends(get_store)):
    """Stays, nights, spend and last visit, recomputed from booking history."""
    return await guest_service.guest_statistics(store, guest_id)


@router.get("/{guest_id}/bookings", response_model=list[BookingResponse])
async def get_guest_bookings(guest_id: int, store: EntityStore = Depends(get_store)):
    await guest_service.get_guest(store, guest_id)
    return await booking_service.list_bookings(store, guest_id=guest_id)
