"""
Room administration endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from reservations.api.deps import get_actor, get_store
from reservations.schemas.booking import BookingResponse
from reservations.schemas.room import RoomCreate, RoomResponse, RoomUpdate
from reservations.services import booking_service, room_service
from reservations.services.entity_store import EntityStore

router = APIRouter(prefix="/rooms", tags=["Rooms"])


@router.post("/", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room(
    room_data: RoomCreate,
    store: EntityStore = Depends(get_store),
    actor: str = Depends(get_actor),
):
    return await room_service.create_room(store, room_data, actor)


@router.get("/", response_model=list[RoomResponse])
async def list_rooms(
    status_filter: Optional[str] = Query(None, alias="status"),
    room_type: Optional[str] = Query(None, alias="type"),
    min_capacity: Optional[int] = Query(None, ge=1),
    store: EntityStore = Depends(get_store),
):
    return await room_service.list_rooms(store, status_filter, room_type, min_capacity)


@router.get("/{room_id}", response_model=RoomResponse)
async def get_room(room_id: int, store: EntityStore = Depends(get_store)):
    return await room_service.get_room(store, room_id)


@router.patch("/{room_id}", response_model=RoomResponse)
async def update_room(
    room_id: int,
    room_data: RoomUpdate,
    store: EntityStore = Depends(get_store),
    actor: str = Depends(get_actor),
):
    """Edit attributes or set maintenance / out_of_service / available."""
    return await room_service.update_room(store, room_id, room_data, actor)


@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_room(
    room_id: int,
    store: EntityStore = Depends(get_store),
    actor: str = Depends(get_actor),
):
    await room_service.delete_room(store, room_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{room_id}/occupant", response_model=Optional[BookingResponse])
async def get_occupant(room_id: int, store: EntityStore = Depends(get_store)):
    """The checked-in booking currently occupying the room, or null."""
    return await room_service.current_occupant(store, room_id)


@router.post("/{room_id}/reconcile", response_model=RoomResponse)
async def reconcile_room(
    room_id: int,
    store: EntityStore = Depends(get_store),
    actor: str = Depends(get_actor),
):
    """Recompute the room's occupancy status from its checked-in bookings."""
    return await booking_service.reconcile_room_status(store, room_id, actor)
