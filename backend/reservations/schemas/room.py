"""
Pydantic schemas for room-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator

RoomTypeLiteral = Literal[
    "standard", "single", "double", "twin", "suite", "deluxe", "family", "studio", "executive"
]
# `occupied` is derived from checked-in bookings and cannot be set by hand
AdminRoomStatus = Literal["available", "maintenance", "out_of_service"]


class RoomCreate(BaseModel):
    room_number: str = Field(..., min_length=1, max_length=20)
    type: RoomTypeLiteral = "standard"
    capacity: int = Field(..., gt=0, le=50)
    price_per_night: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    amenities: Optional[str] = None
    status: AdminRoomStatus = "available"


class RoomUpdate(BaseModel):
    room_number: Optional[str] = Field(None, min_length=1, max_length=20)
    type: Optional[RoomTypeLiteral] = None
    capacity: Optional[int] = Field(None, gt=0, le=50)
    price_per_night: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    amenities: Optional[str] = None
    status: Optional[AdminRoomStatus] = None

    # Omit a field to keep it; null is only meaningful for amenities
    @field_validator("room_number", "type", "capacity", "price_per_night", "status", mode="before")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class RoomResponse(BaseModel):
    id: int
    room_number: str
    type: str
    capacity: int
    price_per_night: Decimal
    status: str
    amenities: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}
