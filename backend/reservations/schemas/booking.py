"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional
from pydantic import BaseModel, Field

BookingStatusLiteral = Literal["pending", "confirmed", "checked_in", "checked_out", "cancelled"]


class BookingCreate(BaseModel):
    room_id: int
    guest_id: int
    check_in_date: date
    check_out_date: date
    number_of_guests: int = Field(default=1, gt=0)
    special_requests: Optional[str] = Field(None, max_length=2000)


class BookingUpdate(BaseModel):
    room_id: Optional[int] = None
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    number_of_guests: Optional[int] = Field(None, gt=0)
    special_requests: Optional[str] = Field(None, max_length=2000)


class BookingTransition(BaseModel):
    status: BookingStatusLiteral


class BookingCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class BookingResponse(BaseModel):
    id: int
    room_id: int
    guest_id: int
    check_in_date: date
    check_out_date: date
    number_of_guests: int
    total_price: Decimal
    status: str
    special_requests: Optional[str]
    cancellation_reason: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AvailabilityResponse(BaseModel):
    room_id: int
    check_in_date: date
    check_out_date: date
    available: bool
    conflicting_booking_ids: list[int] = []
