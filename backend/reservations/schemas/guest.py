"""
Pydantic schemas for guest-related request/response validation.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator


class GuestCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(..., min_length=3, max_length=50)
    address: Optional[str] = Field(None, max_length=500)
    id_number: Optional[str] = Field(None, max_length=100)


class GuestUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=3, max_length=50)
    address: Optional[str] = Field(None, max_length=500)
    id_number: Optional[str] = Field(None, max_length=100)

    @field_validator("full_name", "email", "phone", mode="before")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class GuestResponse(BaseModel):
    id: int
    full_name: str
    email: str
    phone: str
    address: Optional[str]
    id_number: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class GuestStatistics(BaseModel):
    guest_id: int
    total_bookings: int
    total_stays: int
    total_nights: int
    total_spent: Decimal
    last_visit: Optional[date]
    upcoming_bookings: int
    cancelled_bookings: int
