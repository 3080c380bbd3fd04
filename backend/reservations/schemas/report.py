"""
Pydantic schemas for report outputs.
These are the structured aggregates handed to export/formatting collaborators.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel


class OccupancyBucket(BaseModel):
    date: str
    occupied_rooms: int
    total_rooms: int
    occupied_room_nights: int
    occupancy_rate: float


class RoomPerformance(BaseModel):
    room_id: int
    room_number: str
    type: str
    price_per_night: Decimal
    bookings_count: int
    revenue: Decimal
    checked_out_revenue: Decimal
    average_rate: Decimal
    average_occupancy_rate: float
    last_check_in: Optional[date]


class PeriodRevenue(BaseModel):
    period: str
    bookings: int
    revenue: Decimal


class RoomTypeRevenue(BaseModel):
    room_type: str
    bookings: int
    revenue: Decimal
    average_rate: Decimal


class DayOfWeekRevenue(BaseModel):
    day: str
    bookings: int
    revenue: Decimal


class FinancialSummary(BaseModel):
    start_date: Optional[date]
    end_date: Optional[date]
    statuses: list[str]
    total_revenue: Decimal
    total_bookings: int
    average_booking_value: Decimal
    unique_guests: int
    cancellation_rate: float
    by_period: list[PeriodRevenue]
    by_room_type: list[RoomTypeRevenue]
    by_day_of_week: list[DayOfWeekRevenue]


class UpcomingBooking(BaseModel):
    booking_id: int
    room_id: int
    guest_id: int
    check_out_date: date
    status: str
    total_price: Decimal


class UpcomingDay(BaseModel):
    date: date
    count: int
    total_revenue: Decimal
    bookings: list[UpcomingBooking]


class BookingStatistics(BaseModel):
    total: int
    by_status: dict[str, int]


class RevenueTrendPoint(BaseModel):
    period: str
    bookings: int
    revenue: Decimal
    average_value: Decimal
    # Percent change from the previous point; None for the first
    growth: Optional[float]


class DeskBooking(BaseModel):
    booking_id: int
    room_id: int
    room_number: str
    guest_id: int
    guest_name: str
    check_in_date: date
    check_out_date: date
    number_of_guests: int
    status: str


class TodaysOperations(BaseModel):
    date: date
    arrivals: list[DeskBooking]
    departures: list[DeskBooking]
    in_house: list[DeskBooking]
    arrivals_count: int
    departures_count: int
    in_house_count: int


class GuestSegmentation(BaseModel):
    total_guests: int
    frequency: dict[str, int]
    spending: dict[str, int]
    recency: dict[str, int]


class RoomTypeCount(BaseModel):
    type: str
    count: int


class RoomStatistics(BaseModel):
    total_rooms: int
    by_status: dict[str, int]
    occupancy_rate: float
    by_type: list[RoomTypeCount]
    min_price: Optional[Decimal]
    max_price: Optional[Decimal]
    average_price: Optional[Decimal]
