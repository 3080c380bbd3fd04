"""
Booking model: one guest holding one room over a half-open date range.

Key design decisions:
- [check_in_date, check_out_date) is half-open: the check-out day is free
  for the next arrival
- CHECK constraints back up the range and guest-count validation
- Range overlap cannot be expressed as a unique constraint, so the
  no-double-booking invariant is enforced by the lifecycle manager under a
  per-room lock; the composite index serves its range query
- total_price is computed at commit time and frozen once checked in
"""

from sqlalchemy import (
    Column, Integer, String, Text, Date, Numeric, ForeignKey, CheckConstraint, Index,
)

from reservations.db.base import Base, TimestampMixin


class BookingStatus:
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"

    ALL = (PENDING, CONFIRMED, CHECKED_IN, CHECKED_OUT, CANCELLED)
    # Statuses that hold the room for their date range
    ACTIVE = (PENDING, CONFIRMED, CHECKED_IN)
    TERMINAL = (CHECKED_OUT, CANCELLED)
    EDITABLE = (PENDING, CONFIRMED)


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False, index=True)
    guest_id = Column(Integer, ForeignKey("guests.id"), nullable=False, index=True)
    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)
    number_of_guests = Column(Integer, nullable=False, default=1)
    total_price = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING)
    special_requests = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("check_out_date > check_in_date", name="check_booking_date_range"),
        CheckConstraint("number_of_guests > 0", name="check_booking_guests_positive"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'checked_in', 'checked_out', 'cancelled')",
            name="check_booking_status",
        ),
        # Range query: bookings on a room around a date window
        Index("ix_bookings_room_dates", "room_id", "check_in_date", "check_out_date"),
    )

    @property
    def nights(self) -> int:
        return (self.check_out_date - self.check_in_date).days

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, room={self.room_id}, guest={self.guest_id}, status={self.status})>"
