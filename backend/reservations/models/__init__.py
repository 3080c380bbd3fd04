from reservations.models.room import Room, RoomStatus
from reservations.models.guest import Guest
from reservations.models.booking import Booking, BookingStatus
from reservations.models.audit_entry import AuditEntry, AuditAction

__all__ = [
    "Room", "RoomStatus",
    "Guest",
    "Booking", "BookingStatus",
    "AuditEntry", "AuditAction",
]
