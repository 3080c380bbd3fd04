from reservations.schemas.room import RoomCreate, RoomUpdate, RoomResponse
from reservations.schemas.guest import GuestCreate, GuestUpdate, GuestResponse, GuestStatistics
from reservations.schemas.booking import (
    BookingCreate, BookingUpdate, BookingTransition, BookingCancel, BookingResponse,
    AvailabilityResponse,
)
from reservations.schemas.audit import AuditEntryResponse
from reservations.schemas.common import ErrorDetail, ErrorResponse

__all__ = [
    "RoomCreate", "RoomUpdate", "RoomResponse",
    "GuestCreate", "GuestUpdate", "GuestResponse", "GuestStatistics",
    "BookingCreate", "BookingUpdate", "BookingTransition", "BookingCancel", "BookingResponse",
    "AvailabilityResponse",
    "AuditEntryResponse",
    "ErrorDetail", "ErrorResponse",
]
