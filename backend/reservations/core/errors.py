"""
Typed error kinds produced by the reservation engine.

Validation failures (NotFound, InvalidRange, CapacityExceeded, RoomUnavailable,
InvalidTransition, Conflict) are expected outcomes: they are raised before any
write happens, so a failed call never leaves partial state behind.
Unavailable wraps storage failures; the transaction is rolled back before it
is raised and the caller may retry.
"""


class ReservationError(Exception):
    kind: str = "ReservationError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class NotFound(ReservationError):
    kind = "NotFound"


class InvalidRange(ReservationError):
    kind = "InvalidRange"


class CapacityExceeded(ReservationError):
    kind = "CapacityExceeded"


class RoomUnavailable(ReservationError):
    kind = "RoomUnavailable"


class InvalidTransition(ReservationError):
    kind = "InvalidTransition"


class Conflict(ReservationError):
    kind = "Conflict"


class Unavailable(ReservationError):
    kind = "Unavailable"


def is_validation_error(error: ReservationError) -> bool:
    return not isinstance(error, Unavailable)
