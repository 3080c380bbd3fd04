"""
Room model: physical inventory that bookings reserve.

Key design decisions:
- `status` is partly a projection: `occupied` is derived from checked-in
  bookings and recomputed by the lifecycle manager, never set by hand
- `maintenance` and `out_of_service` are administrative states
- Rooms are never deleted while a non-cancelled booking references them
"""

from sqlalchemy import Column, Integer, String, Text, Numeric, CheckConstraint

from reservations.db.base import Base, TimestampMixin


class RoomStatus:
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out_of_service"

    ALL = (AVAILABLE, OCCUPIED, MAINTENANCE, OUT_OF_SERVICE)
    # Administrative states that occupancy recomputation leaves alone
    ADMINISTRATIVE = (MAINTENANCE, OUT_OF_SERVICE)


class Room(Base, TimestampMixin):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    room_number = Column(String(20), unique=True, nullable=False, index=True)
    type = Column(String(20), nullable=False, default="standard")
    capacity = Column(Integer, nullable=False)
    price_per_night = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default=RoomStatus.AVAILABLE)
    amenities = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("capacity > 0", name="check_room_capacity_positive"),
        CheckConstraint("price_per_night >= 0", name="check_room_price_non_negative"),
        CheckConstraint(
            "status IN ('available', 'occupied', 'maintenance', 'out_of_service')",
            name="check_room_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Room(id={self.id}, number={self.room_number}, status={self.status})>"
