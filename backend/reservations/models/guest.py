"""
Guest model with contact details only.

Stay statistics (total stays, last visit, total spent) are not stored:
they are recomputed from booking history whenever they are requested.
"""

from sqlalchemy import Column, Integer, String

from reservations.db.base import Base, TimestampMixin


class Guest(Base, TimestampMixin):
    __tablename__ = "guests"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=False)
    address = Column(String(500), nullable=True)
    id_number = Column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<Guest(id={self.id}, email={self.email})>"
