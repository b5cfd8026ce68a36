"""
Seat model: the authoritative per-seat inventory.

Key design decisions:
- Unique constraint on (flight_id, seat_number) makes seat initialization
  safe under concurrent initializers
- `reservation_id` is a lookup key back to the owning reservation, not an
  ORM-managed ownership; seats move between states only through the seat
  service's locked compare-and-set updates
- Index on (flight_id, status) backs availability queries and counts
"""

import enum
import re
from typing import Optional

from sqlalchemy import Column, Integer, String, ForeignKey, Index, UniqueConstraint, Enum

from flight_booking.db.base import Base, TimestampMixin

SEAT_LETTERS = ("A", "B", "C", "D", "E", "F")
SEAT_NUMBER_PATTERN = re.compile(r"^(\d+)([A-Z])$")


class SeatClass(str, enum.Enum):
    ECONOMY = "ECONOMY"
    PREMIUM_ECONOMY = "PREMIUM_ECONOMY"
    BUSINESS = "BUSINESS"
    FIRST = "FIRST"


class SeatStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    BOOKED = "BOOKED"
    BLOCKED = "BLOCKED"


class SeatPosition(str, enum.Enum):
    WINDOW = "WINDOW"
    AISLE = "AISLE"
    MIDDLE = "MIDDLE"


# Listing order for seat classes (declaration order)
SEAT_CLASS_ORDER = {seat_class: rank for rank, seat_class in enumerate(SeatClass)}

_POSITIONS = {
    "A": SeatPosition.WINDOW, "F": SeatPosition.WINDOW,
    "C": SeatPosition.AISLE, "D": SeatPosition.AISLE,
    "B": SeatPosition.MIDDLE, "E": SeatPosition.MIDDLE,
}


def parse_seat_number(seat_number: str) -> Optional[tuple[int, str]]:
    """Split '12C' into (12, 'C'). Returns None for malformed numbers."""
    match = SEAT_NUMBER_PATTERN.match(seat_number or "")
    if not match:
        return None
    return int(match.group(1)), match.group(2)


def seat_position(seat_number: str) -> Optional[SeatPosition]:
    if not seat_number:
        return None
    return _POSITIONS.get(seat_number[-1])


class Seat(Base, TimestampMixin):
    __tablename__ = "seats"

    id = Column(Integer, primary_key=True, index=True)
    flight_id = Column(Integer, ForeignKey("flights.id", ondelete="CASCADE"), nullable=False, index=True)
    seat_number = Column(String(5), nullable=False)
    seat_class = Column(
        Enum(SeatClass, name="seat_class", native_enum=False, create_constraint=True, length=20),
        nullable=False,
    )
    status = Column(
        Enum(SeatStatus, name="seat_status", native_enum=False, create_constraint=True, length=20),
        nullable=False,
        default=SeatStatus.AVAILABLE,
    )
    reservation_id = Column(Integer, ForeignKey("reservations.id"), nullable=True, index=True)

    __table_args__ = (
        UniqueConstraint("flight_id", "seat_number", name="uq_seat_flight_number"),
        Index("ix_seats_flight_status", "flight_id", "status"),
    )

    @property
    def position(self) -> Optional[SeatPosition]:
        return seat_position(self.seat_number)

    @property
    def is_available(self) -> bool:
        return self.status == SeatStatus.AVAILABLE

    def __repr__(self) -> str:
        return f"<Seat(id={self.id}, flight={self.flight_id}, number={self.seat_number}, status={self.status})>"
