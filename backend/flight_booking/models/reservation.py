"""
Reservation model: one passenger booking on one flight.

Lifecycle: PENDING -> CONFIRMED (payment captured and seat claimed) or
PENDING -> CANCELLED (any failure). CONFIRMED -> CANCELLED only through an
explicit cancel. Only the reservation service writes `status`.

Owned seats are a read-only view over seats.reservation_id; seat ownership
changes go through the seat service, never through this collection.
"""

import enum

from sqlalchemy import Column, Integer, String, DateTime, Numeric, ForeignKey, Enum, CheckConstraint
from sqlalchemy.orm import relationship

from flight_booking.db.base import Base, TimestampMixin, utcnow
from flight_booking.models.seat import SeatClass


class ReservationStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class Reservation(Base, TimestampMixin):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    booking_reference = Column(String(10), unique=True, nullable=False, index=True)
    passenger_name = Column(String(255), nullable=False)
    passenger_email = Column(String(255), nullable=False, index=True)
    passenger_phone = Column(String(30), nullable=False)
    flight_id = Column(Integer, ForeignKey("flights.id"), nullable=False, index=True)
    booking_time = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    total_amount = Column(Numeric(10, 2), nullable=False)
    preferred_seat_class = Column(
        Enum(SeatClass, name="preferred_seat_class", native_enum=False, create_constraint=True, length=20),
        nullable=False,
        default=SeatClass.ECONOMY,
    )
    status = Column(
        Enum(ReservationStatus, name="reservation_status", native_enum=False, create_constraint=True, length=20),
        nullable=False,
        default=ReservationStatus.PENDING,
    )

    seats = relationship(
        "Seat",
        primaryjoin="Reservation.id == foreign(Seat.reservation_id)",
        viewonly=True,
        lazy="selectin",
        order_by="Seat.id",
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="check_reservation_amount_non_negative"),
    )

    @property
    def seat_numbers(self) -> str:
        if not self.seats:
            return "Not assigned"
        return ", ".join(seat.seat_number for seat in self.seats)

    def __repr__(self) -> str:
        return f"<Reservation(id={self.id}, ref={self.booking_reference}, flight={self.flight_id}, status={self.status})>"
