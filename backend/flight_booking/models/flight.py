"""
Flight model with a denormalized available-seat counter.

Key design decisions:
- `available_seats` caches count(seats where status=AVAILABLE); the seats
  table is the authority and the counter is re-synchronized under a row lock
  at the end of every booking operation
- Composite index on (origin, destination, departure_time) backs flight search
- Seats are owned by the flight and deleted with it (ON DELETE CASCADE)
"""

from sqlalchemy import Column, Integer, String, DateTime, Numeric, Index, CheckConstraint

from flight_booking.db.base import Base, TimestampMixin


class Flight(Base, TimestampMixin):
    __tablename__ = "flights"

    id = Column(Integer, primary_key=True, index=True)
    flight_number = Column(String(20), unique=True, nullable=False, index=True)
    airline = Column(String(100), nullable=False)
    origin = Column(String(100), nullable=False)
    destination = Column(String(100), nullable=False)
    departure_time = Column(DateTime(timezone=True), nullable=False)
    arrival_time = Column(DateTime(timezone=True), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    total_seats = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_flight_price_non_negative"),
        CheckConstraint("total_seats > 0", name="check_flight_total_seats_positive"),
        CheckConstraint("available_seats >= 0", name="check_flight_available_non_negative"),
        CheckConstraint("available_seats <= total_seats", name="check_flight_available_lte_total"),
        Index("ix_flights_route_departure", "origin", "destination", "departure_time"),
    )

    def __repr__(self) -> str:
        return f"<Flight(id={self.id}, number={self.flight_number}, available={self.available_seats}/{self.total_seats})>"
