from flight_booking.models.flight import Flight
from flight_booking.models.seat import Seat, SeatClass, SeatStatus, SeatPosition
from flight_booking.models.reservation import Reservation, ReservationStatus
from flight_booking.models.payment import Payment, PaymentStatus

__all__ = [
    "Flight",
    "Seat", "SeatClass", "SeatStatus", "SeatPosition",
    "Reservation", "ReservationStatus",
    "Payment", "PaymentStatus",
]
