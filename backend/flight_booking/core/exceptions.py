"""
Domain errors raised by the booking core.

Every error carries a stable `code` (the kind surfaced to clients) and the
HTTP status the API layer maps it to. Services raise these instead of
HTTPException so the coordinator can decide the transactional outcome
before anything reaches the transport layer.
"""

from typing import Optional

from fastapi import status


class BookingError(Exception):
    code = "BOOKING_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Booking operation failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"success": False, "code": self.code, "message": self.message}


class FlightNotFound(BookingError):
    code = "FLIGHT_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Flight not found"


class ReservationNotFound(BookingError):
    code = "RESERVATION_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Reservation not found"


class PaymentNotFound(BookingError):
    code = "PAYMENT_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Payment not found"


class DuplicateFlight(BookingError):
    code = "DUPLICATE_FLIGHT"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Flight number already exists"


class SoldOut(BookingError):
    code = "SOLD_OUT"
    default_message = "No available seats on this flight"


class SeatNotFound(BookingError):
    code = "SEAT_NOT_FOUND"
    default_message = "Seat does not exist on this flight"


class SeatUnavailable(BookingError):
    code = "SEAT_UNAVAILABLE"
    default_message = "Seat is not available"


class NoSeatsAvailable(BookingError):
    code = "NO_SEATS_AVAILABLE"
    default_message = "No seat could be assigned"


class InvalidCard(BookingError):
    code = "INVALID_CARD"
    default_message = "Invalid card number"


class InvalidAmount(BookingError):
    code = "INVALID_AMOUNT"
    default_message = "Invalid payment amount"


class InvalidState(BookingError):
    code = "INVALID_STATE"
    default_message = "Operation not permitted in the current state"


class PaymentFailed(BookingError):
    """Wraps whatever made the processor fail; `reason` is the inner kind."""

    code = "PAYMENT_FAILED"
    default_message = "Payment failed. Reservation has been cancelled."

    def __init__(self, reason: str, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message)

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["reason"] = self.reason
        return body


class BookingSystemError(BookingError):
    """Lock timeout or persistence fault. Safe for the client to retry."""

    code = "SYSTEM_ERROR"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Booking could not be completed, please retry"
