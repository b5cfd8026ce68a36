from flight_booking.schemas.flight import FlightCreate, FlightResponse, FlightListResponse, FlightSyncResponse
from flight_booking.schemas.seat import SeatResponse, SeatStatisticsResponse
from flight_booking.schemas.reservation import (
    ReservationCreate, ReservationWithPaymentCreate, ReservationResponse, ReservationActionResponse,
)
from flight_booking.schemas.payment import PaymentRequest, PaymentResponse, PaymentReceipt

__all__ = [
    "FlightCreate", "FlightResponse", "FlightListResponse", "FlightSyncResponse",
    "SeatResponse", "SeatStatisticsResponse",
    "ReservationCreate", "ReservationWithPaymentCreate", "ReservationResponse", "ReservationActionResponse",
    "PaymentRequest", "PaymentResponse", "PaymentReceipt",
]
