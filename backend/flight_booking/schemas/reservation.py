"""
Pydantic schemas for reservation-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from flight_booking.models.reservation import ReservationStatus
from flight_booking.models.seat import SeatClass
from flight_booking.schemas.seat import SeatResponse


class PassengerDetails(BaseModel):
    passenger_name: str = Field(..., min_length=1, max_length=255)
    passenger_email: EmailStr
    passenger_phone: str = Field(..., min_length=3, max_length=30)
    preferred_seat_class: Optional[SeatClass] = None


class ReservationCreate(PassengerDetails):
    """Administrative booking without payment."""


class ReservationWithPaymentCreate(PassengerDetails):
    card_number: str = Field(..., min_length=1, max_length=40)
    card_holder_name: str = Field(..., min_length=1, max_length=255)


class ReservationResponse(BaseModel):
    id: int
    booking_reference: str
    passenger_name: str
    passenger_email: str
    passenger_phone: str
    flight_id: int
    booking_time: datetime
    total_amount: Decimal
    preferred_seat_class: SeatClass
    status: ReservationStatus
    seats: list[SeatResponse]
    seat_numbers: str

    model_config = {"from_attributes": True}


class ReservationActionResponse(BaseModel):
    success: bool = True
    message: str
    booking_reference: str
