"""
Pydantic schemas for seat inventory responses.
"""

from typing import Optional
from pydantic import BaseModel

from flight_booking.models.seat import SeatClass, SeatStatus, SeatPosition


class SeatResponse(BaseModel):
    id: int
    flight_id: int
    seat_number: str
    seat_class: SeatClass
    status: SeatStatus
    position: Optional[SeatPosition] = None

    model_config = {"from_attributes": True}


class SeatStatisticsResponse(BaseModel):
    flight_id: int
    total_seats: int
    available_seats: int
    booked_seats: int
    blocked_seats: int
