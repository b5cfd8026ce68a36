"""
Pydantic schemas for flight-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, model_validator


class FlightCreate(BaseModel):
    flight_number: str = Field(..., min_length=2, max_length=20, pattern=r"^[A-Z0-9]+$")
    airline: str = Field(..., min_length=1, max_length=100)
    origin: str = Field(..., min_length=1, max_length=100)
    destination: str = Field(..., min_length=1, max_length=100)
    departure_time: datetime
    arrival_time: datetime
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    total_seats: int = Field(..., gt=0, le=1000)

    @model_validator(mode="after")
    def arrival_after_departure(self):
        if self.arrival_time <= self.departure_time:
            raise ValueError("arrival_time must be after departure_time")
        return self


class FlightResponse(BaseModel):
    id: int
    flight_number: str
    airline: str
    origin: str
    destination: str
    departure_time: datetime
    arrival_time: datetime
    price: Decimal
    total_seats: int
    available_seats: int

    model_config = {"from_attributes": True}


class FlightListResponse(BaseModel):
    flights: list[FlightResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False


class FlightSyncResponse(BaseModel):
    flight_id: int
    available_seats: int
    previous_available_seats: Optional[int] = None
