"""
Pydantic schemas for payment requests and receipts.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from flight_booking.models.payment import PaymentStatus


class PaymentRequest(BaseModel):
    reservation_id: int
    card_number: str = Field(..., min_length=1, max_length=40)
    card_holder_name: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)


class PaymentResponse(BaseModel):
    id: int
    reservation_id: int
    transaction_id: str
    payment_method: str
    amount: Decimal
    status: PaymentStatus
    payment_date: datetime
    processed_at: Optional[datetime] = None
    card_last_four: Optional[str] = None
    card_holder_name: Optional[str] = None
    payment_gateway_response: Optional[str] = None
    failure_reason: Optional[str] = None

    model_config = {"from_attributes": True}


class PaymentReceipt(BaseModel):
    success: bool
    message: str
    transaction_id: Optional[str] = None
    amount: Optional[Decimal] = None
    card_last_four: Optional[str] = None
    status: Optional[PaymentStatus] = None
