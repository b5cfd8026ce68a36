"""
Payment endpoints: direct charges and payment lookups.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from flight_booking.core.exceptions import PaymentNotFound
from flight_booking.db.session import get_db
from flight_booking.schemas.payment import PaymentRequest, PaymentResponse, PaymentReceipt
from flight_booking.services import payment_service

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/process", response_model=PaymentReceipt)
async def process_payment_endpoint(
    payment_request: PaymentRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Record a payment against an existing reservation.
    Does not assign seats or change the reservation status.
    """
    payment = await payment_service.process_payment(
        db,
        payment_request.reservation_id,
        payment_request.card_number,
        payment_request.card_holder_name,
        payment_request.amount,
    )
    await db.commit()
    return PaymentReceipt(
        success=True,
        message="Payment processed successfully",
        transaction_id=payment.transaction_id,
        amount=payment.amount,
        card_last_four=payment.card_last_four,
        status=payment.status,
    )


@router.get("/unreconciled", response_model=list[PaymentResponse])
async def list_unreconciled_endpoint(db: AsyncSession = Depends(get_db)):
    """Successful charges on cancelled reservations, awaiting refund."""
    return await payment_service.list_unreconciled(db)


@router.get("/transaction/{transaction_id}", response_model=PaymentResponse)
async def get_by_transaction_endpoint(transaction_id: str, db: AsyncSession = Depends(get_db)):
    payment = await payment_service.find_by_transaction_id(db, transaction_id)
    if payment is None:
        raise PaymentNotFound(f"Payment {transaction_id} not found")
    return payment


@router.get("/reservation/{reservation_id}", response_model=list[PaymentResponse])
async def list_for_reservation_endpoint(reservation_id: int, db: AsyncSession = Depends(get_db)):
    return await payment_service.list_for_reservation(db, reservation_id)
