"""
Reservation endpoints.

Each booking endpoint delegates to the reservation coordinator, which owns
the transaction; the listing cache is invalidated only after it commits.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from flight_booking.core.exceptions import ReservationNotFound
from flight_booking.db.session import get_db
from flight_booking.schemas.reservation import (
    ReservationCreate, ReservationWithPaymentCreate, ReservationResponse, ReservationActionResponse,
)
from flight_booking.schemas.seat import SeatResponse
from flight_booking.services import reservation_service, seat_service
from flight_booking.services.cache_service import invalidate_flight_cache

router = APIRouter(prefix="/reservations", tags=["Reservations"])


@router.post("/flight/{flight_id}/with-payment", response_model=ReservationResponse)
async def create_with_payment_endpoint(
    flight_id: int,
    booking: ReservationWithPaymentCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Book a seat and pay for it in one transaction.

    The flight price is charged first; on success a seat is auto-assigned
    (preferred class, window before aisle). Any failure leaves the
    reservation CANCELLED.
    """
    reservation = await reservation_service.create_with_payment(
        db, booking, flight_id, booking.card_number, booking.card_holder_name
    )
    await invalidate_flight_cache()
    return reservation


@router.post("/flight/{flight_id}/with-payment/seat/{seat_number}", response_model=ReservationResponse)
async def create_with_specific_seat_endpoint(
    flight_id: int,
    seat_number: str,
    booking: ReservationWithPaymentCreate,
    db: AsyncSession = Depends(get_db),
):
    """Book and pay for a named seat. Fails with SEAT_UNAVAILABLE if it is taken."""
    reservation = await reservation_service.create_with_specific_seat(
        db, booking, flight_id, seat_number, booking.card_number, booking.card_holder_name
    )
    await invalidate_flight_cache()
    return reservation


@router.post("/flight/{flight_id}", response_model=ReservationResponse)
async def create_without_payment_endpoint(
    flight_id: int,
    booking: ReservationCreate,
    db: AsyncSession = Depends(get_db),
):
    """Administrative booking without payment."""
    reservation = await reservation_service.create_without_payment(db, booking, flight_id)
    await invalidate_flight_cache()
    return reservation


@router.delete("/cancel/{booking_reference}", response_model=ReservationActionResponse)
async def cancel_reservation_endpoint(
    booking_reference: str,
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking and release its seats. 404 if unknown or already cancelled."""
    cancelled = await reservation_service.cancel_reservation(db, booking_reference)
    if not cancelled:
        raise ReservationNotFound(f"No active reservation with reference {booking_reference}")
    await invalidate_flight_cache()
    return ReservationActionResponse(
        message="Reservation cancelled successfully",
        booking_reference=booking_reference,
    )


@router.post("/change-seat/{booking_reference}/{new_seat_number}", response_model=ReservationActionResponse)
async def change_seat_endpoint(
    booking_reference: str,
    new_seat_number: str,
    db: AsyncSession = Depends(get_db),
):
    changed = await reservation_service.change_seat(db, booking_reference, new_seat_number)
    if not changed:
        raise ReservationNotFound(f"Reservation {booking_reference} not found")
    await invalidate_flight_cache()
    return ReservationActionResponse(
        message=f"Seat changed to {new_seat_number.strip().upper()}",
        booking_reference=booking_reference,
    )


@router.get("/flight/{flight_id}/available-seats", response_model=list[SeatResponse])
async def available_seats_endpoint(flight_id: int, db: AsyncSession = Depends(get_db)):
    return await seat_service.list_available(db, flight_id)


@router.get("/flight/{flight_id}/seat-map", response_model=list[list[SeatResponse]])
async def seat_map_endpoint(flight_id: int, db: AsyncSession = Depends(get_db)):
    return await seat_service.seat_map(db, flight_id)


@router.get("", response_model=list[ReservationResponse])
async def list_reservations_endpoint(db: AsyncSession = Depends(get_db)):
    return await reservation_service.list_all(db)


@router.get("/reference/{booking_reference}", response_model=ReservationResponse)
async def get_by_reference_endpoint(booking_reference: str, db: AsyncSession = Depends(get_db)):
    reservation = await reservation_service.get_by_booking_reference(db, booking_reference)
    if reservation is None:
        raise ReservationNotFound(f"Reservation {booking_reference} not found")
    return reservation


@router.get("/email/{email}", response_model=list[ReservationResponse])
async def list_by_email_endpoint(email: str, db: AsyncSession = Depends(get_db)):
    return await reservation_service.list_by_email(db, email)
