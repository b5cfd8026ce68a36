"""
Reservation coordinator: the booking workflow as a state machine.

  PENDING --(payment SUCCESS + seat claimed)--> CONFIRMED
  PENDING --(any failure)---------------------> CANCELLED
  CONFIRMED --(explicit cancel)---------------> CANCELLED

TRANSACTION BOUNDARY
====================

Every public function here owns its transaction and commits exactly once,
after the final state (CONFIRMED or CANCELLED) has been written. Nothing is
committed in between, so no other transaction can observe a PENDING
reservation that already holds a seat, or a CONFIRMED one without one.

Failure handling:
  - Payment rejected      -> reservation committed CANCELLED, PaymentFailed
  - Seat claim failed     -> reservation committed CANCELLED, the SUCCESS
                             payment stays recorded (see list_unreconciled)
  - Lock timeout / DB err -> whole transaction rolled back, BookingSystemError

Lock order is always reservation row -> seat rows -> flight row, which
keeps concurrent bookings, cancellations and seat changes deadlock-free.
"""

import time
import uuid
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value

from flight_booking.core.exceptions import (
    BookingError, BookingSystemError, FlightNotFound, InvalidState,
    PaymentFailed, ReservationNotFound, SoldOut,
)
from flight_booking.core.logging import booking_context, get_logger
from flight_booking.core.metrics import booking_latency, record_booking_attempt
from flight_booking.db.base import utcnow
from flight_booking.models.flight import Flight
from flight_booking.models.reservation import Reservation, ReservationStatus
from flight_booking.models.seat import SeatClass
from flight_booking.schemas.reservation import PassengerDetails
from flight_booking.services import flight_service, payment_service, seat_service

logger = get_logger(__name__)

BOOKING_REFERENCE_PREFIX = "FL"
MAX_REFERENCE_ATTEMPTS = 5


def generate_booking_reference() -> str:
    return f"{BOOKING_REFERENCE_PREFIX}{uuid.uuid4().hex[:8].upper()}"


async def _new_booking_reference(db: AsyncSession) -> str:
    for _ in range(MAX_REFERENCE_ATTEMPTS):
        reference = generate_booking_reference()
        taken = await db.scalar(select(Reservation.id).where(Reservation.booking_reference == reference))
        if taken is None:
            return reference
    raise BookingSystemError("Could not allocate a booking reference, please retry")


async def create_with_payment(
    db: AsyncSession,
    request: PassengerDetails,
    flight_id: int,
    card_number: str,
    card_holder_name: str,
) -> Reservation:
    """Charge the flight price, then auto-pick a seat."""
    return await _book(
        db, request, flight_id,
        operation="with_payment",
        card=(card_number, card_holder_name),
    )


async def create_with_specific_seat(
    db: AsyncSession,
    request: PassengerDetails,
    flight_id: int,
    seat_number: str,
    card_number: str,
    card_holder_name: str,
) -> Reservation:
    """Charge the flight price, then claim the named seat."""
    return await _book(
        db, request, flight_id,
        operation="specific_seat",
        card=(card_number, card_holder_name),
        seat_number=seat_number,
    )


async def create_without_payment(
    db: AsyncSession,
    request: PassengerDetails,
    flight_id: int,
) -> Reservation:
    """Administrative override: auto-pick a seat and confirm without charging."""
    return await _book(db, request, flight_id, operation="without_payment")


async def _book(
    db: AsyncSession,
    request: PassengerDetails,
    flight_id: int,
    operation: str,
    card: Optional[tuple[str, str]] = None,
    seat_number: Optional[str] = None,
) -> Reservation:
    start = time.perf_counter()
    with booking_context(flight_id=flight_id, operation=operation):
        try:
            reservation_id = await _run_booking(db, request, flight_id, card, seat_number)
        except BookingError as exc:
            record_booking_attempt(operation, exc.code)
            raise
        except SQLAlchemyError as exc:
            await db.rollback()
            record_booking_attempt(operation, BookingSystemError.code)
            logger.error("booking_system_error", error=str(exc))
            raise BookingSystemError() from exc
        finally:
            booking_latency.labels(operation=operation).observe(time.perf_counter() - start)

        record_booking_attempt(operation, "confirmed")
        return await get_reservation(db, reservation_id)


async def _run_booking(
    db: AsyncSession,
    request: PassengerDetails,
    flight_id: int,
    card: Optional[tuple[str, str]],
    seat_number: Optional[str],
) -> int:
    flight = await db.get(Flight, flight_id)
    if flight is None:
        raise FlightNotFound(f"Flight {flight_id} not found")

    # Must run before any other write in this transaction
    await seat_service.initialize_seats(db, flight)

    if await seat_service.available_count(db, flight_id) == 0:
        logger.warning("booking_sold_out", flight_number=flight.flight_number)
        raise SoldOut(f"No available seats on flight {flight.flight_number}")

    reservation = Reservation(
        booking_reference=await _new_booking_reference(db),
        passenger_name=request.passenger_name,
        passenger_email=request.passenger_email,
        passenger_phone=request.passenger_phone,
        flight_id=flight_id,
        total_amount=flight.price,
        preferred_seat_class=request.preferred_seat_class or SeatClass.ECONOMY,
        status=ReservationStatus.PENDING,
    )
    db.add(reservation)
    await db.flush()
    reference = reservation.booking_reference
    logger.info("reservation_pending", booking_reference=reference, passenger_email=reservation.passenger_email)

    if card is not None:
        await _charge(db, reservation, flight, *card)

    try:
        if seat_number is not None:
            seat = await seat_service.claim_specific(db, flight_id, seat_number, reservation)
        else:
            seat = await seat_service.claim_auto(db, flight_id, reservation, reservation.preferred_seat_class)
    except BookingError as exc:
        await _cancel_pending(db, reservation, exc.code)
        raise

    await flight_service.synchronize_available_seats(db, flight_id)
    reservation.status = ReservationStatus.CONFIRMED
    await db.flush()
    await db.commit()

    logger.info(
        "reservation_confirmed",
        booking_reference=reference,
        seat_number=seat.seat_number,
        seat_class=seat.seat_class.value,
    )
    return reservation.id


async def _charge(
    db: AsyncSession,
    reservation: Reservation,
    flight: Flight,
    card_number: str,
    card_holder_name: str,
) -> None:
    """
    Anything other than a returned SUCCESS payment is a payment failure:
    the reservation is committed as CANCELLED and PaymentFailed is raised.
    """
    try:
        payment = await payment_service.process_payment(
            db, reservation.id, card_number, card_holder_name, flight.price
        )
    except SQLAlchemyError:
        raise
    except BookingError as exc:
        reason, detail = exc.code, exc.message
    except Exception as exc:
        logger.exception("payment_processor_error", booking_reference=reservation.booking_reference)
        reason, detail = "PROCESSOR_ERROR", str(exc)
    else:
        if payment is not None and payment.is_successful:
            logger.info(
                "payment_captured",
                booking_reference=reservation.booking_reference,
                transaction_id=payment.transaction_id,
            )
            return
        reason = "PAYMENT_NOT_SUCCESSFUL"
        detail = payment.failure_reason if payment is not None and payment.failure_reason else "payment was not approved"

    await _cancel_pending(db, reservation, reason)
    raise PaymentFailed(reason, f"{reason}: payment failed: {detail}. Reservation has been cancelled.")


async def _cancel_pending(db: AsyncSession, reservation: Reservation, reason: str) -> None:
    reservation.status = ReservationStatus.CANCELLED
    await db.flush()
    await db.commit()
    logger.warning("reservation_cancelled", booking_reference=reservation.booking_reference, reason=reason)


async def cancel_reservation(db: AsyncSession, booking_reference: str) -> bool:
    """
    Cancel a reservation and return its seats to inventory.
    Returns False when there is no such reservation or it is already cancelled.
    """
    with booking_context(booking_reference=booking_reference, operation="cancel"):
        try:
            reservation = await _lock_reservation(db, booking_reference)
            if reservation is None:
                logger.info("cancel_not_found")
                return False
            if reservation.status == ReservationStatus.CANCELLED:
                logger.info("cancel_already_cancelled")
                return False
            if not await _mark_cancelled(db, reservation):
                await db.rollback()
                logger.info("cancel_lost_race")
                return False

            flight_id = reservation.flight_id
            released = await seat_service.release(db, reservation.id)
            await flight_service.synchronize_available_seats(db, flight_id)
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error("cancel_system_error", error=str(exc))
            raise BookingSystemError() from exc

        record_booking_attempt("cancel", "cancelled")
        logger.info("reservation_cancelled", reason="requested", seats_released=released)
        return True


async def _mark_cancelled(db: AsyncSession, reservation: Reservation) -> bool:
    """Compare-and-set to CANCELLED; False if a concurrent cancel got there first."""
    result = await db.execute(
        update(Reservation)
        .where(Reservation.id == reservation.id, Reservation.status != ReservationStatus.CANCELLED)
        .values(status=ReservationStatus.CANCELLED, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return False
    await db.refresh(reservation)
    return True


async def change_seat(db: AsyncSession, booking_reference: str, new_seat_number: str) -> bool:
    """
    Move a CONFIRMED reservation to another seat on the same flight.

    The new seat is claimed before the old ones are released, so a failed
    claim leaves the reservation on its original seat. Returns False when
    the reservation does not exist.
    """
    seat_number = seat_service.normalize_seat_number(new_seat_number)
    with booking_context(booking_reference=booking_reference, operation="change_seat"):
        try:
            reservation = await _lock_reservation(db, booking_reference)
            if reservation is None:
                return False
            if reservation.status != ReservationStatus.CONFIRMED:
                raise InvalidState(
                    f"Seat change requires a CONFIRMED reservation (current status: {reservation.status.value})"
                )

            current = await seat_service.seats_for_reservation(db, reservation.id)
            if any(seat.seat_number == seat_number for seat in current):
                logger.info("seat_change_noop", seat_number=seat_number)
                await db.commit()
                return True

            flight_id = reservation.flight_id
            new_seat = await seat_service.claim_specific(db, flight_id, seat_number, reservation)
            await seat_service.release(db, reservation.id, exclude_seat_ids=[new_seat.id])
            await flight_service.synchronize_available_seats(db, flight_id)
            await db.commit()
        except BookingError as exc:
            # Releases the reservation row lock; nothing was changed
            await db.rollback()
            record_booking_attempt("change_seat", exc.code)
            raise
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error("seat_change_system_error", error=str(exc))
            raise BookingSystemError() from exc

        record_booking_attempt("change_seat", "changed")
        logger.info(
            "seat_changed",
            previous=[seat.seat_number for seat in current],
            seat_number=new_seat.seat_number,
        )
        return True


async def _lock_reservation(db: AsyncSession, booking_reference: str) -> Optional[Reservation]:
    result = await db.execute(
        select(Reservation)
        .where(Reservation.booking_reference == booking_reference)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _with_seats():
    return (
        select(Reservation)
        .options(selectinload(Reservation.seats))
        .execution_options(populate_existing=True)
    )


async def _attach_seats(db: AsyncSession, reservations: list[Reservation]) -> list[Reservation]:
    # Confirmed reservations always own a seat; reload explicitly if the
    # relationship came back empty from a stale identity map entry
    for reservation in reservations:
        if reservation.status == ReservationStatus.CONFIRMED and not reservation.seats:
            seats = await seat_service.seats_for_reservation(db, reservation.id)
            set_committed_value(reservation, "seats", seats)
    return reservations


async def get_reservation(db: AsyncSession, reservation_id: int) -> Reservation:
    result = await db.execute(_with_seats().where(Reservation.id == reservation_id))
    reservation = result.scalar_one_or_none()
    if reservation is None:
        raise ReservationNotFound(f"Reservation {reservation_id} not found")
    await _attach_seats(db, [reservation])
    return reservation


async def get_by_booking_reference(db: AsyncSession, booking_reference: str) -> Optional[Reservation]:
    result = await db.execute(_with_seats().where(Reservation.booking_reference == booking_reference))
    reservation = result.scalar_one_or_none()
    if reservation is not None:
        await _attach_seats(db, [reservation])
    return reservation


async def list_by_email(db: AsyncSession, email: str) -> list[Reservation]:
    result = await db.execute(
        _with_seats()
        .where(Reservation.passenger_email == email)
        .order_by(Reservation.booking_time.desc(), Reservation.id.desc())
    )
    return await _attach_seats(db, list(result.scalars().all()))


async def list_all(db: AsyncSession) -> list[Reservation]:
    result = await db.execute(_with_seats().order_by(Reservation.id))
    return await _attach_seats(db, list(result.scalars().all()))

