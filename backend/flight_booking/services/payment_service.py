"""
Payment processor: card validation and append-only payment records.

The processor is a deterministic local validator. Any card number that
survives cleaning and the Luhn check is approved; there is no external
gateway. Payment rows are never updated once written.
"""

import re
import time
import uuid
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flight_booking.core.exceptions import InvalidAmount, InvalidCard, InvalidState, ReservationNotFound
from flight_booking.core.logging import get_logger
from flight_booking.core.metrics import record_payment
from flight_booking.db.base import utcnow
from flight_booking.models.payment import Payment, PaymentStatus
from flight_booking.models.reservation import Reservation, ReservationStatus

logger = get_logger(__name__)

PAYMENT_METHOD_CARD = "CREDIT_CARD"
GATEWAY_APPROVED = "APPROVED"

_CARD_SEPARATORS = re.compile(r"[\s-]")
_CARD_DIGITS = re.compile(r"^\d{13,19}$")
_CENTS = Decimal("0.01")


def clean_card_number(card_number: Optional[str]) -> str:
    return _CARD_SEPARATORS.sub("", card_number or "")


def luhn_check(digits: str) -> bool:
    """
    Walk from the rightmost digit, doubling every second one and folding
    doubled values above 9 back to a single digit. Valid when the sum is a
    multiple of 10.
    """
    total = 0
    for position, char in enumerate(reversed(digits)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit = digit // 10 + digit % 10
        total += digit
    return total % 10 == 0


def is_valid_card_number(card_number: Optional[str]) -> bool:
    digits = clean_card_number(card_number)
    return bool(_CARD_DIGITS.match(digits)) and luhn_check(digits)


def generate_transaction_id() -> str:
    return f"TXN{int(time.time() * 1000)}_{uuid.uuid4().hex[:8].upper()}"


def _to_amount(amount: Union[Decimal, int, float, str, None]) -> Optional[Decimal]:
    if amount is None:
        return None
    try:
        return Decimal(str(amount)).quantize(_CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return None


async def process_payment(
    db: AsyncSession,
    reservation_id: int,
    card_number: str,
    card_holder_name: str,
    amount: Union[Decimal, int, float, str],
) -> Payment:
    """
    Validate the card and amount, then record a SUCCESS payment.

    Raises InvalidCard, InvalidAmount, ReservationNotFound, or InvalidState
    when the reservation has already been paid for. Nothing is persisted on
    any of those paths.
    """
    if not is_valid_card_number(card_number):
        record_payment(InvalidCard.code)
        logger.warning("payment_rejected", reservation_id=reservation_id, reason=InvalidCard.code)
        raise InvalidCard("Invalid card number")

    value = _to_amount(amount)
    if value is None or value <= 0:
        record_payment(InvalidAmount.code)
        logger.warning("payment_rejected", reservation_id=reservation_id, reason=InvalidAmount.code)
        raise InvalidAmount(f"Invalid payment amount: {amount}")

    exists = await db.scalar(select(Reservation.id).where(Reservation.id == reservation_id))
    if exists is None:
        raise ReservationNotFound(f"Reservation {reservation_id} not found")

    if await has_successful_payment(db, reservation_id):
        raise InvalidState(f"Reservation {reservation_id} has already been paid")

    digits = clean_card_number(card_number)
    now = utcnow()
    payment = Payment(
        reservation_id=reservation_id,
        transaction_id=generate_transaction_id(),
        payment_method=PAYMENT_METHOD_CARD,
        amount=value,
        status=PaymentStatus.SUCCESS,
        payment_date=now,
        processed_at=now,
        card_last_four=digits[-4:],
        card_holder_name=card_holder_name,
        payment_gateway_response=GATEWAY_APPROVED,
    )
    db.add(payment)
    await db.flush()

    record_payment(PaymentStatus.SUCCESS.value)
    logger.info(
        "payment_processed",
        reservation_id=reservation_id,
        transaction_id=payment.transaction_id,
        amount=str(value),
    )
    return payment


async def has_successful_payment(db: AsyncSession, reservation_id: int) -> bool:
    payment_id = await db.scalar(
        select(Payment.id)
        .where(Payment.reservation_id == reservation_id, Payment.status == PaymentStatus.SUCCESS)
        .limit(1)
    )
    return payment_id is not None


async def find_by_transaction_id(db: AsyncSession, transaction_id: str) -> Optional[Payment]:
    result = await db.execute(select(Payment).where(Payment.transaction_id == transaction_id))
    return result.scalar_one_or_none()


async def list_for_reservation(db: AsyncSession, reservation_id: int) -> list[Payment]:
    """All payments for a reservation, newest first."""
    result = await db.execute(
        select(Payment)
        .where(Payment.reservation_id == reservation_id)
        .order_by(Payment.payment_date.desc(), Payment.id.desc())
    )
    return list(result.scalars().all())


async def list_unreconciled(db: AsyncSession) -> list[Payment]:
    """
    SUCCESS payments attached to CANCELLED reservations. These are charges
    whose seat could not be assigned or whose booking was cancelled later,
    and are the input to the manual refund process.
    """
    result = await db.execute(
        select(Payment)
        .join(Reservation, Reservation.id == Payment.reservation_id)
        .where(
            Payment.status == PaymentStatus.SUCCESS,
            Reservation.status == ReservationStatus.CANCELLED,
        )
        .order_by(Payment.id)
    )
    return list(result.scalars().all())
