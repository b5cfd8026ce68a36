"""
Seat inventory: authoritative per-seat state for each flight.

CONCURRENCY STRATEGY: Row Lock + Compare-and-Set
=================================================

Problem:
  Two bookings read seat 3A as AVAILABLE at the same moment. Both set it
  to BOOKED. Result: one seat, two passengers.

Solution:
  Every claim is a two-step guarded write:

  1. SELECT ... FOR UPDATE on the single candidate seat row
  2. UPDATE seats SET status='BOOKED', reservation_id=:rid
     WHERE id = :seat_id AND status = 'AVAILABLE'
  3. rows_affected == 0 means another transaction got there first

  The row lock serializes claimers of the same seat on PostgreSQL; the
  status predicate in the UPDATE is the final safety net on backends
  without FOR UPDATE (SQLite serializes writers instead). Auto-pick locks
  only the chosen candidate, never the whole flight, and moves on to the
  next candidate when it loses a race, up to SEAT_CLAIM_MAX_ATTEMPTS.

  Lock waits are bounded by the connection's lock_timeout, so contention
  surfaces as a retriable system error instead of a hang.

Seat state machine:
  AVAILABLE -> BOOKED     (claim)
  BOOKED    -> AVAILABLE  (release)
  AVAILABLE <-> BLOCKED   (admin block / unblock)
  There is no BLOCKED -> BOOKED transition.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from flight_booking.core.config import get_settings
from flight_booking.core.exceptions import InvalidState, NoSeatsAvailable, SeatNotFound, SeatUnavailable
from flight_booking.core.logging import get_logger
from flight_booking.core.metrics import record_seat_transition, seat_claim_retries
from flight_booking.db.base import utcnow
from flight_booking.models.flight import Flight
from flight_booking.models.reservation import Reservation
from flight_booking.models.seat import (
    Seat, SeatClass, SeatStatus, SeatPosition,
    SEAT_LETTERS, SEAT_CLASS_ORDER, parse_seat_number,
)

logger = get_logger(__name__)
settings = get_settings()

SEATS_PER_ROW = len(SEAT_LETTERS)


@dataclass(frozen=True)
class SeatCounts:
    total: int
    available: int
    booked: int
    blocked: int


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def determine_seat_class(row: int, total_seats: int) -> SeatClass:
    """
    Cabin band for a row:
      rows 1-2                                -> FIRST
      rows 3..max(4, ceil(15% of rows))       -> BUSINESS
      following rows up to max(8, ceil(30%))  -> PREMIUM_ECONOMY
      remaining rows                          -> ECONOMY
    """
    total_rows = _ceil_div(total_seats, SEATS_PER_ROW)
    if row <= 2:
        return SeatClass.FIRST
    if row <= max(4, _ceil_div(total_rows * 15, 100)):
        return SeatClass.BUSINESS
    if row <= max(8, _ceil_div(total_rows * 30, 100)):
        return SeatClass.PREMIUM_ECONOMY
    return SeatClass.ECONOMY


def generate_seat_layout(total_seats: int) -> list[tuple[str, SeatClass]]:
    """Seat numbers and classes for a 6-across cabin, filled row by row."""
    if total_seats < 1:
        raise ValueError("Flight must have at least 1 seat")

    layout = []
    for index in range(total_seats):
        row = index // SEATS_PER_ROW + 1
        letter = SEAT_LETTERS[index % SEATS_PER_ROW]
        layout.append((f"{row}{letter}", determine_seat_class(row, total_seats)))
    return layout


def normalize_seat_number(seat_number: str) -> str:
    return (seat_number or "").strip().upper()


def seat_sort_key(seat: Seat) -> tuple:
    parsed = parse_seat_number(seat.seat_number)
    row, letter = parsed if parsed else (float("inf"), seat.seat_number)
    return SEAT_CLASS_ORDER[seat.seat_class], row, letter


def order_by_position_preference(candidates: list[Seat]) -> list[Seat]:
    """Windows first, then aisles, then everything else; stable within each group."""
    rank = {SeatPosition.WINDOW: 0, SeatPosition.AISLE: 1}
    return sorted(candidates, key=lambda seat: rank.get(seat.position, 2))


async def initialize_seats(db: AsyncSession, flight: Flight) -> int:
    """
    Create the flight's seats if it has none. Returns the number created.

    Idempotent. When two transactions initialize the same flight the loser
    hits the (flight_id, seat_number) unique constraint, rolls back its
    insert, and sees the winner's seats. Must run before the caller has
    other pending writes in the session.
    """
    if flight.id is None:
        raise ValueError("Flight must be persisted before seats can be initialized")

    existing = await db.scalar(select(func.count(Seat.id)).where(Seat.flight_id == flight.id))
    if existing:
        logger.debug("seats_already_initialized", flight_id=flight.id, seats=existing)
        return 0

    seats = [
        Seat(flight_id=flight.id, seat_number=number, seat_class=seat_class, status=SeatStatus.AVAILABLE)
        for number, seat_class in generate_seat_layout(flight.total_seats)
    ]
    db.add_all(seats)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        await db.refresh(flight)
        logger.info("seats_initialized_concurrently", flight_id=flight.id)
        return 0

    logger.info("seats_initialized", flight_id=flight.id, seats=len(seats))
    return len(seats)


async def list_seats(db: AsyncSession, flight_id: int) -> list[Seat]:
    result = await db.execute(select(Seat).where(Seat.flight_id == flight_id))
    return sorted(result.scalars().all(), key=seat_sort_key)


async def list_available(
    db: AsyncSession,
    flight_id: int,
    seat_class: Optional[SeatClass] = None,
) -> list[Seat]:
    """AVAILABLE seats ordered by (class, seat number)."""
    query = select(Seat).where(Seat.flight_id == flight_id, Seat.status == SeatStatus.AVAILABLE)
    if seat_class is not None:
        query = query.where(Seat.seat_class == seat_class)
    result = await db.execute(query)
    return sorted(result.scalars().all(), key=seat_sort_key)


async def seat_map(db: AsyncSession, flight_id: int) -> list[list[Seat]]:
    """Seats grouped by row, rows in order, seats in letter order."""
    result = await db.execute(select(Seat).where(Seat.flight_id == flight_id))
    rows: dict[int, list[tuple[str, Seat]]] = {}
    for seat in result.scalars().all():
        parsed = parse_seat_number(seat.seat_number)
        if parsed is None:
            logger.warning("invalid_seat_number", flight_id=flight_id, seat_number=seat.seat_number)
            continue
        row, letter = parsed
        rows.setdefault(row, []).append((letter, seat))

    return [[seat for _, seat in sorted(rows[row], key=lambda item: item[0])] for row in sorted(rows)]


async def counts(db: AsyncSession, flight_id: int) -> SeatCounts:
    result = await db.execute(
        select(Seat.status, func.count(Seat.id))
        .where(Seat.flight_id == flight_id)
        .group_by(Seat.status)
    )
    by_status = {status: count for status, count in result.all()}
    available = by_status.get(SeatStatus.AVAILABLE, 0)
    booked = by_status.get(SeatStatus.BOOKED, 0)
    blocked = by_status.get(SeatStatus.BLOCKED, 0)
    return SeatCounts(total=available + booked + blocked, available=available, booked=booked, blocked=blocked)


async def available_count(db: AsyncSession, flight_id: int) -> int:
    count = await db.scalar(
        select(func.count(Seat.id)).where(Seat.flight_id == flight_id, Seat.status == SeatStatus.AVAILABLE)
    )
    return count or 0


async def seats_for_reservation(db: AsyncSession, reservation_id: int) -> list[Seat]:
    result = await db.execute(
        select(Seat).where(Seat.reservation_id == reservation_id).order_by(Seat.id)
    )
    return list(result.scalars().all())


async def _lock_seat(db: AsyncSession, flight_id: int, seat_number: str) -> Optional[Seat]:
    result = await db.execute(
        select(Seat)
        .where(Seat.flight_id == flight_id, Seat.seat_number == seat_number)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _compare_and_set(db: AsyncSession, seat: Seat, reservation_id: int) -> bool:
    """AVAILABLE -> BOOKED only if nobody else moved the seat first."""
    result = await db.execute(
        update(Seat)
        .where(Seat.id == seat.id, Seat.status == SeatStatus.AVAILABLE)
        .values(status=SeatStatus.BOOKED, reservation_id=reservation_id, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return False
    await db.refresh(seat)
    record_seat_transition("claim")
    return True


async def claim_specific(
    db: AsyncSession,
    flight_id: int,
    seat_number: str,
    reservation: Reservation,
) -> Seat:
    """Claim the named seat for `reservation` or raise."""
    number = normalize_seat_number(seat_number)
    seat = await _lock_seat(db, flight_id, number)
    if seat is None:
        raise SeatNotFound(f"Seat {number} does not exist on flight {flight_id}")
    if seat.status != SeatStatus.AVAILABLE:
        raise SeatUnavailable(f"Seat {number} is not available (current status: {seat.status.value})")
    if not await _compare_and_set(db, seat, reservation.id):
        raise SeatUnavailable(f"Seat {number} was taken by another booking")

    logger.info(
        "seat_claimed",
        flight_id=flight_id,
        seat_number=number,
        reservation_id=reservation.id,
    )
    return seat


async def claim_auto(
    db: AsyncSession,
    flight_id: int,
    reservation: Reservation,
    preferred_class: Optional[SeatClass] = None,
) -> Seat:
    """
    Pick and claim a seat: preferred class if any are left (otherwise any
    class), window before aisle before middle. A candidate lost to a
    concurrent claimer is skipped in favour of the next one.
    """
    candidates: list[Seat] = []
    if preferred_class is not None:
        candidates = await list_available(db, flight_id, preferred_class)
        if not candidates:
            logger.info("preferred_class_unavailable", flight_id=flight_id, seat_class=preferred_class.value)
    if not candidates:
        candidates = await list_available(db, flight_id)
    if not candidates:
        raise NoSeatsAvailable(f"No available seats on flight {flight_id}")

    ordered = order_by_position_preference(candidates)
    for attempt, candidate in enumerate(ordered[:settings.SEAT_CLAIM_MAX_ATTEMPTS], start=1):
        seat = await _lock_seat(db, flight_id, candidate.seat_number)
        if seat is not None and seat.is_available and await _compare_and_set(db, seat, reservation.id):
            logger.info(
                "seat_auto_assigned",
                flight_id=flight_id,
                seat_number=seat.seat_number,
                seat_class=seat.seat_class.value,
                reservation_id=reservation.id,
                attempt=attempt,
            )
            return seat

        seat_claim_retries.inc()
        logger.info(
            "seat_claim_retry",
            flight_id=flight_id,
            seat_number=candidate.seat_number,
            attempt=attempt,
            reason="taken_concurrently",
        )

    raise NoSeatsAvailable(f"Could not assign a seat on flight {flight_id}, please try again")


async def release(
    db: AsyncSession,
    reservation_id: int,
    exclude_seat_ids: Iterable[int] = (),
) -> int:
    """Return every seat booked by the reservation to AVAILABLE. Returns the count."""
    query = (
        select(Seat)
        .where(Seat.reservation_id == reservation_id, Seat.status == SeatStatus.BOOKED)
        .order_by(Seat.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    excluded = list(exclude_seat_ids)
    if excluded:
        query = query.where(Seat.id.not_in(excluded))

    seats = list((await db.execute(query)).scalars().all())
    for seat in seats:
        seat.status = SeatStatus.AVAILABLE
        seat.reservation_id = None
    if seats:
        await db.flush()
        record_seat_transition("release", len(seats))
        logger.info(
            "seats_released",
            reservation_id=reservation_id,
            seats=[seat.seat_number for seat in seats],
        )
    return len(seats)


async def _transition(
    db: AsyncSession,
    flight_id: int,
    seat_number: str,
    expected: SeatStatus,
    target: SeatStatus,
) -> Seat:
    number = normalize_seat_number(seat_number)
    seat = await _lock_seat(db, flight_id, number)
    if seat is None:
        raise SeatNotFound(f"Seat {number} not found on flight {flight_id}")
    if seat.status != expected:
        raise InvalidState(
            f"Cannot move seat {number} to {target.value} - current status: {seat.status.value}"
        )
    seat.status = target
    await db.flush()
    return seat


async def block_seat(db: AsyncSession, flight_id: int, seat_number: str) -> Seat:
    seat = await _transition(db, flight_id, seat_number, SeatStatus.AVAILABLE, SeatStatus.BLOCKED)
    record_seat_transition("block")
    logger.info("seat_blocked", flight_id=flight_id, seat_number=seat.seat_number)
    return seat


async def unblock_seat(db: AsyncSession, flight_id: int, seat_number: str) -> Seat:
    seat = await _transition(db, flight_id, seat_number, SeatStatus.BLOCKED, SeatStatus.AVAILABLE)
    record_seat_transition("unblock")
    logger.info("seat_unblocked", flight_id=flight_id, seat_number=seat.seat_number)
    return seat
