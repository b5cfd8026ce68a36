"""
Concurrent booking tests.

Each simulated request runs in its own session (own connection and
transaction), the way parallel API requests do. Whatever interleaving the
database allows, no seat may end up with two owners and the flight counter
must match the seat table.
"""

import asyncio
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import async_sessionmaker

from flight_booking.core.exceptions import BookingError, SeatUnavailable, SoldOut, NoSeatsAvailable
from flight_booking.models import Flight, Reservation, ReservationStatus, Seat, SeatStatus
from flight_booking.services import reservation_service

from conftest import DEPARTURE, VALID_CARD, assert_invariants, passenger


async def _book_specific(session_maker: async_sessionmaker, flight_id: int, seat_number: str, n: int):
    async with session_maker() as session:
        return await reservation_service.create_with_specific_seat(
            session,
            passenger(f"Passenger {n}", f"p{n}@example.com"),
            flight_id,
            seat_number,
            VALID_CARD,
            f"Passenger {n}",
        )


async def _book_auto(session_maker: async_sessionmaker, flight_id: int, n: int):
    async with session_maker() as session:
        return await reservation_service.create_with_payment(
            session,
            passenger(f"Passenger {n}", f"p{n}@example.com"),
            flight_id,
            VALID_CARD,
            f"Passenger {n}",
        )


@pytest.mark.asyncio
async def test_concurrent_claims_for_same_seat(session_factory, large_flight: Flight):
    """Two bookings race for 3A: exactly one wins, the other ends CANCELLED."""
    flight_id = large_flight.id

    results = await asyncio.gather(
        _book_specific(session_factory, flight_id, "3A", 1),
        _book_specific(session_factory, flight_id, "3A", 2),
        return_exceptions=True,
    )

    winners = [r for r in results if isinstance(r, Reservation)]
    losers = [r for r in results if isinstance(r, BaseException)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert isinstance(losers[0], SeatUnavailable)
    assert [s.seat_number for s in winners[0].seats] == ["3A"]

    async with session_factory() as session:
        statuses = sorted((await session.execute(select(Reservation.status))).scalars().all())
        flight = await session.get(Flight, flight_id)
        owners = (await session.execute(
            select(Seat.reservation_id).where(Seat.flight_id == flight_id, Seat.seat_number == "3A")
        )).scalars().all()

    assert statuses == sorted([ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED])
    assert flight.available_seats == 59
    assert owners == [winners[0].id]
    await assert_invariants(session_factory)


@pytest.mark.asyncio
async def test_concurrent_auto_bookings_get_distinct_seats(session_factory, large_flight: Flight):
    flight_id = large_flight.id
    bookings = 10

    results = await asyncio.gather(
        *[_book_auto(session_factory, flight_id, n) for n in range(bookings)],
        return_exceptions=True,
    )

    unexpected = [r for r in results if isinstance(r, BaseException) and not isinstance(r, BookingError)]
    assert unexpected == []
    confirmed = [r for r in results if isinstance(r, Reservation)]
    seat_numbers = [seat.seat_number for r in confirmed for seat in r.seats]
    assert len(seat_numbers) == len(set(seat_numbers))

    async with session_factory() as session:
        booked = await session.scalar(
            select(func.count(Seat.id)).where(Seat.flight_id == flight_id, Seat.status == SeatStatus.BOOKED)
        )
        flight = await session.get(Flight, flight_id)

    assert booked == len(confirmed)
    assert flight.available_seats == 60 - len(confirmed)
    await assert_invariants(session_factory)


@pytest.mark.asyncio
async def test_concurrent_bookings_never_oversell(session_factory, db_session):
    """Six passengers race for a three-seat flight."""
    from conftest import create_flight

    flight = await create_flight(db_session, flight_number="FB003", total_seats=3)
    flight_id = flight.id

    results = await asyncio.gather(
        *[_book_auto(session_factory, flight_id, n) for n in range(6)],
        return_exceptions=True,
    )

    confirmed = [r for r in results if isinstance(r, Reservation)]
    failures = [r for r in results if isinstance(r, BaseException)]
    assert len(confirmed) <= 3
    assert all(isinstance(f, (SoldOut, NoSeatsAvailable)) for f in failures)

    async with session_factory() as session:
        booked = await session.scalar(
            select(func.count(Seat.id)).where(Seat.flight_id == flight_id, Seat.status == SeatStatus.BOOKED)
        )
    assert booked == len(confirmed)
    await assert_invariants(session_factory)


@pytest.mark.asyncio
async def test_concurrent_cancel_is_applied_once(session_factory, large_flight: Flight):
    flight_id = large_flight.id
    reservation = await _book_auto(session_factory, flight_id, 1)

    async def cancel():
        async with session_factory() as session:
            return await reservation_service.cancel_reservation(session, reservation.booking_reference)

    results = await asyncio.gather(cancel(), cancel(), return_exceptions=True)
    assert sorted(results) == [False, True]

    async with session_factory() as session:
        flight = await session.get(Flight, flight_id)
    assert flight.available_seats == 60
    await assert_invariants(session_factory)


@pytest.mark.asyncio
async def test_concurrent_first_bookings_initialize_seats_once(session_factory, db_session):
    """Two bookings on a flight with no seat rows yet both try to create the cabin."""
    flight = Flight(
        flight_number="FB006",
        airline="Test Air",
        origin="London",
        destination="Paris",
        departure_time=DEPARTURE,
        arrival_time=DEPARTURE + timedelta(hours=1),
        price=Decimal("99.00"),
        total_seats=6,
        available_seats=6,
    )
    db_session.add(flight)
    await db_session.commit()
    flight_id = flight.id

    results = await asyncio.gather(
        _book_auto(session_factory, flight_id, 1),
        _book_auto(session_factory, flight_id, 2),
        return_exceptions=True,
    )

    unexpected = [r for r in results if isinstance(r, BaseException) and not isinstance(r, BookingError)]
    assert unexpected == []

    async with session_factory() as session:
        numbers = (await session.execute(
            select(Seat.seat_number).where(Seat.flight_id == flight_id)
        )).scalars().all()
    assert len(numbers) == 6
    assert len(set(numbers)) == 6
    await assert_invariants(session_factory)
