"""
Pytest fixtures for test database, client, and flight data.

Tables are created and dropped around every test. The database defaults to
a file-backed SQLite database through aiosqlite so tests run without a
server; set TEST_DATABASE_URL to a PostgreSQL URL to exercise real row
locks.
"""

import os

os.environ.setdefault("TEST_DATABASE_URL", "sqlite+aiosqlite:///./test_flight_booking.db")
os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]
os.environ["REDIS_ENABLED"] = "false"

from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from flight_booking.main import app
from flight_booking.db.base import Base
from flight_booking.db.session import get_db
from flight_booking.models import Flight, Seat, SeatStatus, Reservation, ReservationStatus, Payment, PaymentStatus
from flight_booking.schemas.flight import FlightCreate
from flight_booking.schemas.reservation import PassengerDetails
from flight_booking.services import flight_service

TEST_DATABASE_URL = os.environ["TEST_DATABASE_URL"]

VALID_CARD = "4539 1488 0343 6467"
INVALID_CARD = "4539 1488 0343 6466"
DEPARTURE = datetime(2030, 6, 1, 9, 30, tzinfo=timezone.utc)

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def session_factory(db_session: AsyncSession) -> async_sessionmaker:
    """Independent sessions for simulating concurrent requests."""
    return TestSessionLocal


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def flight_data(flight_number: str = "FB100", total_seats: int = 12, **overrides) -> FlightCreate:
    values = {
        "flight_number": flight_number,
        "airline": "Test Air",
        "origin": "London",
        "destination": "Paris",
        "departure_time": DEPARTURE,
        "arrival_time": DEPARTURE + timedelta(hours=1, minutes=20),
        "price": Decimal("199.99"),
        "total_seats": total_seats,
    }
    values.update(overrides)
    return FlightCreate(**values)


def passenger(name: str = "Ada", email: str = "ada@example.com", **overrides) -> PassengerDetails:
    values = {
        "passenger_name": name,
        "passenger_email": email,
        "passenger_phone": "+44 20 7946 0000",
    }
    values.update(overrides)
    return PassengerDetails(**values)


def booking_payload(name: str = "Ada", email: str = "ada@example.com", **overrides) -> dict:
    payload = {
        "passenger_name": name,
        "passenger_email": email,
        "passenger_phone": "+44 20 7946 0000",
        "card_number": VALID_CARD,
        "card_holder_name": name,
    }
    payload.update(overrides)
    return payload


async def create_flight(session: AsyncSession, **kwargs) -> Flight:
    flight = await flight_service.create_flight(session, flight_data(**kwargs))
    await session.commit()
    return flight


@pytest_asyncio.fixture
async def flight(db_session: AsyncSession) -> Flight:
    """12-seat flight (rows 1-2, all FIRST) priced 199.99."""
    return await create_flight(db_session)


@pytest_asyncio.fixture
async def large_flight(db_session: AsyncSession) -> Flight:
    """60-seat flight: FIRST rows 1-2, BUSINESS 3-4, PREMIUM_ECONOMY 5-8, ECONOMY 9-10."""
    return await create_flight(db_session, flight_number="FB200", total_seats=60)


@pytest_asyncio.fixture
async def single_seat_flight(db_session: AsyncSession) -> Flight:
    return await create_flight(db_session, flight_number="FB001", total_seats=1)


async def assert_invariants(session_maker: async_sessionmaker) -> None:
    """Check the persisted state from a fresh session."""
    async with session_maker() as session:
        flights = (await session.execute(select(Flight))).scalars().all()
        seats = (await session.execute(select(Seat))).scalars().all()
        reservations = {r.id: r for r in (await session.execute(select(Reservation))).scalars().all()}
        payments = (await session.execute(select(Payment))).scalars().all()

        for f in flights:
            available = sum(1 for s in seats if s.flight_id == f.id and s.status == SeatStatus.AVAILABLE)
            assert f.available_seats == available, f"counter drift on {f.flight_number}"

        owned: dict[int, set[int]] = {}
        for s in seats:
            if s.status == SeatStatus.BOOKED:
                assert s.reservation_id in reservations
                assert reservations[s.reservation_id].status == ReservationStatus.CONFIRMED
                owned.setdefault(s.reservation_id, set()).add(s.id)
            else:
                assert s.reservation_id is None

        for r in reservations.values():
            if r.status == ReservationStatus.CONFIRMED:
                assert owned.get(r.id), f"{r.booking_reference} confirmed without a seat"
            else:
                assert r.id not in owned

        for p in payments:
            if p.status == PaymentStatus.SUCCESS:
                assert p.reservation_id in reservations

        references = [r.booking_reference for r in reservations.values()]
        assert len(references) == len(set(references))
        transaction_ids = [p.transaction_id for p in payments]
        assert len(transaction_ids) == len(set(transaction_ids))
