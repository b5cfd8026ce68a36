"""
Flight catalog and the denormalized available-seat counter.
"""

from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from flight_booking.core.exceptions import DuplicateFlight, FlightNotFound
from flight_booking.core.logging import get_logger
from flight_booking.models.flight import Flight
from flight_booking.schemas.flight import FlightCreate
from flight_booking.services import seat_service

logger = get_logger(__name__)


async def create_flight(db: AsyncSession, flight_data: FlightCreate) -> Flight:
    """Create a flight together with its full seat inventory."""
    existing = await db.scalar(select(Flight.id).where(Flight.flight_number == flight_data.flight_number))
    if existing is not None:
        raise DuplicateFlight(f"Flight {flight_data.flight_number} already exists")

    flight = Flight(
        flight_number=flight_data.flight_number,
        airline=flight_data.airline,
        origin=flight_data.origin,
        destination=flight_data.destination,
        departure_time=flight_data.departure_time,
        arrival_time=flight_data.arrival_time,
        price=flight_data.price,
        total_seats=flight_data.total_seats,
        available_seats=flight_data.total_seats,  # All seats available initially
    )
    db.add(flight)
    await db.flush()

    await seat_service.initialize_seats(db, flight)
    await synchronize_available_seats(db, flight.id)

    logger.info(
        "flight_created",
        flight_id=flight.id,
        flight_number=flight.flight_number,
        seats=flight.total_seats,
    )
    return flight


async def get_flight(db: AsyncSession, flight_id: int) -> Flight:
    """Get a single flight by ID."""
    result = await db.execute(select(Flight).where(Flight.id == flight_id))
    flight = result.scalar_one_or_none()

    if not flight:
        raise FlightNotFound(f"Flight {flight_id} not found")
    return flight


async def list_flights(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Flight], int]:
    """List flights by departure time with pagination."""
    total = await db.scalar(select(func.count(Flight.id)))

    result = await db.execute(
        select(Flight)
        .order_by(Flight.departure_time.asc(), Flight.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total or 0


async def search_flights(
    db: AsyncSession,
    origin: str,
    destination: str,
    departure_date: date,
) -> list[Flight]:
    """
    Flights on the route departing during the given (UTC) day that still
    have seats. Backed by the ix_flights_route_departure index.
    """
    day_start = datetime.combine(departure_date, time.min, tzinfo=timezone.utc)
    day_end = day_start + timedelta(days=1)

    result = await db.execute(
        select(Flight)
        .where(
            func.lower(Flight.origin) == origin.strip().lower(),
            func.lower(Flight.destination) == destination.strip().lower(),
            Flight.departure_time >= day_start,
            Flight.departure_time < day_end,
            Flight.available_seats > 0,
        )
        .order_by(Flight.departure_time.asc())
    )
    return list(result.scalars().all())


async def list_origins(db: AsyncSession) -> list[str]:
    result = await db.execute(select(Flight.origin).distinct().order_by(Flight.origin))
    return list(result.scalars().all())


async def list_destinations(db: AsyncSession) -> list[str]:
    result = await db.execute(select(Flight.destination).distinct().order_by(Flight.destination))
    return list(result.scalars().all())


async def synchronize_available_seats(db: AsyncSession, flight_id: int) -> Flight:
    """
    Recompute `available_seats` from the seats table under a flight row lock.

    Called at the end of every seat-changing operation. Holding the flight
    row lock while counting makes concurrent recomputations apply in order,
    so the last writer always stores a count that includes every committed
    claim before it.
    """
    result = await db.execute(
        select(Flight)
        .where(Flight.id == flight_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    flight = result.scalar_one_or_none()
    if flight is None:
        raise FlightNotFound(f"Flight {flight_id} not found")

    available = await seat_service.available_count(db, flight_id)
    if flight.available_seats != available:
        logger.debug(
            "available_seats_synchronized",
            flight_id=flight_id,
            previous=flight.available_seats,
            available=available,
        )
    flight.available_seats = available
    await db.flush()
    return flight
