"""
Flight catalog endpoints with Redis caching on list and search operations.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from flight_booking.db.session import get_db
from flight_booking.schemas.flight import FlightCreate, FlightResponse, FlightListResponse, FlightSyncResponse
from flight_booking.services import flight_service
from flight_booking.services.cache_service import (
    flight_list_key, flight_search_key, get_cached, set_cached, invalidate_flight_cache,
)
from flight_booking.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/flights", tags=["Flights"])


@router.post("", response_model=FlightResponse, status_code=status.HTTP_201_CREATED)
async def create_flight_endpoint(
    flight_data: FlightCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a flight and its seat inventory."""
    flight = await flight_service.create_flight(db, flight_data)
    await db.commit()
    await invalidate_flight_cache()
    return flight


@router.get("", response_model=FlightListResponse)
async def list_flights_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """
    List flights with pagination.
    Cached in Redis; invalidated whenever seat availability changes.
    """
    key = flight_list_key(page, page_size)
    cached = await get_cached(key)
    if cached:
        cached["cached"] = True
        return FlightListResponse(**cached)

    flights, total = await flight_service.list_flights(db, page, page_size)
    response_data = {
        "flights": [FlightResponse.model_validate(f).model_dump(mode="json") for f in flights],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }
    await set_cached(key, response_data)
    return FlightListResponse(**response_data)


@router.get("/search", response_model=list[FlightResponse])
async def search_flights_endpoint(
    origin: str = Query(..., min_length=1),
    destination: str = Query(..., min_length=1),
    departure_date: date = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Flights on a route departing on the given day with seats left."""
    key = flight_search_key(origin, destination, departure_date)
    cached = await get_cached(key)
    if cached:
        return [FlightResponse(**f) for f in cached["flights"]]

    flights = await flight_service.search_flights(db, origin, destination, departure_date)
    payload = [FlightResponse.model_validate(f).model_dump(mode="json") for f in flights]
    await set_cached(key, {"flights": payload})
    return flights


@router.get("/origins", response_model=list[str])
async def list_origins_endpoint(db: AsyncSession = Depends(get_db)):
    return await flight_service.list_origins(db)


@router.get("/destinations", response_model=list[str])
async def list_destinations_endpoint(db: AsyncSession = Depends(get_db)):
    return await flight_service.list_destinations(db)


@router.get("/{flight_id}", response_model=FlightResponse)
async def get_flight_endpoint(
    flight_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get a single flight by ID. Not cached (needs real-time seat counts)."""
    return await flight_service.get_flight(db, flight_id)


@router.post("/{flight_id}/synchronize", response_model=FlightSyncResponse)
async def synchronize_flight_endpoint(
    flight_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Recompute available_seats from the seat inventory."""
    flight = await flight_service.get_flight(db, flight_id)
    previous = flight.available_seats
    flight = await flight_service.synchronize_available_seats(db, flight_id)
    await db.commit()
    if previous != flight.available_seats:
        logger.warning("available_seats_drift_corrected", flight_id=flight_id, previous=previous, available=flight.available_seats)
        await invalidate_flight_cache()
    return FlightSyncResponse(
        flight_id=flight.id,
        available_seats=flight.available_seats,
        previous_available_seats=previous,
    )
