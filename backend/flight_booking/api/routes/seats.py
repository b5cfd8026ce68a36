"""
Seat administration endpoints: inventory views, statistics, block/unblock.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from flight_booking.db.session import get_db
from flight_booking.models.seat import SeatClass
from flight_booking.schemas.seat import SeatResponse, SeatStatisticsResponse
from flight_booking.services import flight_service, seat_service
from flight_booking.services.cache_service import invalidate_flight_cache

router = APIRouter(prefix="/seats", tags=["Seats"])


@router.get("/flight/{flight_id}", response_model=list[SeatResponse])
async def list_seats_endpoint(flight_id: int, db: AsyncSession = Depends(get_db)):
    await flight_service.get_flight(db, flight_id)
    return await seat_service.list_seats(db, flight_id)


@router.get("/flight/{flight_id}/available", response_model=list[SeatResponse])
async def list_available_endpoint(
    flight_id: int,
    seat_class: Optional[SeatClass] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    await flight_service.get_flight(db, flight_id)
    return await seat_service.list_available(db, flight_id, seat_class)


@router.get("/flight/{flight_id}/seat-map", response_model=list[list[SeatResponse]])
async def seat_map_endpoint(flight_id: int, db: AsyncSession = Depends(get_db)):
    await flight_service.get_flight(db, flight_id)
    return await seat_service.seat_map(db, flight_id)


@router.get("/flight/{flight_id}/statistics", response_model=SeatStatisticsResponse)
async def seat_statistics_endpoint(flight_id: int, db: AsyncSession = Depends(get_db)):
    await flight_service.get_flight(db, flight_id)
    counts = await seat_service.counts(db, flight_id)
    return SeatStatisticsResponse(
        flight_id=flight_id,
        total_seats=counts.total,
        available_seats=counts.available,
        booked_seats=counts.booked,
        blocked_seats=counts.blocked,
    )


@router.post("/flight/{flight_id}/{seat_number}/block", response_model=SeatResponse)
async def block_seat_endpoint(flight_id: int, seat_number: str, db: AsyncSession = Depends(get_db)):
    """Take an AVAILABLE seat out of sale."""
    seat = await seat_service.block_seat(db, flight_id, seat_number)
    await flight_service.synchronize_available_seats(db, flight_id)
    await db.commit()
    await invalidate_flight_cache()
    return seat


@router.post("/flight/{flight_id}/{seat_number}/unblock", response_model=SeatResponse)
async def unblock_seat_endpoint(flight_id: int, seat_number: str, db: AsyncSession = Depends(get_db)):
    """Return a BLOCKED seat to sale."""
    seat = await seat_service.unblock_seat(db, flight_id, seat_number)
    await flight_service.synchronize_available_seats(db, flight_id)
    await db.commit()
    await invalidate_flight_cache()
    return seat
