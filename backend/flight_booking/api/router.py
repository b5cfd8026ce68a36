"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from flight_booking.api.routes import flights, seats, reservations, payments

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(flights.router)
api_router.include_router(seats.router)
api_router.include_router(reservations.router)
api_router.include_router(payments.router)
