"""
Tests for flight catalog endpoints and the available-seat counter.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from flight_booking.models import Flight
from flight_booking.services.cache_service import flight_search_key

from conftest import DEPARTURE, create_flight


def _flight_json(flight_number: str = "FB500", total_seats: int = 30, **overrides) -> dict:
    payload = {
        "flight_number": flight_number,
        "airline": "Test Air",
        "origin": "London",
        "destination": "Paris",
        "departure_time": "2030-06-01T09:30:00Z",
        "arrival_time": "2030-06-01T10:50:00Z",
        "price": "149.50",
        "total_seats": total_seats,
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_create_flight(client: AsyncClient, db_session: AsyncSession):
    response = await client.post("/api/v1/flights", json=_flight_json())
    assert response.status_code == 201
    data = response.json()
    assert data["flight_number"] == "FB500"
    assert data["total_seats"] == 30
    assert data["available_seats"] == 30

    stats = (await client.get(f"/api/v1/seats/flight/{data['id']}/statistics")).json()
    assert stats["total_seats"] == 30
    assert stats["available_seats"] == 30


@pytest.mark.asyncio
async def test_create_duplicate_flight(client: AsyncClient, db_session: AsyncSession):
    await client.post("/api/v1/flights", json=_flight_json())
    response = await client.post("/api/v1/flights", json=_flight_json())
    assert response.status_code == 409
    assert response.json()["code"] == "DUPLICATE_FLIGHT"


@pytest.mark.asyncio
async def test_create_flight_validation(client: AsyncClient, db_session: AsyncSession):
    response = await client.post("/api/v1/flights", json=_flight_json(total_seats=0))
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"

    response = await client.post(
        "/api/v1/flights",
        json=_flight_json(arrival_time="2030-06-01T08:00:00Z"),
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_get_flight(client: AsyncClient, flight: Flight):
    response = await client.get(f"/api/v1/flights/{flight.id}")
    assert response.status_code == 200
    assert response.json()["available_seats"] == 12

    missing = await client.get("/api/v1/flights/999")
    assert missing.status_code == 404
    assert missing.json() == {"success": False, "code": "FLIGHT_NOT_FOUND", "message": "Flight 999 not found"}


@pytest.mark.asyncio
async def test_list_flights_pagination(client: AsyncClient, db_session: AsyncSession):
    for n in range(3):
        await create_flight(db_session, flight_number=f"FB10{n}", total_seats=6)

    page = (await client.get("/api/v1/flights", params={"page": 1, "page_size": 2})).json()
    assert page["total"] == 3
    assert len(page["flights"]) == 2
    assert page["cached"] is False

    second = (await client.get("/api/v1/flights", params={"page": 2, "page_size": 2})).json()
    assert len(second["flights"]) == 1


@pytest.mark.asyncio
async def test_search_flights(client: AsyncClient, db_session: AsyncSession):
    await create_flight(db_session, flight_number="FB100")
    await create_flight(db_session, flight_number="FB101", destination="Rome")
    await create_flight(db_session, flight_number="FB102", departure_time=DEPARTURE.replace(day=2),
                        arrival_time=DEPARTURE.replace(day=2, hour=11))

    response = await client.get(
        "/api/v1/flights/search",
        params={"origin": "london", "destination": "Paris", "departure_date": "2030-06-01"},
    )
    assert response.status_code == 200
    assert [f["flight_number"] for f in response.json()] == ["FB100"]


def test_search_cache_key_matches_query_normalization():
    day = DEPARTURE.date()
    assert flight_search_key("  London ", "PARIS ", day) == flight_search_key("london", "paris", day)
    assert flight_search_key("London", "Paris", day) != flight_search_key("London", "Rome", day)


@pytest.mark.asyncio
async def test_search_skips_sold_out_flights(client: AsyncClient, single_seat_flight: Flight):
    await client.post(f"/api/v1/seats/flight/{single_seat_flight.id}/1A/block")

    response = await client.get(
        "/api/v1/flights/search",
        params={"origin": "London", "destination": "Paris", "departure_date": "2030-06-01"},
    )
    assert response.json() == []


@pytest.mark.asyncio
async def test_origins_and_destinations(client: AsyncClient, db_session: AsyncSession):
    await create_flight(db_session, flight_number="FB100")
    await create_flight(db_session, flight_number="FB101", origin="Berlin", destination="Rome")

    assert (await client.get("/api/v1/flights/origins")).json() == ["Berlin", "London"]
    assert (await client.get("/api/v1/flights/destinations")).json() == ["Paris", "Rome"]


@pytest.mark.asyncio
async def test_synchronize_corrects_drift(client: AsyncClient, db_session: AsyncSession, flight: Flight):
    flight_id = flight.id
    await db_session.execute(update(Flight).where(Flight.id == flight_id).values(available_seats=3))
    await db_session.commit()

    response = await client.post(f"/api/v1/flights/{flight_id}/synchronize")
    assert response.status_code == 200
    assert response.json() == {"flight_id": flight_id, "available_seats": 12, "previous_available_seats": 3}


@pytest.mark.asyncio
async def test_health_and_metrics(client: AsyncClient):
    health = await client.get("/health")
    assert health.status_code == 200
    assert health.json()["cache"] == {"status": "disabled"}
    assert "X-Request-ID" in health.headers

    metrics = await client.get("/metrics")
    assert metrics.status_code == 200
    assert "booking_attempts_total" in metrics.text
