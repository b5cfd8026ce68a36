"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test seat overselling
  locust -f locustfile.py --tags throughput   # Test cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
from locust import HttpUser, task, between, tag, events
from datetime import datetime, timezone, timedelta

# Shared state
FLIGHT_IDS = []
CONCURRENCY_FLIGHT_ID = None

VALID_CARD = "4539148803436467"
INVALID_CARD = "4539148803436466"


def random_passenger() -> dict:
    n = random.randint(10000, 99999)
    return {
        "passenger_name": f"Load Passenger {n}",
        "passenger_email": f"load_{n}@test.com",
        "passenger_phone": f"+4420{n}",
    }


def booking_payload(card: str = VALID_CARD) -> dict:
    details = random_passenger()
    return {**details, "card_number": card, "card_holder_name": details["passenger_name"]}


def flight_payload(total_seats: int, flight_number: str = None) -> dict:
    departure = datetime.now(timezone.utc) + timedelta(days=random.randint(1, 90))
    return {
        "flight_number": flight_number or f"LD{random.randint(1000, 9999)}",
        "airline": "Load Air",
        "origin": random.choice(["London", "Berlin", "Madrid"]),
        "destination": random.choice(["Paris", "Rome", "Lisbon"]),
        "departure_time": departure.isoformat(),
        "arrival_time": (departure + timedelta(hours=2)).isoformat(),
        "price": "99.00",
        "total_seats": total_seats,
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print("SETUP: concurrency flight is created by the first user")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users -> 10 seats

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM seats WHERE flight_id = X AND status = 'BOOKED';
    Should be <= 10, and equal to the CONFIRMED reservations for the flight.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        if CONCURRENCY_FLIGHT_ID:
            return
        resp = self.client.post("/api/v1/flights", json=flight_payload(10))
        if resp.status_code == 201:
            globals()["CONCURRENCY_FLIGHT_ID"] = resp.json()["id"]
            print(f"\nCreated flight {CONCURRENCY_FLIGHT_ID} with 10 seats\n")

    @tag("concurrency")
    @task(3)
    def book_auto_seat(self):
        """All users fight for the same 10 seats."""
        if not CONCURRENCY_FLIGHT_ID:
            return

        with self.client.post(
            f"/api/v1/reservations/flight/{CONCURRENCY_FLIGHT_ID}/with-payment",
            json=booking_payload(),
            name="/reservations/flight/{id}/with-payment",
            catch_response=True,
        ) as resp:
            if resp.status_code in (200, 400):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("concurrency")
    @task(1)
    def book_same_seat(self):
        """Everyone wants 1A; at most one may win."""
        if not CONCURRENCY_FLIGHT_ID:
            return

        with self.client.post(
            f"/api/v1/reservations/flight/{CONCURRENCY_FLIGHT_ID}/with-payment/seat/1A",
            json=booking_payload(),
            name="/reservations/flight/{id}/with-payment/seat/{seat}",
            catch_response=True,
        ) as resp:
            if resp.status_code in (200, 400):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_flights_cached(self):
        page = random.randint(1, 5)
        resp = self.client.get(
            f"/api/v1/flights?page={page}&page_size=20",
            name="/flights [cached]",
        )
        if resp.status_code == 200:
            for flight in resp.json().get("flights", []):
                if flight["id"] not in FLIGHT_IDS:
                    FLIGHT_IDS.append(flight["id"])

    @tag("throughput", "read")
    @task(5)
    def search_flights_cached(self):
        date = (datetime.now(timezone.utc) + timedelta(days=random.randint(1, 90))).date()
        self.client.get(
            "/api/v1/flights/search",
            params={"origin": "London", "destination": "Paris", "departure_date": date.isoformat()},
            name="/flights/search [cached]",
        )

    @tag("throughput", "read")
    @task(3)
    def seat_map(self):
        if FLIGHT_IDS:
            flight_id = random.choice(FLIGHT_IDS)
            self.client.get(f"/api/v1/seats/flight/{flight_id}/seat-map", name="/seats/flight/{id}/seat-map")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_flight(self):
        with self.client.post(
            "/api/v1/reservations/flight/999999/with-payment",
            json=booking_payload(),
            name="/reservations/flight/{missing}/with-payment",
            catch_response=True,
        ) as resp:
            self._expect(resp, (404,))

    @tag("edge")
    @task
    def invalid_card(self):
        if not FLIGHT_IDS:
            return
        with self.client.post(
            f"/api/v1/reservations/flight/{random.choice(FLIGHT_IDS)}/with-payment",
            json=booking_payload(INVALID_CARD),
            name="/reservations/flight/{id}/with-payment [bad card]",
            catch_response=True,
        ) as resp:
            self._expect(resp, (400,))

    @tag("edge")
    @task
    def malformed_seat(self):
        if not FLIGHT_IDS:
            return
        with self.client.post(
            f"/api/v1/reservations/flight/{random.choice(FLIGHT_IDS)}/with-payment/seat/ZZ99",
            json=booking_payload(),
            name="/reservations/flight/{id}/with-payment/seat/{bad}",
            catch_response=True,
        ) as resp:
            self._expect(resp, (400, 404))

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/reservations/flight/1/with-payment",
            data="not json at all",
            catch_response=True,
        ) as resp:
            self._expect(resp, (400, 422))

    @tag("edge")
    @task
    def cancel_unknown(self):
        with self.client.delete(
            "/api/v1/reservations/cancel/FL00000000",
            name="/reservations/cancel/{missing}",
            catch_response=True,
        ) as resp:
            self._expect(resp, (404,))


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.references = []

    @task(50)
    def browse_flights(self):
        resp = self.client.get("/api/v1/flights?page=1&page_size=20")
        if resp.status_code == 200:
            for flight in resp.json().get("flights", []):
                if flight["id"] not in FLIGHT_IDS:
                    FLIGHT_IDS.append(flight["id"])

    @task(20)
    def view_flight(self):
        if FLIGHT_IDS:
            self.client.get(f"/api/v1/flights/{random.choice(FLIGHT_IDS)}", name="/flights/{id}")

    @task(10)
    def book(self):
        if not FLIGHT_IDS:
            return
        resp = self.client.post(
            f"/api/v1/reservations/flight/{random.choice(FLIGHT_IDS)}/with-payment",
            json=booking_payload(),
            name="/reservations/flight/{id}/with-payment",
        )
        if resp.status_code == 200:
            self.references.append(resp.json()["booking_reference"])

    @task(2)
    def cancel(self):
        if self.references:
            reference = self.references.pop()
            self.client.delete(f"/api/v1/reservations/cancel/{reference}", name="/reservations/cancel/{ref}")

    @task(3)
    def create_flight(self):
        resp = self.client.post("/api/v1/flights", json=flight_payload(random.randint(10, 180)))
        if resp.status_code == 201:
            FLIGHT_IDS.append(resp.json()["id"])
