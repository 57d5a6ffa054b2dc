"""
Locust Load Test Suite

Accounts must be verified before they can book, so the booking scenarios
take pre-issued tokens from the environment:

  LOCUST_TOKENS      comma-separated bearer tokens of verified students
  LOCUST_POSTER_ID   poster to fight over (create it with e.g. 10 seats)

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overbooking
  locust -f locustfile.py --tags throughput   # Test cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
from itertools import cycle

from locust import HttpUser, task, between, tag, events

POSTER_IDS = []
TOKENS = [t.strip() for t in os.getenv("LOCUST_TOKENS", "").split(",") if t.strip()]
CONCURRENCY_POSTER_ID = int(os.getenv("LOCUST_POSTER_ID", "0")) or None

_token_cycle = cycle(TOKENS) if TOKENS else None


def next_headers() -> dict:
    if _token_cycle is None:
        return {}
    return {"Authorization": f"Bearer {next(_token_cycle)}"}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"tokens={len(TOKENS)} concurrency_poster={CONCURRENCY_POSTER_ID}")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users -> 10 seats

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify the ledger:
      SELECT p.seats - p.seats_left,
             (SELECT COALESCE(SUM(number_of_persons), 0) FROM ticket_bookings
              WHERE poster_id = p.id AND status IN ('pending', 'approved'))
      FROM posters p WHERE p.id = X;
    Both columns must match and never exceed seats.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = next_headers()

    @tag("concurrency")
    @task
    def book_limited_seats(self):
        """All users fight for the same seats."""
        if not CONCURRENCY_POSTER_ID or not self.headers:
            return

        with self.client.post("/api/v1/tickets/",
            json={"poster_id": CONCURRENCY_POSTER_ID, "number_of_persons": 1},
            headers=self.headers,
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 400:
                resp.success()  # Expected: sold out
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. With REDIS_ENABLED=false, run again
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_posters_cached(self):
        page = random.randint(1, 5)
        resp = self.client.get(f"/api/v1/posters/?page={page}&page_size=20",
            name="/api/v1/posters/ [cached]")
        if resp.status_code == 200:
            for poster in resp.json().get("posters", []):
                if poster["id"] not in POSTER_IDS:
                    POSTER_IDS.append(poster["id"])

    @tag("throughput", "read")
    @task(3)
    def get_poster_detail(self):
        if POSTER_IDS:
            self.client.get(f"/api/v1/posters/{random.choice(POSTER_IDS)}",
                name="/api/v1/posters/{id}")

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

    def on_start(self):
        self.headers = next_headers()

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_poster_id(self):
        with self.client.post("/api/v1/tickets/",
            json={"poster_id": 999999, "number_of_persons": 1},
            headers=self.headers, catch_response=True
        ) as resp:
            self._expect(resp, [401, 404])

    @tag("edge")
    @task
    def negative_persons(self):
        with self.client.post("/api/v1/tickets/",
            json={"poster_id": 1, "number_of_persons": -5},
            headers=self.headers, catch_response=True
        ) as resp:
            self._expect(resp, [401, 422])

    @tag("edge")
    @task
    def zero_persons(self):
        with self.client.post("/api/v1/tickets/",
            json={"poster_id": 1, "number_of_persons": 0},
            headers=self.headers, catch_response=True
        ) as resp:
            self._expect(resp, [401, 422])

    @tag("edge")
    @task
    def approve_as_student(self):
        """Students may not review tickets."""
        with self.client.put("/api/v1/tickets/1/approve",
            headers=self.headers, catch_response=True
        ) as resp:
            self._expect(resp, [401, 403, 404])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/tickets/",
            data="not json at all",
            headers=self.headers, catch_response=True
        ) as resp:
            self._expect(resp, [401, 422])

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post("/api/v1/tickets/",
            json={"poster_id": 1, "number_of_persons": 1},
            catch_response=True
        ) as resp:
            self._expect(resp, [401])
