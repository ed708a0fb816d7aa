"""
Locust load tests for the booking engine.

Event creation needs an ADMIN token, which registration never hands out.
Export one before running (or point at an existing event):

  export LOAD_ADMIN_TOKEN=<jwt with role ADMIN>
  export CONCURRENCY_EVENT_ID=<id of a 10-seat event>   # optional

Scenarios:
  locust -f locustfile.py --tags concurrency  # 100 users race for 10 seats
  locust -f locustfile.py --tags ratelimit    # 6th booking per minute -> 429
  locust -f locustfile.py --tags throughput   # cached event listing
  locust -f locustfile.py --tags edge         # bad input
  locust -f locustfile.py                     # everything

Start the API with RATE_LIMIT_ENABLED=false for the concurrency scenario,
otherwise most of the traffic is absorbed by the rate limiter.
"""

import os
import random
import string
from datetime import datetime, timezone, timedelta

from locust import HttpUser, task, between, tag, events

ADMIN_HEADERS = (
    {"Authorization": f"Bearer {os.environ['LOAD_ADMIN_TOKEN']}"}
    if os.environ.get("LOAD_ADMIN_TOKEN") else {}
)

EVENT_IDS = []
CONCURRENCY_EVENT_ID = int(os.environ["CONCURRENCY_EVENT_ID"]) if os.environ.get("CONCURRENCY_EVENT_ID") else None


def random_email():
    return f"load_{random.randint(10000, 99999)}_{random.randint(0, 999)}@example.com"


def random_username():
    return "u_" + "".join(random.choices(string.ascii_lowercase, k=8))


def random_coordinates():
    return {"latitude": round(random.uniform(-60, 60), 4), "longitude": round(random.uniform(-180, 180), 4)}


def register_and_login(client) -> dict:
    email = random_email()
    client.post("/api/v1/auth/register", json={
        "email": email,
        "username": random_username(),
        "password": "loadtest123",
    })
    resp = client.post("/api/v1/auth/login", json={"email": email, "password": "loadtest123"})
    if resp.status_code == 200:
        return {"Authorization": f"Bearer {resp.json()['accessToken']}"}
    return {}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    if CONCURRENCY_EVENT_ID:
        print(f"Concurrency event: {CONCURRENCY_EVENT_ID}")
    elif ADMIN_HEADERS:
        print("Concurrency event will be created by the first user")
    else:
        print("No LOAD_ADMIN_TOKEN or CONCURRENCY_EVENT_ID: concurrency scenario idles")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    100 users -> 10 seats.

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    Afterwards:
      SELECT SUM(ticket_count) FROM bookings WHERE event_id = X AND status = 'CONFIRMED';
    must be <= 10, and events.available_seats must equal 10 minus that sum.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = register_and_login(self.client)

        if not CONCURRENCY_EVENT_ID and ADMIN_HEADERS:
            future = (datetime.now(timezone.utc) + timedelta(days=30)).isoformat()
            resp = self.client.post(
                "/api/v1/events",
                json={
                    "title": f"Concurrency Test Event {random.randint(1, 10**6)}",
                    "description": "10 seats only",
                    "date": future,
                    "location": "Test Arena",
                    "category": "Load Test",
                    "price": "10.00",
                    "capacity": 10,
                },
                headers=ADMIN_HEADERS,
            )
            if resp.status_code == 201:
                globals()["CONCURRENCY_EVENT_ID"] = resp.json()["id"]
                print(f"\nCreated event {CONCURRENCY_EVENT_ID} with 10 seats\n")

    @tag("concurrency")
    @task
    def book_limited_seats(self):
        """All users fight for the same 10 seats."""
        if not CONCURRENCY_EVENT_ID or not self.headers:
            return

        with self.client.post(
            "/api/v1/bookings",
            json={"eventId": CONCURRENCY_EVENT_ID, "tickets": 1, **random_coordinates()},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 200:
                resp.success()
            elif resp.status_code == 400 and resp.json().get("error") == "INSUFFICIENT_INVENTORY":
                resp.success()  # sold out
            elif resp.status_code in (409, 429):
                resp.success()  # lost the CAS race too often, or throttled
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class RateLimitUser(HttpUser):
    """
    One user books back to back; everything past 5 per minute must be 429.

    Run: locust -f locustfile.py --tags ratelimit -u 10 -r 10 --run-time 30s
    """
    wait_time = between(0.05, 0.2)

    def on_start(self):
        self.headers = register_and_login(self.client)

    @tag("ratelimit")
    @task
    def book_repeatedly(self):
        if not EVENT_IDS and not CONCURRENCY_EVENT_ID:
            return
        event_id = random.choice(EVENT_IDS) if EVENT_IDS else CONCURRENCY_EVENT_ID
        with self.client.post(
            "/api/v1/bookings",
            json={"eventId": event_id, "tickets": 1, **random_coordinates()},
            headers=self.headers,
            name="/api/v1/bookings [ratelimit]",
            catch_response=True,
        ) as resp:
            if resp.status_code == 429:
                if "Retry-After" not in resp.headers:
                    resp.failure("429 without Retry-After")
                else:
                    resp.success()
            elif resp.status_code in (200, 400, 404, 409):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    Cache effectiveness.

    Run twice, with and without Redis:
      locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
    and compare avg response time, requests/sec and P95/P99.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_events_cached(self):
        page = random.randint(1, 5)
        self.client.get(f"/api/v1/events?page={page}&pageSize=20", name="/api/v1/events [cached]")

    @tag("throughput", "read")
    @task(3)
    def search_events(self):
        keyword = random.choice(["concert", "test", "venue", "load"])
        self.client.get(f"/api/v1/events?keyword={keyword}", name="/api/v1/events?keyword [cached]")

    @tag("throughput", "read")
    @task(3)
    def get_event_detail(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}", name="/api/v1/events/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    Bad input must produce error bodies, never 500s.

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = register_and_login(self.client)

    def _expect(self, payload, allowed, name, headers=None, **kwargs):
        with self.client.post(
            "/api/v1/bookings",
            json=payload,
            headers=self.headers if headers is None else headers,
            name=name,
            catch_response=True,
            **kwargs,
        ) as resp:
            if resp.status_code in allowed:
                resp.success()
            else:
                resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_event_id(self):
        self._expect({"eventId": 999999, "tickets": 1, **random_coordinates()}, (404, 429), "edge: unknown event")

    @tag("edge")
    @task
    def negative_tickets(self):
        self._expect({"eventId": 1, "tickets": -5, **random_coordinates()}, (400, 429), "edge: negative tickets")

    @tag("edge")
    @task
    def zero_tickets(self):
        self._expect({"eventId": 1, "tickets": 0, **random_coordinates()}, (400, 429), "edge: zero tickets")

    @tag("edge")
    @task
    def huge_ticket_count(self):
        self._expect(
            {"eventId": 1, "tickets": 999999, **random_coordinates()},
            (400, 404, 409, 429),
            "edge: huge ticket count",
        )

    @tag("edge")
    @task
    def missing_location(self):
        self._expect({"eventId": 1, "tickets": 1}, (400, 429), "edge: missing location")

    @tag("edge")
    @task
    def missing_auth(self):
        self._expect({"eventId": 1, "tickets": 1, **random_coordinates()}, (401,), "edge: no auth", headers={})


class RealisticUser(HttpUser):
    """
    Mixed workload: mostly browsing, some bookings, rare admin edits.

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = register_and_login(self.client)

    @task(50)
    def browse_events(self):
        resp = self.client.get("/api/v1/events?page=1&pageSize=20")
        if resp.status_code == 200:
            for event in resp.json().get("events", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @task(20)
    def view_event(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}", name="/api/v1/events/{id}")

    @task(10)
    def book_tickets(self):
        if EVENT_IDS and self.headers:
            self.client.post(
                "/api/v1/bookings",
                json={"eventId": random.choice(EVENT_IDS), "tickets": random.randint(1, 3), **random_coordinates()},
                headers=self.headers,
            )

    @task(5)
    def my_bookings(self):
        if self.headers:
            self.client.get("/api/v1/bookings/my-bookings", headers=self.headers)

    @task(2)
    def create_event(self):
        if not ADMIN_HEADERS:
            return
        future = (datetime.now(timezone.utc) + timedelta(days=random.randint(1, 90))).isoformat()
        resp = self.client.post(
            "/api/v1/events",
            json={
                "title": f"Event {random.randint(1, 10**6)}",
                "description": "Load test event",
                "date": future,
                "location": "Venue",
                "category": random.choice(["Music", "Tech", "Sports"]),
                "price": f"{random.randint(0, 200)}.00",
                "capacity": random.randint(10, 500),
            },
            headers=ADMIN_HEADERS,
        )
        if resp.status_code == 201:
            EVENT_IDS.append(resp.json()["id"])
