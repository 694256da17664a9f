"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Race for the last seats
  locust -f locustfile.py --tags throughput   # Test cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
from locust import HttpUser, task, between, tag, events
from datetime import datetime, timezone, timedelta

# Shared state
SESSION_IDS = []
TRAINER_ID = None
CONCURRENCY_SESSION_ID = None


def random_email(prefix: str = "load") -> str:
    return f"{prefix}_{random.randint(100000, 999999)}@gym.test"


def register_member(client) -> int | None:
    resp = client.post("/api/v1/members", json={
        "first_name": "Load",
        "last_name": f"Member{random.randint(1, 99999)}",
        "email": random_email(),
    }, name="/api/v1/members")
    if resp.status_code == 201:
        return resp.json()["id"]
    return None


def ensure_trainer(client) -> int | None:
    global TRAINER_ID
    if TRAINER_ID is None:
        resp = client.post("/api/v1/trainers", json={
            "first_name": "Load",
            "last_name": "Coach",
            "email": random_email("coach"),
            "specialty": "spin",
        })
        if resp.status_code == 201:
            TRAINER_ID = resp.json()["id"]
    return TRAINER_ID


def class_payload(trainer_id: int, capacity: int, days_ahead: int) -> dict:
    # Random minute offset keeps the trainer free for every generated class
    start = datetime.now(timezone.utc) + timedelta(days=days_ahead, minutes=random.randint(0, 500_000))
    return {
        "name": f"Spin {random.randint(1, 10000)}",
        "category": "cycling",
        "trainer_id": trainer_id,
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(minutes=1)).isoformat(),
        "capacity": capacity,
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "="*60)
    print("SETUP: members and classes are created lazily by the first users")
    print("="*60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 members -> 10 seats

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM bookings WHERE class_session_id = X AND status = 'CONFIRMED';
    Should be <= 10, everyone else WAITLISTED.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.member_id = register_member(self.client)

        if not CONCURRENCY_SESSION_ID:
            trainer_id = ensure_trainer(self.client)
            if trainer_id:
                resp = self.client.post("/api/v1/classes/", json=class_payload(trainer_id, 10, 30))
                if resp.status_code == 201:
                    globals()["CONCURRENCY_SESSION_ID"] = resp.json()["id"]
                    print(f"\nCreated class {CONCURRENCY_SESSION_ID} with 10 seats\n")

    @tag("concurrency")
    @task
    def book_limited_seats(self):
        """All members fight for the same 10 seats."""
        if not CONCURRENCY_SESSION_ID or not self.member_id:
            return

        with self.client.post(f"/api/v1/classes/{CONCURRENCY_SESSION_ID}/bookings/",
            json={"member_id": self.member_id},
            name="/api/v1/classes/{id}/bookings/",
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()  # CONFIRMED or WAITLISTED
            elif resp.status_code == 409:
                resp.success()  # Duplicate or contention
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("concurrency")
    @task
    def check_roster(self):
        if not CONCURRENCY_SESSION_ID:
            return
        with self.client.get(f"/api/v1/classes/{CONCURRENCY_SESSION_ID}/roster",
            name="/api/v1/classes/{id}/roster",
            catch_response=True
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Unexpected: {resp.status_code}")
                return
            summary = resp.json()["summary"]
            if summary["confirmed"] > summary["capacity"]:
                resp.failure(f"Overbooked: {summary['confirmed']}/{summary['capacity']}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: Stop Redis, run again
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_classes_cached(self):
        page = random.randint(1, 5)
        self.client.get(f"/api/v1/classes/?page={page}&page_size=20",
            name="/api/v1/classes/ [cached]")

    @tag("throughput", "read")
    @task(3)
    def get_class_detail(self):
        if SESSION_IDS:
            self.client.get(f"/api/v1/classes/{random.choice(SESSION_IDS)}",
                name="/api/v1/classes/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_class(self):
        with self.client.post("/api/v1/classes/999999/bookings/",
            json={"member_id": 1},
            name="/api/v1/classes/[missing]/bookings/",
            catch_response=True
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def invalid_member_id(self):
        with self.client.post("/api/v1/classes/1/bookings/",
            json={"member_id": -5},
            name="/api/v1/classes/{id}/bookings/ [invalid]",
            catch_response=True
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def bogus_attendance_status(self):
        with self.client.patch("/api/v1/classes/1/attendance/1",
            json={"status": "LATE"},
            name="/api/v1/classes/{id}/attendance/{booking}",
            catch_response=True
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/classes/1/bookings/",
            data="not json at all",
            name="/api/v1/classes/{id}/bookings/ [garbage]",
            catch_response=True
        ) as resp:
            self._expect(resp, [400, 422])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic front desk workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

      - Mostly browsing the timetable
      - Some bookings and cancellations
      - Rare class creation
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.member_id = register_member(self.client)
        self.bookings = []

    @task(50)
    def browse_classes(self):
        resp = self.client.get("/api/v1/classes/?page=1&page_size=20")
        if resp.status_code == 200:
            for session in resp.json().get("sessions", []):
                if session["id"] not in SESSION_IDS:
                    SESSION_IDS.append(session["id"])

    @task(20)
    def view_roster(self):
        if SESSION_IDS:
            self.client.get(f"/api/v1/classes/{random.choice(SESSION_IDS)}/roster",
                name="/api/v1/classes/{id}/roster")

    @task(10)
    def book_class(self):
        if SESSION_IDS and self.member_id:
            session_id = random.choice(SESSION_IDS)
            resp = self.client.post(f"/api/v1/classes/{session_id}/bookings/",
                json={"member_id": self.member_id},
                name="/api/v1/classes/{id}/bookings/")
            if resp.status_code == 201 and resp.json()["status"] == "CONFIRMED":
                self.bookings.append((session_id, resp.json()["id"]))

    @task(4)
    def cancel_booking(self):
        if self.bookings:
            session_id, booking_id = self.bookings.pop(random.randrange(len(self.bookings)))
            self.client.delete(f"/api/v1/classes/{session_id}/bookings/{booking_id}",
                name="/api/v1/classes/{id}/bookings/{booking}")

    @task(3)
    def create_class(self):
        trainer_id = ensure_trainer(self.client)
        if trainer_id:
            resp = self.client.post("/api/v1/classes/",
                json=class_payload(trainer_id, random.randint(5, 40), random.randint(1, 90)))
            if resp.status_code == 201:
                SESSION_IDS.append(resp.json()["id"])
