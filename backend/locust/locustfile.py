"""
Locust Load Test Suite

Identity is issued elsewhere, so tokens are minted locally with the API's
SECRET_KEY. Point the users at seeded rows:

  LOAD_PARENT_ID, LOAD_CHILD_ID   a parent and their child
  LOAD_ADMIN_ID                   an admin (creates the test workshop)
  LOAD_SERVICE_ID, LOAD_ITEM_ID   a service and an item the child may book

Run scenarios:
  locust -f locustfile.py --tags occupancy    # Concurrent create/cancel
  locust -f locustfile.py --tags throughput   # Test cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
from datetime import datetime, timezone, timedelta

from locust import HttpUser, task, between, tag, events

from workshop_booking.core.security import create_access_token

PARENT_ID = int(os.getenv("LOAD_PARENT_ID", "2"))
CHILD_ID = int(os.getenv("LOAD_CHILD_ID", "3"))
ADMIN_ID = int(os.getenv("LOAD_ADMIN_ID", "1"))
SERVICE_ID = int(os.getenv("LOAD_SERVICE_ID", "1"))
ITEM_ID = int(os.getenv("LOAD_ITEM_ID", "1"))

# Shared state
ACTIVITY_IDS = []
OCCUPANCY_ACTIVITY_ID = None


def bearer(user_id: int, role: str) -> dict:
    token = create_access_token({"sub": str(user_id), "role": role})
    return {"Authorization": f"Bearer {token}"}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "="*60)
    print("SETUP: Creating occupancy test workshop...")
    print("="*60)


class OccupancyUser(HttpUser):
    """
    TEST 1: Occupancy - concurrent create/cancel on one workshop

    Run: locust -f locustfile.py --tags occupancy -u 100 -r 50 --run-time 30s

    After test, verify the cached count matches the rows:
      SELECT current_participants FROM activities WHERE id = X;
      SELECT COUNT(*) FROM bookings WHERE activity_id = X AND status != 'cancelled';
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = bearer(PARENT_ID, "parent")
        self.booking_ids = []

        if not OCCUPANCY_ACTIVITY_ID:
            starts_at = (datetime.now(timezone.utc) + timedelta(days=30)).isoformat()
            resp = self.client.post("/api/v1/activities/",
                json={
                    "service_id": SERVICE_ID,
                    "title": "Occupancy Test Workshop",
                    "starts_at": starts_at,
                    "max_participants": 20,
                },
                headers=bearer(ADMIN_ID, "admin")
            )
            if resp.status_code == 201:
                globals()["OCCUPANCY_ACTIVITY_ID"] = resp.json()["id"]
                print(f"\n✓ Created workshop {OCCUPANCY_ACTIVITY_ID}\n")

    @tag("occupancy")
    @task(3)
    def create_booking(self):
        if not OCCUPANCY_ACTIVITY_ID:
            return

        with self.client.post("/api/v1/bookings/",
            json={
                "subject_id": CHILD_ID,
                "payer_id": PARENT_ID,
                "activity_id": OCCUPANCY_ACTIVITY_ID,
                "line_items": [{"item_id": ITEM_ID}],
            },
            headers=self.headers,
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                self.booking_ids.append(resp.json()["id"])
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("occupancy")
    @task(2)
    def cancel_booking(self):
        if not self.booking_ids:
            return

        booking_id = self.booking_ids.pop(random.randrange(len(self.booking_ids)))
        with self.client.delete(f"/api/v1/bookings/{booking_id}",
            headers=self.headers,
            name="/api/v1/bookings/{id}",
            catch_response=True
        ) as resp:
            if resp.status_code in (200, 404):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


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
    def list_activities_cached(self):
        page = random.randint(1, 5)
        resp = self.client.get(f"/api/v1/activities/?page={page}&page_size=20",
            name="/api/v1/activities/ [cached]")
        if resp.status_code == 200:
            for activity in resp.json().get("activities", []):
                if activity["id"] not in ACTIVITY_IDS:
                    ACTIVITY_IDS.append(activity["id"])

    @tag("throughput", "read")
    @task(3)
    def get_activity_detail(self):
        if ACTIVITY_IDS:
            self.client.get(f"/api/v1/activities/{random.choice(ACTIVITY_IDS)}",
                name="/api/v1/activities/{id}")

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
        self.headers = bearer(PARENT_ID, "parent")

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_activity_id(self):
        with self.client.post("/api/v1/bookings/",
            json={"subject_id": CHILD_ID, "payer_id": PARENT_ID, "activity_id": 999999},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def missing_fields(self):
        with self.client.post("/api/v1/bookings/",
            json={"payer_id": PARENT_ID},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def unknown_item(self):
        with self.client.post("/api/v1/bookings/",
            json={
                "subject_id": CHILD_ID,
                "payer_id": PARENT_ID,
                "activity_id": OCCUPANCY_ACTIVITY_ID or 1,
                "line_items": [{"item_id": 999999}],
            },
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/bookings/",
            data="not json at all",
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post("/api/v1/bookings/",
            json={"subject_id": CHILD_ID, "payer_id": PARENT_ID, "activity_id": 1},
            catch_response=True
        ) as resp:
            self._expect(resp, [401])
