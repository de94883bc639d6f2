"""
Locust Load Test Suite

Targets an event that already exists in the database (seed it first):

  export LOAD_EVENT_ID=1 LOAD_CATEGORY_ID=1 LOAD_CUSTOMER_IDS=1-500

Run scenarios:
  locust -f locustfile.py --tags contention  # Fight over one category
  locust -f locustfile.py --tags read        # Availability reads
  locust -f locustfile.py --tags edge        # Bad input
  locust -f locustfile.py                    # All tests

After a contention run, verify nothing was oversold:
  SELECT available_quantity FROM ticket_categories WHERE id = :category;   -- >= 0
  SELECT SUM(quantity) FROM booking_details WHERE ticket_category_id = :category;
The two must add up to total_quantity.
"""

import os
import random
from locust import HttpUser, task, between, tag

from startickets.core.security import create_access_token

EVENT_ID = int(os.environ.get("LOAD_EVENT_ID", "1"))
CATEGORY_ID = int(os.environ.get("LOAD_CATEGORY_ID", "1"))
PROMO_CODE = os.environ.get("LOAD_PROMO_CODE")


def _customer_ids() -> list[int]:
    start, _, end = os.environ.get("LOAD_CUSTOMER_IDS", "1-100").partition("-")
    return list(range(int(start), int(end or start) + 1))


CUSTOMER_IDS = _customer_ids()


def customer_headers() -> dict:
    token = create_access_token({"sub": str(random.choice(CUSTOMER_IDS)), "role": 3})
    return {"Authorization": f"Bearer {token}"}


class ContentionUser(HttpUser):
    """
    TEST 1: Contention - many customers, one ticket category

    Run: locust -f locustfile.py --tags contention -u 200 -r 100 --run-time 30s

    Every request is either 201 (tickets bought) or 409 INSUFFICIENT_STOCK.
    Anything else, especially a 503, is a failure.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = customer_headers()

    @tag("contention")
    @task
    def buy_one_ticket(self):
        payload = {
            "event_id": EVENT_ID,
            "lines": [{"ticket_category_id": CATEGORY_ID, "quantity": 1}],
        }
        if PROMO_CODE:
            payload["promo_code"] = PROMO_CODE

        with self.client.post(
            "/api/v1/checkout",
            json=payload,
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409 and resp.json().get("error_kind") == "INSUFFICIENT_STOCK":
                resp.success()  # Expected: sold out
            else:
                resp.failure(f"Unexpected: {resp.status_code} {resp.text[:200]}")


class AvailabilityUser(HttpUser):
    """
    TEST 2: Availability reads while checkouts are running

    Run: locust -f locustfile.py --tags read -u 100 -r 20 --run-time 60s
    """
    wait_time = between(0.1, 0.5)

    @tag("read")
    @task(10)
    def event_availability(self):
        with self.client.get(
            f"/api/v1/events/{EVENT_ID}",
            name="/api/v1/events/{id}",
            catch_response=True,
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Unexpected: {resp.status_code}")
                return
            for category in resp.json()["ticket_categories"]:
                if category["available_quantity"] < 0:
                    resp.failure(f"Negative stock for category {category['id']}")

    @tag("read")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, every response carries the expected error kind.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = customer_headers()

    def _expect(self, payload: dict, status_code: int, error_kind: str, name: str):
        with self.client.post(
            "/api/v1/checkout",
            json=payload,
            headers=self.headers,
            name=name,
            catch_response=True,
        ) as resp:
            if resp.status_code == status_code and resp.json().get("error_kind") == error_kind:
                resp.success()
            else:
                resp.failure(f"Expected {status_code} {error_kind}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_event(self):
        self._expect(
            {"event_id": 999999, "lines": [{"ticket_category_id": CATEGORY_ID, "quantity": 1}]},
            404, "EVENT_NOT_FOUND", "checkout [unknown event]",
        )

    @tag("edge")
    @task
    def empty_cart(self):
        self._expect(
            {"event_id": EVENT_ID, "lines": [{"ticket_category_id": CATEGORY_ID, "quantity": 0}]},
            422, "NO_LINES_SELECTED", "checkout [empty cart]",
        )

    @tag("edge")
    @task
    def too_many_per_line(self):
        self._expect(
            {"event_id": EVENT_ID, "lines": [{"ticket_category_id": CATEGORY_ID, "quantity": 999}]},
            422, "INVALID_QUANTITY", "checkout [quantity over limit]",
        )

    @tag("edge")
    @task
    def foreign_category(self):
        self._expect(
            {"event_id": EVENT_ID, "lines": [{"ticket_category_id": 999999, "quantity": 1}]},
            422, "CATEGORY_NOT_FOUND", "checkout [unknown category]",
        )

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post(
            "/api/v1/checkout",
            json={"event_id": EVENT_ID, "lines": []},
            name="checkout [no auth]",
            catch_response=True,
        ) as resp:
            if resp.status_code == 401:
                resp.success()
            else:
                resp.failure(f"Expected 401, got {resp.status_code}")
