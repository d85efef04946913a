"""
API tests for dispatch requests, directory endpoints and the event feed.
"""

import re
import uuid

import pytest

from shiplink.core.actor import Actor, ROLE_DRIVER, ROLE_SELLER
from tests.fixtures.test_data import auth_headers, generate_dispatch_payload

API = "/api/v1"


async def create(client, actor, **payload):
    response = await client.post(
        f"{API}/dispatch-requests",
        json=generate_dispatch_payload(**payload),
        headers=auth_headers(actor),
    )
    assert response.status_code == 201, response.text
    return response.json()


async def set_status(client, actor, request_id, status):
    return await client.patch(
        f"{API}/dispatch-requests/{request_id}/status",
        json={"status": status},
        headers=auth_headers(actor),
    )


class TestCreateEndpoint:

    async def test_create_returns_priced_request(self, client, seller):
        data = await create(client, seller)

        assert data["status"] == "pending"
        assert data["distance"] == pytest.approx(1.45, abs=0.05)
        assert data["price"] == pytest.approx(10.4, abs=0.1)
        assert data["estimated_delivery_time"] == "3 minutes"
        assert re.match(r"^ORD-\d{8}-\d{8}$", data["order_id"])
        assert re.match(r"^SHL-S-[A-Z0-9]{4}-\d{4}$", data["order_number"])
        assert data["pickup_location"]["latitude"] == 37.7749
        assert data["package_details"]["dimensions"]["length"] == 30.0

    async def test_missing_identity(self, client):
        response = await client.post(f"{API}/dispatch-requests", json=generate_dispatch_payload())
        assert response.status_code == 401

    @pytest.mark.parametrize("bad", [
        {"latitude": 95.0, "longitude": -122.4},
        {"latitude": 37.7, "longitude": -190.0},
    ])
    async def test_out_of_range_coordinates(self, client, seller, bad):
        pickup = {"address": "Somewhere", **bad}
        response = await client.post(
            f"{API}/dispatch-requests",
            json=generate_dispatch_payload(pickup=pickup),
            headers=auth_headers(seller),
        )
        assert response.status_code == 422

    async def test_missing_weight(self, client, seller):
        payload = generate_dispatch_payload()
        del payload["package_details"]["weight"]
        response = await client.post(f"{API}/dispatch-requests", json=payload, headers=auth_headers(seller))
        assert response.status_code == 422

    async def test_unknown_assignee(self, client, seller):
        response = await client.post(
            f"{API}/dispatch-requests",
            json=generate_dispatch_payload(assignee_id=str(uuid.uuid4())),
            headers=auth_headers(seller),
        )
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "driver_not_found"


class TestLifecycleEndpoints:

    async def test_accept_and_deliver(self, client, seller, driver, driver_actor):
        data = await create(client, seller)
        request_id = data["id"]

        response = await client.post(
            f"{API}/dispatch-requests/{request_id}/accept",
            headers=auth_headers(driver_actor),
        )
        assert response.status_code == 200
        assert response.json()["assignee_id"] == str(driver.id)

        for status in ("picked_up", "in_transit", "delivered"):
            response = await set_status(client, driver_actor, request_id, status)
            assert response.status_code == 200, response.text
            assert response.json()["status"] == status

        body = response.json()
        assert body["actual_delivery_time"] is not None
        assert body["commission_amount"] is not None

        response = await client.get(f"{API}/drivers/{driver.id}", headers=auth_headers(driver_actor))
        assert response.json()["total_deliveries"] == 1
        assert response.json()["is_available"] is True

    async def test_second_accept_conflicts(self, client, seller, driver_factory):
        first = await driver_factory()
        second = await driver_factory()
        data = await create(client, seller)

        ok = await client.post(
            f"{API}/dispatch-requests/{data['id']}/accept",
            headers=auth_headers(Actor(first.user_id, ROLE_DRIVER)),
        )
        late = await client.post(
            f"{API}/dispatch-requests/{data['id']}/accept",
            headers=auth_headers(Actor(second.user_id, ROLE_DRIVER)),
        )
        assert ok.status_code == 200
        assert late.status_code == 409
        assert late.json()["detail"] == {
            "error": "conflict",
            "code": "request_not_pending",
            "message": "Request is no longer pending",
        }

    async def test_skipping_ahead_is_conflict(self, client, seller, driver_actor):
        data = await create(client, seller)
        response = await set_status(client, driver_actor, data["id"], "delivered")
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "invalid_transition"

    async def test_stranger_cannot_cancel(self, client, seller):
        data = await create(client, seller)
        response = await set_status(client, Actor(uuid.uuid4(), ROLE_SELLER), data["id"], "cancelled")
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "not_requester"

    async def test_requester_cancels(self, client, seller):
        data = await create(client, seller)
        response = await set_status(client, seller, data["id"], "cancelled")
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

    async def test_unknown_status_value(self, client, seller):
        data = await create(client, seller)
        response = await set_status(client, seller, data["id"], "teleported")
        assert response.status_code == 422


class TestEditEndpoints:

    async def test_edit_and_delete(self, client, seller):
        data = await create(client, seller)

        response = await client.put(
            f"{API}/dispatch-requests/{data['id']}",
            json={"package_details": {"weight": 20, "content_description": "Tiles"}},
            headers=auth_headers(seller),
        )
        assert response.status_code == 200
        assert response.json()["price"] > data["price"]

        response = await client.delete(f"{API}/dispatch-requests/{data['id']}", headers=auth_headers(seller))
        assert response.status_code == 204

        response = await client.get(f"{API}/dispatch-requests/{data['id']}", headers=auth_headers(seller))
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "request_not_found"

    async def test_assign_endpoint(self, client, seller, driver):
        data = await create(client, seller)
        response = await client.post(
            f"{API}/dispatch-requests/{data['id']}/assign",
            json={"assignee_id": str(driver.id)},
            headers=auth_headers(seller),
        )
        assert response.status_code == 200
        assert response.json()["status"] == "accepted"


class TestListingEndpoints:

    async def test_mine_pending_and_pagination(self, client, seller):
        for _ in range(3):
            await create(client, seller)

        response = await client.get(
            f"{API}/dispatch-requests/mine",
            params={"page": 1, "limit": 2},
            headers=auth_headers(seller),
        )
        body = response.json()
        assert len(body["requests"]) == 2
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

        response = await client.get(f"{API}/dispatch-requests/pending", headers=auth_headers(seller))
        assert response.json()["pagination"]["total"] == 3

    async def test_candidates(self, client, seller, driver_factory):
        near = await driver_factory(latitude=37.7750, longitude=-122.4190)
        far = await driver_factory(latitude=37.90, longitude=-122.30)
        data = await create(client, seller)

        response = await client.get(
            f"{API}/dispatch-requests/{data['id']}/candidates",
            headers=auth_headers(seller),
        )
        assert response.status_code == 200
        ids = [c["driver_id"] for c in response.json()["candidates"]]
        assert ids == [str(near.id), str(far.id)]


class TestDirectoryEndpoints:

    async def test_driver_updates_own_location(self, client, driver, driver_actor):
        response = await client.patch(
            f"{API}/drivers/{driver.id}/location",
            json={"latitude": 37.8, "longitude": -122.3},
            headers=auth_headers(driver_actor),
        )
        assert response.status_code == 200
        assert response.json()["latitude"] == 37.8
        assert response.json()["location_updated_at"] is not None

    async def test_driver_toggles_availability(self, client, driver, driver_actor):
        response = await client.patch(
            f"{API}/drivers/{driver.id}/availability",
            json={"is_available": False},
            headers=auth_headers(driver_actor),
        )
        assert response.status_code == 200
        assert response.json()["is_available"] is False
        assert response.json()["is_on_duty"] is False

    async def test_other_users_cannot_touch_driver(self, client, driver, seller):
        response = await client.patch(
            f"{API}/drivers/{driver.id}/availability",
            json={"is_available": False},
            headers=auth_headers(seller),
        )
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "not_profile_owner"

    async def test_company_availability(self, client, company, company_actor):
        response = await client.patch(
            f"{API}/companies/{company.id}/availability",
            json={"is_available": False},
            headers=auth_headers(company_actor),
        )
        assert response.status_code == 200
        assert response.json()["is_active"] is False


class TestEventsAndHealth:

    async def test_recent_events_for_request(self, client, seller):
        data = await create(client, seller)
        await set_status(client, seller, data["id"], "cancelled")

        response = await client.get(f"{API}/events/recent", params={"entity_id": data["id"]})
        events = response.json()["events"]
        assert [e["to_status"] for e in events] == ["pending", "cancelled"]
        assert events[1]["from_status"] == "pending"
        assert events[1]["entity_type"] == "dispatch_request"

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
