"""
API tests for the quote endpoints.
"""

import uuid

import pytest

from shiplink.core.actor import Actor, ROLE_SELLER
from tests.fixtures.test_data import SF_DROPOFF, SF_PICKUP, auth_headers, generate_package, generate_quote_payload

API = "/api/v1"


@pytest.fixture
def customer() -> Actor:
    return Actor(user_id=uuid.uuid4(), role=ROLE_SELLER)


async def issue(client, company_actor, customer, **extra):
    response = await client.post(
        f"{API}/quotes",
        json=generate_quote_payload(customer.user_id, **extra),
        headers=auth_headers(company_actor),
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestQuoteEndpoints:

    async def test_calculate(self, client, customer):
        response = await client.post(
            f"{API}/quotes/calculate",
            json={"origin": SF_PICKUP, "destination": SF_DROPOFF, "package_details": generate_package()},
            headers=auth_headers(customer),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["calculated_cost"] == pytest.approx(10.4, abs=0.1)
        assert body["currency"] == "USD"

    async def test_issue_and_read(self, client, company, company_actor, customer):
        quote = await issue(client, company_actor, customer)

        assert quote["status"] == "pending"
        assert quote["company_id"] == str(company.id)
        assert quote["is_expired"] is False
        assert quote["validity_period"]["start"] < quote["validity_period"]["end"]

        response = await client.get(f"{API}/quotes/{quote['id']}", headers=auth_headers(customer))
        assert response.status_code == 200
        assert response.json()["quote_number"] == quote["quote_number"]

    async def test_seller_cannot_issue(self, client, customer):
        response = await client.post(
            f"{API}/quotes",
            json=generate_quote_payload(uuid.uuid4()),
            headers=auth_headers(customer),
        )
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "not_quote_party"

    async def test_listing_pagination(self, client, company_actor, customer):
        for _ in range(3):
            await issue(client, company_actor, customer)

        response = await client.get(f"{API}/quotes", params={"limit": 2, "page": 2}, headers=auth_headers(customer))
        body = response.json()
        assert len(body["quotes"]) == 1
        assert body["pagination"]["total"] == 3
        assert body["pagination"]["pages"] == 2

    async def test_approve_then_convert(self, client, company, company_actor, customer):
        quote = await issue(client, company_actor, customer)

        response = await client.patch(
            f"{API}/quotes/{quote['id']}/status",
            json={"status": "approved"},
            headers=auth_headers(customer),
        )
        assert response.status_code == 200
        assert response.json()["status"] == "approved"

        response = await client.post(f"{API}/quotes/{quote['id']}/convert", headers=auth_headers(customer))
        assert response.status_code == 201
        body = response.json()
        assert body["quote"]["status"] == "converted"
        assert body["quote"]["converted_request_id"] == body["request_id"]

        response = await client.get(f"{API}/dispatch-requests/{body['request_id']}", headers=auth_headers(customer))
        request = response.json()
        assert request["status"] == "accepted"
        assert request["assignee_id"] == str(company.id)
        assert request["price"] == quote["calculated_cost"]

        again = await client.post(f"{API}/quotes/{quote['id']}/convert", headers=auth_headers(customer))
        assert again.status_code == 409
        assert again.json()["detail"]["code"] == "quote_converted"

    async def test_customer_cannot_expire(self, client, company_actor, customer):
        quote = await issue(client, company_actor, customer)
        response = await client.patch(
            f"{API}/quotes/{quote['id']}/status",
            json={"status": "expired"},
            headers=auth_headers(customer),
        )
        assert response.status_code == 403
