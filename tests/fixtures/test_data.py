"""
Test data generators for dispatch and quote scenarios.
"""

import random
import uuid
from typing import Optional

from faker import Faker

from shiplink.core.actor import Actor
from shiplink.models import VehicleType

fake = Faker()

# Downtown San Francisco, the pickup/dropoff pair used throughout the tests
SF_PICKUP = {"address": "1 Market St, San Francisco", "latitude": 37.7749, "longitude": -122.4194}
SF_DROPOFF = {"address": "500 Howard St, San Francisco", "latitude": 37.7849, "longitude": -122.4094}


def auth_headers(actor: Actor) -> dict:
    """Identity headers forwarded by the auth gateway."""
    return {"X-User-Id": str(actor.user_id), "X-User-Role": actor.role}


def generate_location(near: Optional[dict] = None, spread: float = 0.05) -> dict:
    """Random address near a point (SF by default)."""
    base = near or SF_PICKUP
    return {
        "address": fake.street_address(),
        "latitude": round(base["latitude"] + random.uniform(-spread, spread), 6),
        "longitude": round(base["longitude"] + random.uniform(-spread, spread), 6),
    }


def generate_driver(**overrides) -> dict:
    """
    Realistic driver profile data.

    Args:
        **overrides: Any Driver column to force

    Returns:
        Dictionary of Driver constructor kwargs
    """
    location = generate_location()
    data = {
        "user_id": uuid.uuid4(),
        "name": fake.name(),
        "license_number": fake.unique.bothify("DL-########"),
        "vehicle_type": VehicleType.CAR,
        "vehicle_model": random.choice(["Toyota Prius", "Ford Transit", "Honda CB500"]),
        "vehicle_plate": fake.license_plate()[:20],
        "rating": round(random.uniform(3.5, 5.0), 1),
        "total_deliveries": 0,
        "is_available": True,
        "latitude": location["latitude"],
        "longitude": location["longitude"],
    }
    data.update(overrides)
    return data


def generate_company(**overrides) -> dict:
    data = {
        "user_id": uuid.uuid4(),
        "company_name": fake.company(),
        "contact_email": fake.company_email(),
        "rating": round(random.uniform(3.0, 5.0), 1),
        "total_deliveries": 0,
        "is_active": True,
    }
    data.update(overrides)
    return data


def generate_package(weight: float = 2.5) -> dict:
    return {
        "weight": weight,
        "dimensions": {"length": 30.0, "width": 20.0, "height": 10.0},
        "content_description": fake.sentence(nb_words=3),
    }


def generate_dispatch_payload(
    pickup: Optional[dict] = None,
    dropoff: Optional[dict] = None,
    weight: float = 2.5,
    **extra,
) -> dict:
    """JSON body for POST /dispatch-requests."""
    payload = {
        "pickup_location": pickup or SF_PICKUP,
        "dropoff_location": dropoff or SF_DROPOFF,
        "package_details": generate_package(weight),
    }
    payload.update(extra)
    return payload


def generate_quote_payload(customer_id: uuid.UUID, weight: float = 2.5, **extra) -> dict:
    """JSON body for POST /quotes."""
    payload = {
        "customer_id": str(customer_id),
        "origin": SF_PICKUP,
        "destination": SF_DROPOFF,
        "package_details": generate_package(weight),
        "service_type": "standard",
        "notes": fake.sentence(),
    }
    payload.update(extra)
    return payload
