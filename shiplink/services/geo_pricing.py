"""
Geodistance and price computation.

Straight-line great-circle distance (no road routing), tier-dependent ETA
and a floored linear price. Pure functions; request schemas reject bad
input first, quote_route only re-checks coordinate ranges.
"""

import math
from dataclasses import dataclass
from typing import Dict, Tuple, Union

from shiplink.config import get_settings
from shiplink.core.errors import ValidationError
from shiplink.models.dispatch_request import ServiceType

EARTH_RADIUS_KM = 6371.0

Coordinates = Tuple[float, float]
TierLike = Union[ServiceType, str, None]


@dataclass(frozen=True)
class TierRates:
    """Rate-table row for one service tier."""
    base_price: float
    price_per_km: float
    price_per_kg: float
    speed_kmh: float


@dataclass(frozen=True)
class PriceBreakdown:
    """Everything derived from a pickup/dropoff pair and a weight."""
    distance_km: float
    price: float
    estimated_delivery_time: str
    service_type: ServiceType


def _tier(service_type: TierLike) -> ServiceType:
    if service_type is None:
        return ServiceType.STANDARD
    return ServiceType(service_type)


def rate_table() -> Dict[ServiceType, TierRates]:
    """Rate table built from settings."""
    s = get_settings()
    return {
        ServiceType.STANDARD: TierRates(
            s.standard_base_price, s.standard_price_per_km, s.standard_price_per_kg, s.standard_speed_kmh
        ),
        ServiceType.EXPRESS: TierRates(
            s.express_base_price, s.express_price_per_km, s.express_price_per_kg, s.express_speed_kmh
        ),
        ServiceType.OVERNIGHT: TierRates(
            s.overnight_base_price, s.overnight_price_per_km, s.overnight_price_per_kg, s.overnight_speed_kmh
        ),
        ServiceType.ECONOMY: TierRates(
            s.economy_base_price, s.economy_price_per_km, s.economy_price_per_kg, s.economy_speed_kmh
        ),
    }


def ensure_valid_coordinates(point: Coordinates, label: str = "location") -> None:
    """Raise ValidationError(invalid_coordinates) for an out-of-range (lat, lng)."""
    lat, lng = point
    if lat is None or lng is None or not (-90 <= lat <= 90) or not (-180 <= lng <= 180):
        raise ValidationError(
            "invalid_coordinates",
            f"Invalid {label} coordinates: ({lat}, {lng})",
        )


def haversine_distance(a: Coordinates, b: Coordinates) -> float:
    """
    Great-circle distance between two (lat, lng) points in kilometers.

    Args:
        a: (latitude, longitude) of the first point
        b: (latitude, longitude) of the second point

    Returns:
        Distance in km rounded to 2 decimals
    """
    lat1, lng1 = a
    lat2, lng2 = b
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return round(EARTH_RADIUS_KM * c, 2)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_duration(minutes: int) -> str:
    """Render minutes as "45 minutes", "1 hour", "2 hours 10 minutes"."""
    if minutes < 60:
        return f"{minutes} minutes"
    hours, rest = divmod(minutes, 60)
    hours_part = f"{hours} hour{'s' if hours > 1 else ''}"
    return f"{hours_part} {rest} minutes" if rest else hours_part


def estimate_delivery_minutes(distance_km: float, service_type: TierLike = None) -> int:
    speed = rate_table()[_tier(service_type)].speed_kmh
    return _round_half_up(distance_km / speed * 60)


def estimate_delivery_time(distance_km: float, service_type: TierLike = None) -> str:
    """Human-readable ETA at the tier's average speed."""
    return format_duration(estimate_delivery_minutes(distance_km, service_type))


def calculate_price(distance_km: float, weight_kg: float, service_type: TierLike = None) -> float:
    """
    max(min_price, base + distance * per_km + weight * per_kg), 2 decimals.

    Non-decreasing in both distance and weight, never below min_price.
    """
    rates = rate_table()[_tier(service_type)]
    raw = rates.base_price + distance_km * rates.price_per_km + weight_kg * rates.price_per_kg
    return round(max(get_settings().min_price, raw), 2)


def quote_route(
    origin: Coordinates,
    destination: Coordinates,
    weight_kg: float,
    service_type: TierLike = None,
) -> PriceBreakdown:
    """Distance, price and ETA for one shipment."""
    ensure_valid_coordinates(origin, "pickup")
    ensure_valid_coordinates(destination, "dropoff")
    tier = _tier(service_type)
    distance = haversine_distance(origin, destination)
    return PriceBreakdown(
        distance_km=distance,
        price=calculate_price(distance, weight_kg, tier),
        estimated_delivery_time=estimate_delivery_time(distance, tier),
        service_type=tier,
    )
