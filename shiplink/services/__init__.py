"""Services package initialization."""

from shiplink.services.geo_pricing import (
    PriceBreakdown,
    calculate_price,
    estimate_delivery_time,
    haversine_distance,
    quote_route,
)
from shiplink.services.sequence import SequenceAllocator
from shiplink.services.identifiers import IdentifierMinter, role_code
from shiplink.services.commission import Payout, calculate_commission
from shiplink.services.matching import Candidate, rank_candidates

__all__ = [
    "PriceBreakdown",
    "calculate_price",
    "estimate_delivery_time",
    "haversine_distance",
    "quote_route",
    "SequenceAllocator",
    "IdentifierMinter",
    "role_code",
    "Payout",
    "calculate_commission",
    "Candidate",
    "rank_candidates",
]
