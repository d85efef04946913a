"""
Commission and provider payout numbers.
Computed server-side only; nothing here moves money.
"""

from dataclasses import dataclass
from typing import Optional

from shiplink.config import get_settings

# Percent of gross; delivery comes from settings.delivery_commission_rate
DEFAULT_COMMISSION_RATES = {
    "marketplace": 10.0,
    "sourcing": 5.0,
    "coaching": 10.0,
}
FALLBACK_COMMISSION_RATE = 10.0


def commission_rate_for(order_type: str) -> float:
    """Platform commission percentage for an order type."""
    if order_type == "delivery":
        return get_settings().delivery_commission_rate
    return DEFAULT_COMMISSION_RATES.get(order_type, FALLBACK_COMMISSION_RATE)


@dataclass(frozen=True)
class Payout:
    commission_rate: float
    commission_amount: float
    provider_payout: float


def calculate_commission(
    gross_amount: float,
    order_type: str = "delivery",
    rate_override: Optional[float] = None,
) -> Payout:
    """
    Split a gross amount into platform commission and provider payout.

    Args:
        gross_amount: Total charged to the requester
        order_type: delivery, marketplace, sourcing or coaching
        rate_override: Provider-specific percentage, if any

    Returns:
        Payout with amounts rounded to 2 decimals
    """
    if not gross_amount or gross_amount <= 0:
        return Payout(commission_rate=0.0, commission_amount=0.0, provider_payout=0.0)

    rate = rate_override if rate_override is not None else commission_rate_for(order_type)

    commission = round(gross_amount * rate / 100, 2)
    return Payout(
        commission_rate=rate,
        commission_amount=commission,
        provider_payout=round(gross_amount - commission, 2),
    )
