"""Models package initialization - imports all models for easy access."""

from shiplink.models.driver import Driver, VehicleType, VerificationStatus
from shiplink.models.logistics_company import LogisticsCompany
from shiplink.models.dispatch_request import (
    DispatchRequest,
    DispatchStatus,
    ServiceType,
    AssigneeType,
)
from shiplink.models.quote import Quote, QuoteStatus
from shiplink.models.sequence_counter import SequenceCounter

__all__ = [
    # Directory
    "Driver",
    "VehicleType",
    "VerificationStatus",
    "LogisticsCompany",
    # Dispatch
    "DispatchRequest",
    "DispatchStatus",
    "ServiceType",
    "AssigneeType",
    # Quotes
    "Quote",
    "QuoteStatus",
    # Identifiers
    "SequenceCounter",
]
