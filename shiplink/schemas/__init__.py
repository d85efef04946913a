"""Pydantic schemas package."""

from shiplink.schemas.common import (
    Dimensions,
    ErrorDetail,
    LocationIn,
    LocationOut,
    PackageDetailsIn,
    PackageDetailsOut,
    Pagination,
)
from shiplink.schemas.dispatch import (
    AssignRequest,
    CandidateList,
    CandidateResponse,
    DispatchRequestCreate,
    DispatchRequestList,
    DispatchRequestResponse,
    DispatchRequestUpdate,
    StatusUpdateRequest,
    serialize_request,
)
from shiplink.schemas.driver import (
    AvailabilityUpdate,
    CompanyResponse,
    DriverResponse,
    LocationUpdate,
)
from shiplink.schemas.quote import (
    QuoteCalculateRequest,
    QuoteCalculateResponse,
    QuoteConversionResponse,
    QuoteCreate,
    QuoteList,
    QuoteResponse,
    QuoteStatusUpdate,
    QuoteUpdate,
    serialize_quote,
)

__all__ = [
    "Dimensions",
    "ErrorDetail",
    "LocationIn",
    "LocationOut",
    "PackageDetailsIn",
    "PackageDetailsOut",
    "Pagination",
    "AssignRequest",
    "CandidateList",
    "CandidateResponse",
    "DispatchRequestCreate",
    "DispatchRequestList",
    "DispatchRequestResponse",
    "DispatchRequestUpdate",
    "StatusUpdateRequest",
    "serialize_request",
    "AvailabilityUpdate",
    "CompanyResponse",
    "DriverResponse",
    "LocationUpdate",
    "QuoteCalculateRequest",
    "QuoteCalculateResponse",
    "QuoteConversionResponse",
    "QuoteCreate",
    "QuoteList",
    "QuoteResponse",
    "QuoteStatusUpdate",
    "QuoteUpdate",
    "serialize_quote",
]
