"""
Pydantic schemas for the quote API.
"""

import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from shiplink.models import Quote, QuoteStatus, ServiceType
from shiplink.schemas.common import (
    Dimensions,
    LocationIn,
    LocationOut,
    PackageDetailsIn,
    PackageDetailsOut,
    Pagination,
)


class QuoteCalculateRequest(BaseModel):
    """Request for POST /api/v1/quotes/calculate."""
    origin: LocationIn
    destination: LocationIn
    package_details: PackageDetailsIn
    service_type: ServiceType = ServiceType.STANDARD


class QuoteCalculateResponse(BaseModel):
    distance: float
    calculated_cost: float
    estimated_delivery_time: str
    currency: str
    service_type: str


class QuoteCreate(QuoteCalculateRequest):
    """Request for POST /api/v1/quotes. Issued by a logistics company."""
    customer_id: UUID
    validity_end: Optional[datetime.datetime] = Field(
        None,
        description="Defaults to the configured validity window from now",
    )
    notes: Optional[str] = Field(None, max_length=2000)


class QuoteUpdate(BaseModel):
    """Request for PUT /api/v1/quotes/{id}. Only while pending."""
    origin: Optional[LocationIn] = None
    destination: Optional[LocationIn] = None
    package_details: Optional[PackageDetailsIn] = None
    service_type: Optional[ServiceType] = None
    validity_end: Optional[datetime.datetime] = None
    notes: Optional[str] = Field(None, max_length=2000)


class QuoteStatusUpdate(BaseModel):
    """Request for PATCH /api/v1/quotes/{id}/status."""
    status: QuoteStatus


class ValidityPeriod(BaseModel):
    start: datetime.datetime
    end: datetime.datetime


class QuoteResponse(BaseModel):
    id: UUID
    quote_number: str
    company_id: UUID
    customer_id: UUID
    origin: LocationOut
    destination: LocationOut
    package_details: PackageDetailsOut
    service_type: str
    distance: float
    calculated_cost: float
    currency: str
    estimated_delivery_time: Optional[str] = None
    validity_period: ValidityPeriod
    status: str
    is_expired: bool
    notes: Optional[str] = None
    converted_request_id: Optional[UUID] = None
    converted_at: Optional[datetime.datetime] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime


class QuoteList(BaseModel):
    quotes: List[QuoteResponse]
    pagination: Pagination


class QuoteConversionResponse(BaseModel):
    quote: QuoteResponse
    request_id: UUID
    order_id: str
    order_number: str


def serialize_quote(quote: Quote) -> QuoteResponse:
    """Build the API representation of a quote, with expiry evaluated now."""
    dimensions = None
    if any(v is not None for v in (quote.package_length, quote.package_width, quote.package_height)):
        dimensions = Dimensions(
            length=quote.package_length,
            width=quote.package_width,
            height=quote.package_height,
        )

    return QuoteResponse(
        id=quote.id,
        quote_number=quote.quote_number,
        company_id=quote.company_id,
        customer_id=quote.customer_id,
        origin=LocationOut(
            address=quote.origin_address,
            latitude=quote.origin_latitude,
            longitude=quote.origin_longitude,
        ),
        destination=LocationOut(
            address=quote.destination_address,
            latitude=quote.destination_latitude,
            longitude=quote.destination_longitude,
        ),
        package_details=PackageDetailsOut(
            weight=quote.package_weight_kg,
            dimensions=dimensions,
            content_description=quote.package_description,
        ),
        service_type=quote.service_type.value,
        distance=quote.distance_km,
        calculated_cost=quote.calculated_cost,
        currency=quote.currency,
        estimated_delivery_time=quote.estimated_delivery_time,
        validity_period=ValidityPeriod(start=quote.validity_start, end=quote.validity_end),
        status=quote.status.value,
        is_expired=quote.is_expired(),
        notes=quote.notes,
        converted_request_id=quote.converted_request_id,
        converted_at=quote.converted_at,
        created_at=quote.created_at,
        updated_at=quote.updated_at,
    )
