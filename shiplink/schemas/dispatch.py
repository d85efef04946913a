"""
Pydantic schemas for the dispatch request API.
"""

import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from shiplink.models import AssigneeType, DispatchRequest, DispatchStatus, ServiceType, VehicleType
from shiplink.schemas.common import (
    Dimensions,
    LocationIn,
    LocationOut,
    PackageDetailsIn,
    PackageDetailsOut,
    Pagination,
)


# ==================== Requests ====================

class DispatchRequestCreate(BaseModel):
    """Request for POST /api/v1/dispatch-requests."""
    pickup_location: LocationIn
    dropoff_location: LocationIn
    package_details: PackageDetailsIn
    service_type: ServiceType = ServiceType.STANDARD
    required_vehicle_type: Optional[VehicleType] = None
    assignee_id: Optional[UUID] = Field(None, description="Pre-assign a driver or company")
    assignee_type: AssigneeType = AssigneeType.DRIVER

    model_config = {
        "json_schema_extra": {
            "example": {
                "pickup_location": {
                    "address": "1 Market St, San Francisco",
                    "latitude": 37.7749,
                    "longitude": -122.4194,
                },
                "dropoff_location": {
                    "address": "500 Howard St, San Francisco",
                    "latitude": 37.7849,
                    "longitude": -122.4094,
                },
                "package_details": {
                    "weight": 2.5,
                    "content_description": "Documents",
                },
            }
        }
    }


class DispatchRequestUpdate(BaseModel):
    """Request for PUT /api/v1/dispatch-requests/{id}. Only while pending."""
    pickup_location: Optional[LocationIn] = None
    dropoff_location: Optional[LocationIn] = None
    package_details: Optional[PackageDetailsIn] = None


class StatusUpdateRequest(BaseModel):
    """Request for PATCH /api/v1/dispatch-requests/{id}/status."""
    status: DispatchStatus


class AssignRequest(BaseModel):
    """Request for POST /api/v1/dispatch-requests/{id}/assign."""
    assignee_id: UUID
    assignee_type: AssigneeType = AssigneeType.DRIVER


# ==================== Responses ====================

class DispatchRequestResponse(BaseModel):
    """A dispatch request as returned by every endpoint."""
    id: UUID
    order_id: str
    order_number: str
    requester_id: UUID
    assignee_id: Optional[UUID] = None
    assignee_type: Optional[str] = None
    pickup_location: LocationOut
    dropoff_location: LocationOut
    package_details: PackageDetailsOut
    service_type: str
    required_vehicle_type: Optional[str] = None
    distance: float
    price: float
    estimated_delivery_time: Optional[str] = None
    status: str
    commission_amount: Optional[float] = None
    provider_payout: Optional[float] = None
    accepted_at: Optional[datetime.datetime] = None
    actual_delivery_time: Optional[datetime.datetime] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime


class DispatchRequestList(BaseModel):
    requests: List[DispatchRequestResponse]
    pagination: Pagination


class CandidateResponse(BaseModel):
    driver_id: UUID
    name: str
    vehicle_type: str
    rating: float
    distance_km: Optional[float] = None


class CandidateList(BaseModel):
    request_id: UUID
    candidates: List[CandidateResponse]


def _dimensions(length, width, height) -> Optional[Dimensions]:
    if length is None and width is None and height is None:
        return None
    return Dimensions(length=length, width=width, height=height)


def serialize_request(request: DispatchRequest) -> DispatchRequestResponse:
    """Build the API representation of a dispatch request."""
    return DispatchRequestResponse(
        id=request.id,
        order_id=request.order_id,
        order_number=request.order_number,
        requester_id=request.requester_id,
        assignee_id=request.assignee_id,
        assignee_type=request.assignee_type.value if request.assignee_type else None,
        pickup_location=LocationOut(
            address=request.pickup_address,
            latitude=request.pickup_latitude,
            longitude=request.pickup_longitude,
        ),
        dropoff_location=LocationOut(
            address=request.dropoff_address,
            latitude=request.dropoff_latitude,
            longitude=request.dropoff_longitude,
        ),
        package_details=PackageDetailsOut(
            weight=request.package_weight_kg,
            dimensions=_dimensions(request.package_length, request.package_width, request.package_height),
            content_description=request.package_description,
        ),
        service_type=request.service_type.value,
        required_vehicle_type=request.required_vehicle_type.value if request.required_vehicle_type else None,
        distance=request.distance_km,
        price=request.price,
        estimated_delivery_time=request.estimated_delivery_time,
        status=request.status.value,
        commission_amount=request.commission_amount,
        provider_payout=request.provider_payout,
        accepted_at=request.accepted_at,
        actual_delivery_time=request.actual_delivery_time,
        created_at=request.created_at,
        updated_at=request.updated_at,
    )
