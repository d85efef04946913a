"""
Pydantic schemas for the driver / company directory endpoints.
"""

import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class DriverResponse(BaseModel):
    id: UUID
    user_id: UUID
    name: str
    vehicle_type: str
    vehicle_model: Optional[str] = None
    vehicle_plate: Optional[str] = None
    rating: float
    total_deliveries: int
    is_available: bool
    is_on_duty: bool
    verification_status: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    location_updated_at: Optional[datetime.datetime] = None

    model_config = {"from_attributes": True}


class CompanyResponse(BaseModel):
    id: UUID
    user_id: UUID
    company_name: str
    contact_email: Optional[str] = None
    rating: float
    total_deliveries: int
    is_active: bool

    model_config = {"from_attributes": True}


class AvailabilityUpdate(BaseModel):
    """Request for PATCH /drivers/{id}/availability and /companies/{id}/availability."""
    is_available: bool


class LocationUpdate(BaseModel):
    """Request for PATCH /api/v1/drivers/{id}/location."""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
