"""
Shared pydantic building blocks: locations, package details, pagination.
Coordinate bounds are enforced here so pricing never sees out-of-range input.
"""

import math
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class LocationIn(BaseModel):
    """Address plus coordinates; coordinates drive every computation."""
    address: str = Field(..., min_length=1, description="Display address")
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    @field_validator("address")
    @classmethod
    def strip_address(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Address must not be blank")
        return v

    @property
    def coordinates(self) -> tuple:
        return (self.latitude, self.longitude)


class LocationOut(BaseModel):
    address: str
    latitude: float
    longitude: float


class Dimensions(BaseModel):
    length: Optional[float] = Field(None, ge=0)
    width: Optional[float] = Field(None, ge=0)
    height: Optional[float] = Field(None, ge=0)


class PackageDetailsIn(BaseModel):
    """Package being shipped."""
    weight: float = Field(..., gt=0, description="Weight in kg")
    dimensions: Optional[Dimensions] = None
    content_description: str = Field(..., description="What is inside, at least 3 characters")

    @field_validator("content_description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Description must be at least 3 characters")
        return v


class PackageDetailsOut(BaseModel):
    weight: float
    dimensions: Optional[Dimensions] = None
    content_description: str


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)


class ErrorDetail(BaseModel):
    """Body of every domain error response (under ``detail``)."""
    error: str
    code: str
    message: str
