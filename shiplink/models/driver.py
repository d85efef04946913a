"""
Driver directory model.
The dispatch engine reads availability/location for matching and bumps
total_deliveries once per completed delivery.
"""

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Float, Integer, Boolean, DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column

from shiplink.database import Base, GUID, TimestampMixin


class VehicleType(str, enum.Enum):
    """Vehicle classes a driver can operate."""
    CAR = "car"
    TRUCK = "truck"
    MOTORCYCLE = "motorcycle"


class VerificationStatus(str, enum.Enum):
    """Outcome of the driver's document review."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    NEEDS_REUPLOAD = "needs-reupload"


class Driver(TimestampMixin, Base):
    """
    Driver profile attached to a user account.
    Stores vehicle details, availability and last known position.
    """
    __tablename__ = "drivers"

    id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        unique=True,
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    license_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    vehicle_type: Mapped[VehicleType] = mapped_column(
        Enum(VehicleType),
        nullable=False,
        default=VehicleType.CAR,
    )
    vehicle_model: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    vehicle_plate: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    rating: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    total_deliveries: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # is_on_duty is the driver's own switch; is_available also drops while holding a job
    is_on_duty: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    verification_status: Mapped[VerificationStatus] = mapped_column(
        Enum(VerificationStatus),
        default=VerificationStatus.PENDING,
        nullable=False,
    )

    # Last known position
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    location_updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def __repr__(self) -> str:
        return f"<Driver(id={self.id}, name={self.name}, available={self.is_available})>"
