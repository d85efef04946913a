"""
DispatchRequest database model.
The committed delivery engagement between a requester and a driver or company.
"""

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Float, Text, DateTime, Enum, Index
from sqlalchemy.orm import Mapped, mapped_column

from shiplink.database import Base, GUID, TimestampMixin
from shiplink.models.driver import VehicleType


class DispatchStatus(str, enum.Enum):
    """Lifecycle states of a dispatch request."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class ServiceType(str, enum.Enum):
    """Pricing / speed tier."""
    STANDARD = "standard"
    EXPRESS = "express"
    OVERNIGHT = "overnight"
    ECONOMY = "economy"


class AssigneeType(str, enum.Enum):
    """Kind of party fulfilling the request."""
    DRIVER = "driver"
    COMPANY = "company"


class DispatchRequest(TimestampMixin, Base):
    """
    A priced, trackable pickup/dropoff engagement.

    requester_id and assignee_id are references into the user and
    driver/company directories; nothing about those parties is copied here.
    distance, price and estimated_delivery_time are derived, never edited.
    """
    __tablename__ = "dispatch_requests"
    __table_args__ = (
        Index("ix_dispatch_requests_requester_status", "requester_id", "status"),
        Index("ix_dispatch_requests_assignee_status", "assignee_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        primary_key=True,
        default=uuid.uuid4,
    )
    order_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    order_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)

    # Parties
    requester_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    requester_role: Mapped[str] = mapped_column(String(32), nullable=False, default="user")
    assignee_id: Mapped[Optional[uuid.UUID]] = mapped_column(GUID(), nullable=True)
    assignee_type: Mapped[Optional[AssigneeType]] = mapped_column(Enum(AssigneeType), nullable=True)

    # Pickup
    pickup_address: Mapped[str] = mapped_column(Text, nullable=False)
    pickup_latitude: Mapped[float] = mapped_column(Float, nullable=False)
    pickup_longitude: Mapped[float] = mapped_column(Float, nullable=False)

    # Dropoff
    dropoff_address: Mapped[str] = mapped_column(Text, nullable=False)
    dropoff_latitude: Mapped[float] = mapped_column(Float, nullable=False)
    dropoff_longitude: Mapped[float] = mapped_column(Float, nullable=False)

    # Package
    package_weight_kg: Mapped[float] = mapped_column(Float, nullable=False)
    package_length: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    package_width: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    package_height: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    package_description: Mapped[str] = mapped_column(Text, nullable=False)

    service_type: Mapped[ServiceType] = mapped_column(
        Enum(ServiceType),
        nullable=False,
        default=ServiceType.STANDARD,
    )
    required_vehicle_type: Mapped[Optional[VehicleType]] = mapped_column(
        Enum(VehicleType),
        nullable=True,
    )

    # Derived
    distance_km: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    estimated_delivery_time: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Payout numbers, filled on delivery
    commission_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    commission_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    provider_payout: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    status: Mapped[DispatchStatus] = mapped_column(
        Enum(DispatchStatus),
        nullable=False,
        default=DispatchStatus.PENDING,
        index=True,
    )
    accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    picked_up_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    in_transit_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    actual_delivery_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    @property
    def pickup_coordinates(self) -> tuple:
        return (self.pickup_latitude, self.pickup_longitude)

    def __repr__(self) -> str:
        return f"<DispatchRequest(id={self.id}, order_id={self.order_id}, status={self.status})>"
