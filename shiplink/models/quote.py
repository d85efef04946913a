"""
Quote database model.
A provisional, non-binding priced offer from a logistics company to a customer.
"""

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Float, Text, DateTime, Enum, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from shiplink.database import Base, GUID, TimestampMixin
from shiplink.models.dispatch_request import ServiceType


class QuoteStatus(str, enum.Enum):
    """Stored status of a quote. Expiry by date is computed at read time."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"
    CONVERTED = "converted"


class Quote(TimestampMixin, Base):
    """
    Freight quote.
    Immutable once converted; converted_request_id points at the dispatch
    request the quote became.
    """
    __tablename__ = "quotes"

    id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        primary_key=True,
        default=uuid.uuid4,
    )
    quote_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    company_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        ForeignKey("logistics_companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False, index=True)

    origin_address: Mapped[str] = mapped_column(Text, nullable=False)
    origin_latitude: Mapped[float] = mapped_column(Float, nullable=False)
    origin_longitude: Mapped[float] = mapped_column(Float, nullable=False)
    destination_address: Mapped[str] = mapped_column(Text, nullable=False)
    destination_latitude: Mapped[float] = mapped_column(Float, nullable=False)
    destination_longitude: Mapped[float] = mapped_column(Float, nullable=False)

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
    distance_km: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    calculated_cost: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="USD")
    estimated_delivery_time: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    validity_start: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    validity_end: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    status: Mapped[QuoteStatus] = mapped_column(
        Enum(QuoteStatus),
        nullable=False,
        default=QuoteStatus.PENDING,
        index=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    converted_request_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        GUID(),
        ForeignKey("dispatch_requests.id", ondelete="SET NULL"),
        nullable=True,
    )
    converted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True once the validity window has closed, whatever the stored status."""
        now = now or datetime.utcnow()
        return now > self.validity_end

    def __repr__(self) -> str:
        return f"<Quote(id={self.id}, quote_number={self.quote_number}, status={self.status})>"
