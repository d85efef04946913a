"""
LogisticsCompany directory model.
Companies issue quotes and can take dispatch requests like a driver.
"""

import uuid
from typing import Optional

from sqlalchemy import String, Float, Integer, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from shiplink.database import Base, GUID, TimestampMixin


class LogisticsCompany(TimestampMixin, Base):
    """Logistics company profile attached to a user account."""
    __tablename__ = "logistics_companies"

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
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    rating: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    total_deliveries: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # An inactive company takes no new work
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<LogisticsCompany(id={self.id}, name={self.company_name})>"
