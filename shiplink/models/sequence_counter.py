"""
SequenceCounter database model.
One row per sequence key, e.g. ``order_global_20240115``.
"""

from datetime import datetime

from sqlalchemy import String, BigInteger, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from shiplink.database import Base


class SequenceCounter(Base):
    """Durable monotonic counter. Only ever incremented in place by the allocator."""
    __tablename__ = "sequence_counters"

    key: Mapped[str] = mapped_column(String(200), primary_key=True)
    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<SequenceCounter(key={self.key}, seq={self.seq})>"
