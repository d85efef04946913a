"""
Public identifier minting.

Formats are rendered directly by drivers' apps and printed labels, so they
must stay bit-exact:

    ORD-YYYYMMDD-########           global order id, counter per calendar day
    SHL-<role>-<OWNR>-####          order / quote number, counter per owner per day
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Optional, Union
from uuid import UUID

from sqlalchemy.exc import OperationalError

from shiplink.config import get_settings
from shiplink.core.errors import ValidationError
from shiplink.services.sequence import SequenceAllocator

logger = logging.getLogger(__name__)

ROLE_CODES = {
    "seller": "S",
    "logistics-company": "L",
    "driver": "D",
    "sourcing-agent": "SA",
    "import-coach": "IC",
}
DEFAULT_ROLE_CODE = "U"


def role_code(role: Optional[str]) -> str:
    """Short code embedded in order numbers; unknown roles map to U."""
    return ROLE_CODES.get(role or "", DEFAULT_ROLE_CODE)


def date_key(on: Optional[date] = None) -> str:
    on = on or datetime.utcnow().date()
    return on.strftime("%Y%m%d")


class IdentifierMinter:
    """Composes allocator output into public identifiers."""

    def __init__(
        self,
        allocator: SequenceAllocator,
        retry_attempts: Optional[int] = None,
        retry_backoff_seconds: Optional[float] = None,
    ) -> None:
        settings = get_settings()
        self.allocator = allocator
        self.retry_attempts = max(1, retry_attempts or settings.sequence_retry_attempts)
        self.retry_backoff_seconds = (
            retry_backoff_seconds
            if retry_backoff_seconds is not None
            else settings.sequence_retry_backoff_seconds
        )

    async def _next(self, key: str) -> int:
        # Safe to retry: a failed attempt never committed an increment.
        for attempt in range(1, self.retry_attempts + 1):
            try:
                return await self.allocator.next(key)
            except OperationalError as e:
                if attempt == self.retry_attempts:
                    logger.error(f"Sequence {key} failed after {attempt} attempts: {e}")
                    raise
                wait_time = self.retry_backoff_seconds * attempt
                logger.warning(
                    f"Sequence {key} storage error, retrying in {wait_time:.2f}s "
                    f"(attempt {attempt}/{self.retry_attempts})"
                )
                await asyncio.sleep(wait_time)

    async def global_order_id(self, on: Optional[date] = None) -> str:
        """ORD-YYYYMMDD-######## from the per-day global counter."""
        day = date_key(on)
        seq = await self._next(f"order_global_{day}")
        return f"ORD-{day}-{seq:08d}"

    async def _owner_scoped(
        self,
        prefix: str,
        owner_id: Union[UUID, str, None],
        role: Optional[str],
        on: Optional[date],
    ) -> str:
        if owner_id is None or str(owner_id) == "":
            raise ValidationError("missing_owner", "Owner id is required to mint a number")

        owner = str(owner_id)
        day = date_key(on)
        seq = await self._next(f"{prefix}_user_{owner}_{day}")
        return f"SHL-{role_code(role)}-{owner[-4:].upper()}-{seq:04d}"

    async def order_number(
        self,
        owner_id: Union[UUID, str, None],
        role: Optional[str],
        on: Optional[date] = None,
    ) -> str:
        """SHL-<role>-<last4>-#### scoped to (owner, day)."""
        return await self._owner_scoped("order", owner_id, role, on)

    async def quote_number(
        self,
        owner_id: Union[UUID, str, None],
        role: Optional[str],
        on: Optional[date] = None,
    ) -> str:
        """Quote numbers share the order-number format with their own counter."""
        return await self._owner_scoped("quote", owner_id, role, on)
