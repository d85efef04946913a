"""
Atomic, durable sequence allocation.

Each key owns an independent counter row. ``next`` is a single
INSERT ... ON CONFLICT DO UPDATE ... RETURNING statement committed in its
own short transaction, so two concurrent callers can never observe the same
value and no value is handed out unless the increment is durable.
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shiplink.database import dialect_name
from shiplink.models.sequence_counter import SequenceCounter

logger = logging.getLogger(__name__)


def _upsert_increment(dialect: str, key: str):
    if dialect == "postgresql":
        insert = postgresql.insert
    elif dialect == "sqlite":
        insert = sqlite.insert
    else:
        raise RuntimeError(f"Atomic sequence allocation is not supported on {dialect}")

    now = datetime.utcnow()
    stmt = insert(SequenceCounter).values(key=key, seq=1, updated_at=now)
    return stmt.on_conflict_do_update(
        index_elements=[SequenceCounter.key],
        set_={"seq": SequenceCounter.seq + 1, "updated_at": now},
    ).returning(SequenceCounter.seq)


class SequenceAllocator:
    """
    Issues strictly increasing integers per key.

    Args:
        session_factory: Factory for sessions dedicated to counter updates.
            Counters commit independently of the caller's transaction.
    """

    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._session_factory = session_factory

    async def next(self, key: str) -> int:
        """Increment-and-fetch. Missing keys start at 1. Storage errors propagate."""
        session: AsyncSession
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(_upsert_increment(dialect_name(session), key))
                seq = result.scalar_one()
        logger.debug("Allocated %s=%d", key, seq)
        return seq

    async def current(self, key: str) -> int:
        """Last issued value for a key, 0 if nothing was issued yet."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(SequenceCounter.seq).where(SequenceCounter.key == key)
            )
            return result.scalar_one_or_none() or 0
