"""
Database connection and session management.
Async SQLAlchemy with asyncpg in production and aiosqlite for local runs and tests.
"""

import uuid
from datetime import datetime

from sqlalchemy import CHAR, DateTime
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from shiplink.config import get_settings


class GUID(TypeDecorator):
    """
    Portable UUID column.
    Native UUID on PostgreSQL, 32-char hex string everywhere else.
    """
    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(32))

    def process_bind_param(self, value, dialect):
        if value is None or dialect.name == "postgresql":
            return value
        if not isinstance(value, uuid.UUID):
            value = uuid.UUID(str(value))
        return value.hex

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(value)


settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class TimestampMixin:
    """created_at / updated_at audit columns; updated_at never precedes created_at."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )


def dialect_name(session: AsyncSession) -> str:
    """Name of the SQL dialect the session is bound to ("postgresql", "sqlite", ...)."""
    return session.get_bind().dialect.name


async def get_db() -> AsyncSession:
    """
    Dependency that provides a database session.
    Commits when the request handler returns cleanly, rolls back otherwise.
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker:
    """Dependency returning the session factory used for out-of-band transactions."""
    return async_session_maker


async def init_db() -> None:
    """Create tables directly (development only; use Alembic elsewhere)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
