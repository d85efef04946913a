import uuid
from typing import AsyncGenerator

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from shiplink.core.actor import Actor, ROLE_COMPANY, ROLE_DRIVER, ROLE_SELLER
from shiplink.core.events import commit_and_publish, dispatch_event_bus
from shiplink.database import Base, get_db, get_session_factory
from shiplink.main import app
from shiplink.models import Driver, LogisticsCompany
from shiplink.schemas.dispatch import DispatchRequestCreate
from shiplink.services import dispatch_service
from shiplink.services.identifiers import IdentifierMinter
from shiplink.services.sequence import SequenceAllocator
from tests.fixtures.test_data import (
    generate_company,
    generate_dispatch_payload,
    generate_driver,
)


# A file database (not :memory:) so the allocator's own sessions get their
# own connections, as they do in production.
@pytest.fixture
async def test_engine(tmp_path):
    """Function-scoped SQLite database engine."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'shiplink_test.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging data and calling services directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def allocator(session_factory) -> SequenceAllocator:
    return SequenceAllocator(session_factory)


@pytest.fixture
def minter(allocator) -> IdentifierMinter:
    return IdentifierMinter(allocator, retry_attempts=3, retry_backoff_seconds=0)


@pytest.fixture(autouse=True)
def clear_events():
    dispatch_event_bus.clear()
    yield
    dispatch_event_bus.clear()


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Test client with get_db and the minter's session factory pointed at the test database."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def seller() -> Actor:
    return Actor(user_id=uuid.uuid4(), role=ROLE_SELLER)


@pytest.fixture
def driver_factory(db_session):
    """Create committed drivers: ``await driver_factory(vehicle_type=VehicleType.TRUCK)``."""
    async def _create(**overrides) -> Driver:
        driver = Driver(**generate_driver(**overrides))
        db_session.add(driver)
        await db_session.commit()
        return driver
    return _create


@pytest.fixture
def company_factory(db_session):
    async def _create(**overrides) -> LogisticsCompany:
        company = LogisticsCompany(**generate_company(**overrides))
        db_session.add(company)
        await db_session.commit()
        return company
    return _create


@pytest.fixture
async def driver(driver_factory) -> Driver:
    return await driver_factory()


@pytest.fixture
def driver_actor(driver) -> Actor:
    return Actor(user_id=driver.user_id, role=ROLE_DRIVER)


@pytest.fixture
async def company(company_factory) -> LogisticsCompany:
    return await company_factory()


@pytest.fixture
def company_actor(company) -> Actor:
    return Actor(user_id=company.user_id, role=ROLE_COMPANY)


@pytest.fixture
def request_factory(db_session, minter, seller):
    """Create and commit dispatch requests through the service."""
    async def _create(actor: Actor = None, **payload_overrides):
        payload = DispatchRequestCreate(**generate_dispatch_payload(**payload_overrides))
        request = await dispatch_service.create_request(db_session, minter, actor or seller, payload)
        await commit_and_publish(db_session)
        return request
    return _create
