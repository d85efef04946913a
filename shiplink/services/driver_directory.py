"""
Driver and logistics company directory operations used by the dispatch engine:
availability toggles and last known driver position.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from shiplink.core.actor import Actor
from shiplink.core.errors import ForbiddenError
from shiplink.models import Driver, LogisticsCompany
from shiplink.services.geo_pricing import ensure_valid_coordinates
from shiplink.services.matching import get_company, get_driver

logger = logging.getLogger(__name__)


def _ensure_owner(actor: Actor, owner_user_id: UUID, what: str) -> None:
    if actor.is_admin or actor.user_id == owner_user_id:
        return
    raise ForbiddenError("not_profile_owner", f"Only the {what} owner can change this profile")


async def set_driver_availability(
    db: AsyncSession,
    actor: Actor,
    driver_id: UUID,
    is_available: bool,
) -> Driver:
    """Driver goes on or off duty. Going on duty opts back into new work."""
    driver = await get_driver(db, driver_id)
    _ensure_owner(actor, driver.user_id, "driver")

    await db.execute(
        update(Driver)
        .where(Driver.id == driver.id)
        .values(is_on_duty=is_available, is_available=is_available, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.refresh(driver)

    logger.info("Driver %s availability set to %s", driver.id, is_available)
    return driver


async def update_driver_location(
    db: AsyncSession,
    actor: Actor,
    driver_id: UUID,
    latitude: float,
    longitude: float,
) -> Driver:
    """Record the driver's last known position (used for nearest-first matching)."""
    ensure_valid_coordinates((latitude, longitude), "driver")
    driver = await get_driver(db, driver_id)
    _ensure_owner(actor, driver.user_id, "driver")

    now = datetime.utcnow()
    driver.latitude = latitude
    driver.longitude = longitude
    driver.location_updated_at = now
    driver.updated_at = now
    await db.flush()
    await db.refresh(driver)
    return driver


async def set_company_availability(
    db: AsyncSession,
    actor: Actor,
    company_id: UUID,
    is_active: bool,
) -> LogisticsCompany:
    """Company starts or stops taking new work."""
    company = await get_company(db, company_id)
    _ensure_owner(actor, company.user_id, "company")

    company.is_active = is_active
    company.updated_at = datetime.utcnow()
    await db.flush()
    await db.refresh(company)

    logger.info("Logistics company %s active=%s", company.id, is_active)
    return company
