"""
Assignment matching.

Directed assignment validates one named driver/company; open pull ranks the
available, capable drivers nearest-first from their last known position to
the pickup point. Availability flips are conditional writes so two requests
cannot claim the same driver.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Tuple, Union
from uuid import UUID

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shiplink.core.actor import Actor
from shiplink.core.errors import ConflictError, ForbiddenError, NotFoundError
from shiplink.models import (
    AssigneeType,
    DispatchRequest,
    Driver,
    LogisticsCompany,
    VehicleType,
)
from shiplink.services.dispatch_state import IN_PROGRESS
from shiplink.services.geo_pricing import Coordinates, haversine_distance

logger = logging.getLogger(__name__)

Assignee = Union[Driver, LogisticsCompany]


@dataclass
class Candidate:
    """A driver eligible for a request, with distance to the pickup."""
    driver: Driver
    distance_km: Optional[float]


def is_eligible(driver: Driver, required_vehicle_type: Optional[VehicleType] = None) -> bool:
    """Available and, when the request needs one, driving the right vehicle class."""
    if not driver.is_available:
        return False
    if required_vehicle_type is not None and driver.vehicle_type != VehicleType(required_vehicle_type):
        return False
    return True


def _rank_key(candidate: Candidate) -> tuple:
    # Unknown location sorts after every known one
    driver = candidate.driver
    return (
        candidate.distance_km is None,
        candidate.distance_km if candidate.distance_km is not None else 0.0,
        -(driver.rating or 0.0),
        driver.created_at or datetime.max,
    )


def rank_candidates(
    pickup: Coordinates,
    drivers: Sequence[Driver],
    required_vehicle_type: Optional[VehicleType] = None,
    radius_km: Optional[float] = None,
) -> List[Candidate]:
    """
    Filter and order drivers for an open request.

    Nearest first; ties go to the higher rating, then the earlier registration.
    With a radius, drivers without a known location are dropped.

    Args:
        pickup: (lat, lng) of the pickup point
        drivers: Candidate pool
        required_vehicle_type: Vehicle class the request needs, if any
        radius_km: Maximum distance from the pickup, if any

    Returns:
        Ranked list of candidates
    """
    candidates = []
    for driver in drivers:
        if not is_eligible(driver, required_vehicle_type):
            continue
        distance = None
        if driver.has_location:
            distance = haversine_distance((driver.latitude, driver.longitude), pickup)
        if radius_km is not None and (distance is None or distance > radius_km):
            continue
        candidates.append(Candidate(driver=driver, distance_km=distance))

    candidates.sort(key=_rank_key)
    return candidates


async def find_candidates(
    db: AsyncSession,
    request: DispatchRequest,
    limit: int = 20,
    radius_km: Optional[float] = None,
) -> List[Candidate]:
    """Load the available driver pool and rank it for ``request``."""
    query = select(Driver).where(Driver.is_available.is_(True))
    if request.required_vehicle_type is not None:
        query = query.where(Driver.vehicle_type == request.required_vehicle_type)
    result = await db.execute(query)
    drivers = result.scalars().all()

    ranked = rank_candidates(
        request.pickup_coordinates,
        drivers,
        required_vehicle_type=request.required_vehicle_type,
        radius_km=radius_km,
    )
    return ranked[:limit]


async def get_driver(db: AsyncSession, driver_id: UUID) -> Driver:
    driver = await db.get(Driver, driver_id)
    if driver is None:
        raise NotFoundError("driver_not_found", f"Driver {driver_id} not found")
    return driver


async def get_company(db: AsyncSession, company_id: UUID) -> LogisticsCompany:
    company = await db.get(LogisticsCompany, company_id)
    if company is None:
        raise NotFoundError("company_not_found", f"Logistics company {company_id} not found")
    return company


def ensure_can_take(
    assignee: Assignee,
    required_vehicle_type: Optional[VehicleType] = None,
) -> None:
    """
    Raise unless the assignee can take new work right now.

    Raises:
        ConflictError: driver_not_available, driver_not_eligible or
            company_not_available
    """
    if isinstance(assignee, LogisticsCompany):
        if not assignee.is_active:
            raise ConflictError("company_not_available", "Logistics company is not accepting requests")
        return

    if not assignee.is_available:
        raise ConflictError("driver_not_available", "Driver is not available")
    if required_vehicle_type is not None and assignee.vehicle_type != VehicleType(required_vehicle_type):
        raise ConflictError(
            "driver_not_eligible",
            f"Request needs a {VehicleType(required_vehicle_type).value}, "
            f"driver has a {assignee.vehicle_type.value}",
        )


async def resolve_assignee(
    db: AsyncSession,
    assignee_id: UUID,
    assignee_type: AssigneeType = AssigneeType.DRIVER,
    required_vehicle_type: Optional[VehicleType] = None,
) -> Assignee:
    """Directed assignment: the named party must exist and be able to take work."""
    if AssigneeType(assignee_type) == AssigneeType.COMPANY:
        assignee = await get_company(db, assignee_id)
    else:
        assignee = await get_driver(db, assignee_id)
    ensure_can_take(assignee, required_vehicle_type)
    return assignee


async def resolve_actor_assignee(db: AsyncSession, actor: Actor) -> Tuple[Assignee, AssigneeType]:
    """Map a driver or company caller to its directory record."""
    if actor.is_driver:
        result = await db.execute(select(Driver).where(Driver.user_id == actor.user_id))
        driver = result.scalar_one_or_none()
        if driver is None:
            raise NotFoundError("driver_not_found", "Driver profile not found")
        return driver, AssigneeType.DRIVER

    if actor.is_company:
        result = await db.execute(
            select(LogisticsCompany).where(LogisticsCompany.user_id == actor.user_id)
        )
        company = result.scalar_one_or_none()
        if company is None:
            raise NotFoundError("company_not_found", "Logistics company profile not found")
        return company, AssigneeType.COMPANY

    raise ForbiddenError("not_assignee", "Only drivers and logistics companies can take requests")


async def is_actor_assignee(db: AsyncSession, actor: Actor, request: DispatchRequest) -> bool:
    """True when the caller is the party currently assigned to ``request``."""
    if request.assignee_id is None or not (actor.is_driver or actor.is_company):
        return False
    try:
        assignee, assignee_type = await resolve_actor_assignee(db, actor)
    except NotFoundError:
        return False
    return assignee.id == request.assignee_id and assignee_type == request.assignee_type


async def claim_driver(db: AsyncSession, driver_id: UUID) -> None:
    """Mark a driver busy, only if still available at write time."""
    result = await db.execute(
        update(Driver)
        .where(Driver.id == driver_id, Driver.is_available.is_(True))
        .values(is_available=False, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictError("driver_not_available", "Driver is not available")


def _holds_other_job(driver_id: UUID):
    return (
        select(DispatchRequest.id)
        .where(
            DispatchRequest.assignee_id == driver_id,
            DispatchRequest.assignee_type == AssigneeType.DRIVER,
            DispatchRequest.status.in_(IN_PROGRESS),
        )
        .exists()
    )


async def record_completed_delivery(
    db: AsyncSession,
    assignee_id: UUID,
    assignee_type: AssigneeType,
) -> None:
    """
    Atomically bump total_deliveries. A driver becomes available again only
    while on duty and holding no other accepted or in-progress request.
    """
    now = datetime.utcnow()
    if AssigneeType(assignee_type) == AssigneeType.COMPANY:
        stmt = (
            update(LogisticsCompany)
            .where(LogisticsCompany.id == assignee_id)
            .values(total_deliveries=LogisticsCompany.total_deliveries + 1, updated_at=now)
        )
    else:
        stmt = (
            update(Driver)
            .where(Driver.id == assignee_id)
            .values(
                total_deliveries=Driver.total_deliveries + 1,
                is_available=and_(Driver.is_on_duty, ~_holds_other_job(assignee_id)),
                updated_at=now,
            )
        )
    await db.execute(stmt.execution_options(synchronize_session=False))
    logger.info("Recorded completed delivery for %s %s", AssigneeType(assignee_type).value, assignee_id)
