"""
Driver and logistics company directory endpoints.
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shiplink.api.deps import get_actor, http_error
from shiplink.core.actor import Actor
from shiplink.core.errors import DispatchError
from shiplink.database import get_db
from shiplink.schemas.driver import (
    AvailabilityUpdate,
    CompanyResponse,
    DriverResponse,
    LocationUpdate,
)
from shiplink.services import driver_directory
from shiplink.services.matching import get_driver

router = APIRouter(tags=["Directory"])


def _driver_response(driver) -> DriverResponse:
    return DriverResponse(
        id=driver.id,
        user_id=driver.user_id,
        name=driver.name,
        vehicle_type=driver.vehicle_type.value,
        vehicle_model=driver.vehicle_model,
        vehicle_plate=driver.vehicle_plate,
        rating=driver.rating,
        total_deliveries=driver.total_deliveries,
        is_available=driver.is_available,
        is_on_duty=driver.is_on_duty,
        verification_status=driver.verification_status.value,
        latitude=driver.latitude,
        longitude=driver.longitude,
        location_updated_at=driver.location_updated_at,
    )


@router.get("/drivers/{driver_id}", response_model=DriverResponse, summary="Get driver")
async def get_driver_detail(
    driver_id: UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> DriverResponse:
    try:
        driver = await get_driver(db, driver_id)
    except DispatchError as e:
        raise http_error(e)
    return _driver_response(driver)


@router.patch(
    "/drivers/{driver_id}/availability",
    response_model=DriverResponse,
    summary="Go on or off duty",
)
async def set_driver_availability(
    driver_id: UUID,
    body: AvailabilityUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> DriverResponse:
    try:
        driver = await driver_directory.set_driver_availability(db, actor, driver_id, body.is_available)
        await db.commit()
        return _driver_response(driver)
    except DispatchError as e:
        await db.rollback()
        raise http_error(e)


@router.patch(
    "/drivers/{driver_id}/location",
    response_model=DriverResponse,
    summary="Report current position",
)
async def update_driver_location(
    driver_id: UUID,
    body: LocationUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> DriverResponse:
    try:
        driver = await driver_directory.update_driver_location(
            db, actor, driver_id, body.latitude, body.longitude
        )
        await db.commit()
        return _driver_response(driver)
    except DispatchError as e:
        await db.rollback()
        raise http_error(e)


@router.patch(
    "/companies/{company_id}/availability",
    response_model=CompanyResponse,
    summary="Start or stop taking requests",
)
async def set_company_availability(
    company_id: UUID,
    body: AvailabilityUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> CompanyResponse:
    try:
        company = await driver_directory.set_company_availability(db, actor, company_id, body.is_available)
        await db.commit()
        return CompanyResponse.model_validate(company)
    except DispatchError as e:
        await db.rollback()
        raise http_error(e)
