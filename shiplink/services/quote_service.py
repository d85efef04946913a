"""
Quote engine.

Provisional priced offers from a logistics company to a customer. Expiry is
evaluated lazily against the validity window; conversion into a dispatch
request is one-way and freezes the quote.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shiplink.config import get_settings
from shiplink.core.actor import ROLE_USER, Actor
from shiplink.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from shiplink.core.events import queue_status_change
from shiplink.models import (
    AssigneeType,
    DispatchRequest,
    DispatchStatus,
    LogisticsCompany,
    Quote,
    QuoteStatus,
    ServiceType,
)
from shiplink.schemas.common import LocationIn, PackageDetailsIn
from shiplink.schemas.quote import QuoteCreate, QuoteUpdate
from shiplink.services.geo_pricing import quote_route
from shiplink.services.identifiers import IdentifierMinter
from shiplink.services.matching import ensure_can_take, get_company

logger = logging.getLogger(__name__)

CUSTOMER = "customer"
COMPANY = "company"

# from-status -> {to-status: party allowed to make the move}
QUOTE_TRANSITIONS: Dict[QuoteStatus, Dict[QuoteStatus, str]] = {
    QuoteStatus.PENDING: {
        QuoteStatus.APPROVED: CUSTOMER,
        QuoteStatus.REJECTED: CUSTOMER,
        QuoteStatus.EXPIRED: COMPANY,
    },
    QuoteStatus.APPROVED: {
        QuoteStatus.EXPIRED: COMPANY,
    },
}

CONVERTIBLE = (QuoteStatus.PENDING, QuoteStatus.APPROVED)


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


async def _actor_company(db: AsyncSession, actor: Actor) -> LogisticsCompany:
    if not actor.is_company:
        raise ForbiddenError("not_quote_party", "Only logistics companies can issue quotes")
    result = await db.execute(
        select(LogisticsCompany).where(LogisticsCompany.user_id == actor.user_id)
    )
    company = result.scalar_one_or_none()
    if company is None:
        raise NotFoundError("company_not_found", "Logistics company profile not found")
    return company


async def _quote_party(db: AsyncSession, actor: Actor, quote: Quote) -> str:
    """Which side of the quote the caller is on. Raises ForbiddenError otherwise."""
    if quote.customer_id == actor.user_id:
        return CUSTOMER
    if actor.is_company:
        result = await db.execute(
            select(LogisticsCompany.id).where(LogisticsCompany.user_id == actor.user_id)
        )
        if result.scalar_one_or_none() == quote.company_id:
            return COMPANY
    raise ForbiddenError("not_quote_party", "Quote belongs to another company and customer")


def _notify(db: AsyncSession, quote: Quote, from_status: Optional[QuoteStatus]) -> None:
    queue_status_change(
        db,
        "quote",
        str(quote.id),
        from_status.value if from_status else None,
        quote.status.value,
        {
            "quote_number": quote.quote_number,
            "company_id": str(quote.company_id),
            "customer_id": str(quote.customer_id),
            "converted_request_id": str(quote.converted_request_id) if quote.converted_request_id else None,
        },
    )


def calculate_quote(
    origin: LocationIn,
    destination: LocationIn,
    package: PackageDetailsIn,
    service_type: Optional[ServiceType] = None,
) -> Dict[str, Any]:
    """Price a route without persisting anything."""
    pricing = quote_route(origin.coordinates, destination.coordinates, package.weight, service_type)
    return {
        "distance": pricing.distance_km,
        "calculated_cost": pricing.price,
        "estimated_delivery_time": pricing.estimated_delivery_time,
        "currency": get_settings().currency,
        "service_type": pricing.service_type.value,
    }


async def create_quote(
    db: AsyncSession,
    minter: IdentifierMinter,
    actor: Actor,
    payload: QuoteCreate,
) -> Quote:
    """
    Issue a quote from the caller's company to ``payload.customer_id``.

    Validity starts now and ends at ``validity_end`` or after the configured
    number of days.

    Raises:
        ForbiddenError: caller is not a logistics company
        NotFoundError: company_not_found
        ValidationError: invalid_validity_period
    """
    settings = get_settings()
    company = await _actor_company(db, actor)

    pricing = quote_route(
        payload.origin.coordinates,
        payload.destination.coordinates,
        payload.package_details.weight,
        payload.service_type,
    )

    start = datetime.utcnow()
    if payload.validity_end is not None:
        end = _naive_utc(payload.validity_end)
    else:
        end = start + timedelta(days=settings.quote_validity_days)
    if end <= start:
        raise ValidationError("invalid_validity_period", "Validity end must be after validity start")

    quote_number = await minter.quote_number(actor.user_id, actor.role)

    dims = payload.package_details.dimensions
    quote = Quote(
        quote_number=quote_number,
        company_id=company.id,
        customer_id=payload.customer_id,
        origin_address=payload.origin.address,
        origin_latitude=payload.origin.latitude,
        origin_longitude=payload.origin.longitude,
        destination_address=payload.destination.address,
        destination_latitude=payload.destination.latitude,
        destination_longitude=payload.destination.longitude,
        package_weight_kg=payload.package_details.weight,
        package_length=dims.length if dims else None,
        package_width=dims.width if dims else None,
        package_height=dims.height if dims else None,
        package_description=payload.package_details.content_description,
        service_type=pricing.service_type,
        distance_km=pricing.distance_km,
        calculated_cost=pricing.price,
        currency=settings.currency,
        estimated_delivery_time=pricing.estimated_delivery_time,
        validity_start=start,
        validity_end=end,
        status=QuoteStatus.PENDING,
        notes=payload.notes,
        created_at=start,
        updated_at=start,
    )
    db.add(quote)
    await db.flush()
    await db.refresh(quote)

    logger.info(
        "Quote %s issued by company %s to customer %s: %.2f %s",
        quote.quote_number,
        company.id,
        quote.customer_id,
        quote.calculated_cost,
        quote.currency,
    )
    _notify(db, quote, None)
    return quote


async def get_quote(db: AsyncSession, actor: Actor, quote_id: UUID) -> Quote:
    quote = await db.get(Quote, quote_id)
    if quote is None:
        raise NotFoundError("quote_not_found", f"Quote {quote_id} not found")
    await _quote_party(db, actor, quote)
    return quote


async def list_quotes(
    db: AsyncSession,
    actor: Actor,
    status: Optional[QuoteStatus] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[Quote], int]:
    """
    Newest-first page of quotes. A company sees the quotes it issued,
    anyone else the quotes addressed to them.
    """
    if actor.is_company:
        company = await _actor_company(db, actor)
        conditions = [Quote.company_id == company.id]
    else:
        conditions = [Quote.customer_id == actor.user_id]
    if status is not None:
        conditions.append(Quote.status == status)

    total_result = await db.execute(select(func.count()).select_from(Quote).where(*conditions))
    total = total_result.scalar_one()

    result = await db.execute(
        select(Quote)
        .where(*conditions)
        .order_by(Quote.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def _write_if_status(
    db: AsyncSession,
    quote: Quote,
    expected: Tuple[QuoteStatus, ...],
    values: Dict[str, Any],
) -> bool:
    values.setdefault("updated_at", datetime.utcnow())
    result = await db.execute(
        update(Quote)
        .where(Quote.id == quote.id, Quote.status.in_(expected))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    await db.refresh(quote)
    return result.rowcount == 1


async def update_quote(
    db: AsyncSession,
    actor: Actor,
    quote_id: UUID,
    changes: QuoteUpdate,
) -> Quote:
    """
    Revise a pending quote. Cost, distance and ETA are recomputed.

    Raises:
        ConflictError: quote_converted / quote_not_editable
        ForbiddenError: not_quote_party
    """
    quote = await get_quote(db, actor, quote_id)
    if await _quote_party(db, actor, quote) != COMPANY:
        raise ForbiddenError("not_quote_party", "Only the issuing company can edit a quote")
    if quote.status == QuoteStatus.CONVERTED:
        raise ConflictError("quote_converted", "Converted quotes cannot be changed")
    if quote.status != QuoteStatus.PENDING:
        raise ConflictError("quote_not_editable", "Only pending quotes can be edited")

    values: Dict[str, Any] = {}
    if changes.origin is not None:
        values.update(
            origin_address=changes.origin.address,
            origin_latitude=changes.origin.latitude,
            origin_longitude=changes.origin.longitude,
        )
    if changes.destination is not None:
        values.update(
            destination_address=changes.destination.address,
            destination_latitude=changes.destination.latitude,
            destination_longitude=changes.destination.longitude,
        )
    if changes.package_details is not None:
        dims = changes.package_details.dimensions
        values.update(
            package_weight_kg=changes.package_details.weight,
            package_length=dims.length if dims else None,
            package_width=dims.width if dims else None,
            package_height=dims.height if dims else None,
            package_description=changes.package_details.content_description,
        )
    if changes.service_type is not None:
        values["service_type"] = changes.service_type
    if changes.notes is not None:
        values["notes"] = changes.notes
    if changes.validity_end is not None:
        end = _naive_utc(changes.validity_end)
        if end <= quote.validity_start:
            raise ValidationError("invalid_validity_period", "Validity end must be after validity start")
        values["validity_end"] = end
    if not values:
        return quote

    pricing = quote_route(
        (values.get("origin_latitude", quote.origin_latitude),
         values.get("origin_longitude", quote.origin_longitude)),
        (values.get("destination_latitude", quote.destination_latitude),
         values.get("destination_longitude", quote.destination_longitude)),
        values.get("package_weight_kg", quote.package_weight_kg),
        values.get("service_type", quote.service_type),
    )
    values.update(
        distance_km=pricing.distance_km,
        calculated_cost=pricing.price,
        estimated_delivery_time=pricing.estimated_delivery_time,
    )

    if not await _write_if_status(db, quote, (QuoteStatus.PENDING,), values):
        if quote.status == QuoteStatus.CONVERTED:
            raise ConflictError("quote_converted", "Converted quotes cannot be changed")
        raise ConflictError("quote_not_editable", "Only pending quotes can be edited")

    logger.info("Quote %s revised to %.2f %s", quote.quote_number, quote.calculated_cost, quote.currency)
    return quote


async def update_quote_status(
    db: AsyncSession,
    actor: Actor,
    quote_id: UUID,
    target: QuoteStatus,
) -> Quote:
    """
    Customer approves or rejects a pending quote; the company expires a
    pending or approved one. ``converted`` is only reachable via convert_quote.

    Raises:
        ConflictError: quote_converted / invalid_quote_transition / quote_expired
        ForbiddenError: not_quote_party
    """
    target = QuoteStatus(target)
    quote = await get_quote(db, actor, quote_id)
    current = quote.status

    if current == QuoteStatus.CONVERTED:
        raise ConflictError("quote_converted", "Converted quotes cannot be changed")
    allowed = QUOTE_TRANSITIONS.get(current, {})
    if target not in allowed:
        raise ConflictError(
            "invalid_quote_transition",
            f"Cannot change quote status from {current.value} to {target.value}",
        )

    party = await _quote_party(db, actor, quote)
    if allowed[target] != party:
        raise ForbiddenError("not_quote_party", f"Only the {allowed[target]} can mark a quote {target.value}")
    if target == QuoteStatus.APPROVED and quote.is_expired():
        raise ConflictError("quote_expired", "Quote validity period has ended")

    if not await _write_if_status(db, quote, (current,), {"status": target}):
        if quote.status == QuoteStatus.CONVERTED:
            raise ConflictError("quote_converted", "Converted quotes cannot be changed")
        raise ConflictError(
            "invalid_quote_transition",
            f"Quote moved to {quote.status.value} before {target.value} could be applied",
        )

    logger.info("Quote %s: %s -> %s", quote.quote_number, current.value, target.value)
    _notify(db, quote, current)
    return quote


async def convert_quote(
    db: AsyncSession,
    minter: IdentifierMinter,
    actor: Actor,
    quote_id: UUID,
) -> Tuple[Quote, DispatchRequest]:
    """
    Turn a live quote into a dispatch request pre-assigned to the issuing
    company, with the customer as requester and the quoted price.

    Raises:
        ConflictError: quote_converted / invalid_quote_transition /
            quote_expired / company_not_available
        ForbiddenError: not_quote_party
    """
    quote = await get_quote(db, actor, quote_id)
    party = await _quote_party(db, actor, quote)
    current = quote.status

    if current == QuoteStatus.CONVERTED:
        raise ConflictError("quote_converted", "Quote has already been converted")
    if current not in CONVERTIBLE:
        raise ConflictError(
            "invalid_quote_transition",
            f"Cannot convert a quote that is {current.value}",
        )
    if quote.is_expired():
        raise ConflictError("quote_expired", "Quote validity period has ended")

    company = await get_company(db, quote.company_id)
    ensure_can_take(company)

    requester_role = actor.role if party == CUSTOMER else ROLE_USER
    order_id = await minter.global_order_id()
    order_number = await minter.order_number(quote.customer_id, requester_role)

    now = datetime.utcnow()
    request = DispatchRequest(
        order_id=order_id,
        order_number=order_number,
        requester_id=quote.customer_id,
        requester_role=requester_role,
        assignee_id=company.id,
        assignee_type=AssigneeType.COMPANY,
        pickup_address=quote.origin_address,
        pickup_latitude=quote.origin_latitude,
        pickup_longitude=quote.origin_longitude,
        dropoff_address=quote.destination_address,
        dropoff_latitude=quote.destination_latitude,
        dropoff_longitude=quote.destination_longitude,
        package_weight_kg=quote.package_weight_kg,
        package_length=quote.package_length,
        package_width=quote.package_width,
        package_height=quote.package_height,
        package_description=quote.package_description,
        service_type=quote.service_type,
        distance_km=quote.distance_km,
        price=quote.calculated_cost,
        estimated_delivery_time=quote.estimated_delivery_time,
        status=DispatchStatus.ACCEPTED,
        accepted_at=now,
        created_at=now,
        updated_at=now,
    )
    db.add(request)
    await db.flush()

    converted = await _write_if_status(
        db,
        quote,
        CONVERTIBLE,
        {
            "status": QuoteStatus.CONVERTED,
            "converted_request_id": request.id,
            "converted_at": now,
            "updated_at": now,
        },
    )
    if not converted:
        if quote.status == QuoteStatus.CONVERTED:
            raise ConflictError("quote_converted", "Quote has already been converted")
        raise ConflictError(
            "invalid_quote_transition",
            f"Quote moved to {quote.status.value} while it was being converted",
        )
    await db.refresh(request)

    logger.info(
        "Quote %s converted into dispatch request %s (%s)",
        quote.quote_number,
        request.order_id,
        request.order_number,
    )
    _notify(db, quote, current)
    queue_status_change(
        db,
        "dispatch_request",
        str(request.id),
        None,
        request.status.value,
        {
            "order_id": request.order_id,
            "order_number": request.order_number,
            "requester_id": str(request.requester_id),
            "assignee_id": str(request.assignee_id),
            "quote_id": str(quote.id),
        },
    )
    return quote, request
