"""
Dispatch request service layer.

Creation, edits, assignment and status transitions. Every status change is
a conditional UPDATE on the status the caller observed, so concurrent
writers are totally ordered by the database and exactly one of two racing
transitions commits.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shiplink.core.actor import Actor
from shiplink.core.errors import ConflictError, ForbiddenError, NotFoundError
from shiplink.core.events import queue_status_change
from shiplink.models import AssigneeType, DispatchRequest, DispatchStatus
from shiplink.schemas.dispatch import DispatchRequestCreate, DispatchRequestUpdate
from shiplink.services.commission import calculate_commission
from shiplink.services.dispatch_state import (
    ELIGIBLE_PARTY,
    REQUESTER,
    STATUS_TIMESTAMPS,
    ensure_transition,
    is_idempotent_repeat,
    required_party,
)
from shiplink.services.geo_pricing import quote_route
from shiplink.services.identifiers import IdentifierMinter
from shiplink.services.matching import (
    Assignee,
    Candidate,
    claim_driver,
    ensure_can_take,
    find_candidates,
    is_actor_assignee,
    record_completed_delivery,
    resolve_actor_assignee,
    resolve_assignee,
)

logger = logging.getLogger(__name__)


# ==================== Helpers ====================

async def get_request(db: AsyncSession, request_id: UUID) -> DispatchRequest:
    """Point lookup. Raises NotFoundError(request_not_found)."""
    request = await db.get(DispatchRequest, request_id)
    if request is None:
        raise NotFoundError("request_not_found", f"Dispatch request {request_id} not found")
    return request


def _ensure_requester(actor: Actor, request: DispatchRequest, action: str) -> None:
    if request.requester_id != actor.user_id:
        raise ForbiddenError("not_requester", f"Only the request creator can {action} this request")


async def _write_if_status(
    db: AsyncSession,
    request: DispatchRequest,
    expected: DispatchStatus,
    values: Dict[str, Any],
) -> bool:
    """
    UPDATE ... WHERE id = :id AND status = :expected.

    Returns:
        True if the row was written (request is refreshed), False if the
        stored status no longer matched.
    """
    values.setdefault("updated_at", datetime.utcnow())
    result = await db.execute(
        update(DispatchRequest)
        .where(DispatchRequest.id == request.id, DispatchRequest.status == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return False
    await db.refresh(request)
    return True


def _notify(db: AsyncSession, request: DispatchRequest, from_status: Optional[DispatchStatus]) -> None:
    queue_status_change(
        db,
        "dispatch_request",
        str(request.id),
        from_status.value if from_status else None,
        request.status.value,
        {
            "order_id": request.order_id,
            "order_number": request.order_number,
            "requester_id": str(request.requester_id),
            "assignee_id": str(request.assignee_id) if request.assignee_id else None,
        },
    )


# ==================== Create / read ====================

async def create_request(
    db: AsyncSession,
    minter: IdentifierMinter,
    actor: Actor,
    payload: DispatchRequestCreate,
) -> DispatchRequest:
    """
    Price, identify and persist a new dispatch request.

    Enters ``pending``, or ``accepted`` directly when an assignee is supplied
    (the assignee must exist and be able to take work).

    Args:
        db: Database session
        minter: Identifier minter for order id / order number
        actor: Requesting user (becomes the immutable requester)
        payload: Validated creation payload

    Returns:
        The flushed DispatchRequest

    Raises:
        NotFoundError: driver_not_found / company_not_found
        ConflictError: driver_not_available / driver_not_eligible / company_not_available
    """
    assignee: Optional[Assignee] = None
    if payload.assignee_id is not None:
        assignee = await resolve_assignee(
            db,
            payload.assignee_id,
            payload.assignee_type,
            payload.required_vehicle_type,
        )

    pricing = quote_route(
        payload.pickup_location.coordinates,
        payload.dropoff_location.coordinates,
        payload.package_details.weight,
        payload.service_type,
    )

    # Mint before touching the session so counter commits never wait on our locks
    order_id = await minter.global_order_id()
    order_number = await minter.order_number(actor.user_id, actor.role)

    now = datetime.utcnow()
    dims = payload.package_details.dimensions
    request = DispatchRequest(
        order_id=order_id,
        order_number=order_number,
        requester_id=actor.user_id,
        requester_role=actor.role,
        pickup_address=payload.pickup_location.address,
        pickup_latitude=payload.pickup_location.latitude,
        pickup_longitude=payload.pickup_location.longitude,
        dropoff_address=payload.dropoff_location.address,
        dropoff_latitude=payload.dropoff_location.latitude,
        dropoff_longitude=payload.dropoff_location.longitude,
        package_weight_kg=payload.package_details.weight,
        package_length=dims.length if dims else None,
        package_width=dims.width if dims else None,
        package_height=dims.height if dims else None,
        package_description=payload.package_details.content_description,
        service_type=pricing.service_type,
        required_vehicle_type=payload.required_vehicle_type,
        distance_km=pricing.distance_km,
        price=pricing.price,
        estimated_delivery_time=pricing.estimated_delivery_time,
        status=DispatchStatus.PENDING,
        created_at=now,
        updated_at=now,
    )

    if assignee is not None:
        request.assignee_id = assignee.id
        request.assignee_type = AssigneeType(payload.assignee_type)
        request.status = DispatchStatus.ACCEPTED
        request.accepted_at = now
        if request.assignee_type == AssigneeType.DRIVER:
            await claim_driver(db, assignee.id)

    db.add(request)
    await db.flush()
    await db.refresh(request)

    logger.info(
        "Created dispatch request %s (%s) status=%s distance=%.2fkm price=%.2f",
        request.order_id,
        request.order_number,
        request.status.value,
        request.distance_km,
        request.price,
    )
    _notify(db, request, None)
    return request


async def list_requests(
    db: AsyncSession,
    status: Optional[DispatchStatus] = None,
    requester_id: Optional[UUID] = None,
    assignee_id: Optional[UUID] = None,
    unassigned_only: bool = False,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[DispatchRequest], int]:
    """Newest-first filtered listing. Returns (page of requests, total count)."""
    conditions = []
    if status is not None:
        conditions.append(DispatchRequest.status == status)
    if requester_id is not None:
        conditions.append(DispatchRequest.requester_id == requester_id)
    if assignee_id is not None:
        conditions.append(DispatchRequest.assignee_id == assignee_id)
    if unassigned_only:
        conditions.append(DispatchRequest.assignee_id.is_(None))

    total_result = await db.execute(
        select(func.count()).select_from(DispatchRequest).where(*conditions)
    )
    total = total_result.scalar_one()

    result = await db.execute(
        select(DispatchRequest)
        .where(*conditions)
        .order_by(DispatchRequest.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def list_pending_requests(
    db: AsyncSession,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[DispatchRequest], int]:
    """Open requests any eligible driver or company may pull."""
    return await list_requests(
        db, status=DispatchStatus.PENDING, unassigned_only=True, page=page, limit=limit
    )


async def list_my_requests(
    db: AsyncSession,
    actor: Actor,
    status: Optional[DispatchStatus] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[DispatchRequest], int]:
    return await list_requests(db, status=status, requester_id=actor.user_id, page=page, limit=limit)


async def list_my_deliveries(
    db: AsyncSession,
    actor: Actor,
    status: Optional[DispatchStatus] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[DispatchRequest], int]:
    """Requests assigned to the calling driver or company."""
    assignee, _ = await resolve_actor_assignee(db, actor)
    return await list_requests(db, status=status, assignee_id=assignee.id, page=page, limit=limit)


async def get_candidates(
    db: AsyncSession,
    request_id: UUID,
    limit: int = 20,
    radius_km: Optional[float] = None,
) -> List[Candidate]:
    """Nearest-first eligible drivers for a pending request."""
    request = await get_request(db, request_id)
    if request.status != DispatchStatus.PENDING:
        raise ConflictError("request_not_pending", "Request is no longer pending")
    return await find_candidates(db, request, limit=limit, radius_km=radius_km)


# ==================== Edits ====================

async def update_request(
    db: AsyncSession,
    actor: Actor,
    request_id: UUID,
    changes: DispatchRequestUpdate,
) -> DispatchRequest:
    """
    Edit pickup, dropoff or package while the request is pending.
    Distance, price and ETA are always recomputed, never taken from input.

    Raises:
        ForbiddenError: not_requester
        ConflictError: request_not_editable
    """
    request = await get_request(db, request_id)
    _ensure_requester(actor, request, "edit")
    if request.status != DispatchStatus.PENDING:
        raise ConflictError("request_not_editable", "Only pending requests can be edited")

    values: Dict[str, Any] = {}
    if changes.pickup_location is not None:
        values.update(
            pickup_address=changes.pickup_location.address,
            pickup_latitude=changes.pickup_location.latitude,
            pickup_longitude=changes.pickup_location.longitude,
        )
    if changes.dropoff_location is not None:
        values.update(
            dropoff_address=changes.dropoff_location.address,
            dropoff_latitude=changes.dropoff_location.latitude,
            dropoff_longitude=changes.dropoff_location.longitude,
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
    if not values:
        return request

    pricing = quote_route(
        (values.get("pickup_latitude", request.pickup_latitude),
         values.get("pickup_longitude", request.pickup_longitude)),
        (values.get("dropoff_latitude", request.dropoff_latitude),
         values.get("dropoff_longitude", request.dropoff_longitude)),
        values.get("package_weight_kg", request.package_weight_kg),
        request.service_type,
    )
    values.update(
        distance_km=pricing.distance_km,
        price=pricing.price,
        estimated_delivery_time=pricing.estimated_delivery_time,
    )

    if not await _write_if_status(db, request, DispatchStatus.PENDING, values):
        raise ConflictError("request_not_editable", "Only pending requests can be edited")

    logger.info("Updated dispatch request %s, new price %.2f", request.order_id, request.price)
    return request


async def delete_request(db: AsyncSession, actor: Actor, request_id: UUID) -> None:
    """
    Hard delete, only while pending. Anything accepted is kept for audit.

    Raises:
        ForbiddenError: not_requester
        ConflictError: request_not_pending
    """
    request = await get_request(db, request_id)
    _ensure_requester(actor, request, "delete")
    if request.status != DispatchStatus.PENDING:
        raise ConflictError("request_not_pending", "Only pending requests can be deleted")

    result = await db.execute(
        delete(DispatchRequest)
        .where(DispatchRequest.id == request.id, DispatchRequest.status == DispatchStatus.PENDING)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictError("request_not_pending", "Only pending requests can be deleted")
    db.expunge(request)
    logger.info("Deleted pending dispatch request %s", request.order_id)


# ==================== Assignment ====================

async def _assign(
    db: AsyncSession,
    request: DispatchRequest,
    assignee: Assignee,
    assignee_type: AssigneeType,
) -> DispatchRequest:
    now = datetime.utcnow()
    written = await _write_if_status(
        db,
        request,
        DispatchStatus.PENDING,
        {
            "status": DispatchStatus.ACCEPTED,
            "assignee_id": assignee.id,
            "assignee_type": assignee_type,
            "accepted_at": now,
            "updated_at": now,
        },
    )
    if not written:
        raise ConflictError("request_not_pending", "Request is no longer pending")

    if assignee_type == AssigneeType.DRIVER:
        await claim_driver(db, assignee.id)

    logger.info(
        "Dispatch request %s accepted by %s %s",
        request.order_id,
        assignee_type.value,
        assignee.id,
    )
    _notify(db, request, DispatchStatus.PENDING)
    return request


async def assign_request(
    db: AsyncSession,
    actor: Actor,
    request_id: UUID,
    assignee_id: UUID,
    assignee_type: AssigneeType = AssigneeType.DRIVER,
) -> DispatchRequest:
    """
    Directed assignment by the requester (or an admin).

    Raises:
        ForbiddenError: not_requester
        NotFoundError: driver_not_found / company_not_found
        ConflictError: request_not_pending / driver_not_available /
            driver_not_eligible / company_not_available
    """
    request = await get_request(db, request_id)
    if not actor.is_admin:
        _ensure_requester(actor, request, "assign")
    if request.status != DispatchStatus.PENDING:
        raise ConflictError("request_not_pending", "Request is no longer pending")

    assignee = await resolve_assignee(db, assignee_id, assignee_type, request.required_vehicle_type)
    return await _assign(db, request, assignee, AssigneeType(assignee_type))


async def accept_request(db: AsyncSession, actor: Actor, request_id: UUID) -> DispatchRequest:
    """
    Self-accept of an open request by a driver or company.
    Of two racing acceptances exactly one commits; the other gets
    ConflictError(request_not_pending).
    """
    request = await get_request(db, request_id)
    assignee, assignee_type = await resolve_actor_assignee(db, actor)
    if request.status != DispatchStatus.PENDING:
        raise ConflictError("request_not_pending", "Request is no longer pending")
    ensure_can_take(assignee, request.required_vehicle_type)
    return await _assign(db, request, assignee, assignee_type)


# ==================== Status transitions ====================

async def cancel_request(db: AsyncSession, actor: Actor, request_id: UUID) -> DispatchRequest:
    return await update_status(db, actor, request_id, DispatchStatus.CANCELLED)


async def update_status(
    db: AsyncSession,
    actor: Actor,
    request_id: UUID,
    target: DispatchStatus,
) -> DispatchRequest:
    """
    Move a request to ``target``.

    Legality of (current, target) is checked first, then who is asking.
    ``delivered`` stamps actual_delivery_time, fixes payout numbers and
    counts the delivery for the assignee exactly once; repeating it is a
    no-op.

    Raises:
        NotFoundError: request_not_found
        ConflictError: invalid_transition / request_not_pending /
            request_status_changed
        ForbiddenError: not_requester / not_assignee
    """
    target = DispatchStatus(target)
    request = await get_request(db, request_id)
    current = request.status
    ensure_transition(current, target)

    party = required_party(target)
    if party == ELIGIBLE_PARTY:
        return await accept_request(db, actor, request_id)

    if party == REQUESTER:
        _ensure_requester(actor, request, "cancel")
        now = datetime.utcnow()
        cancelled = await _write_if_status(
            db,
            request,
            DispatchStatus.PENDING,
            {"status": DispatchStatus.CANCELLED, "cancelled_at": now, "updated_at": now},
        )
        if not cancelled:
            raise ConflictError("request_not_pending", "Only pending requests can be cancelled")
        logger.info("Dispatch request %s cancelled", request.order_id)
        _notify(db, request, current)
        return request

    if not await is_actor_assignee(db, actor, request):
        raise ForbiddenError("not_assignee", "Only the assigned driver or company can update this status")

    if is_idempotent_repeat(current, target):
        return request

    now = datetime.utcnow()
    values: Dict[str, Any] = {
        "status": target,
        STATUS_TIMESTAMPS[target]: now,
        "updated_at": now,
    }
    if target == DispatchStatus.DELIVERED:
        payout = calculate_commission(request.price)
        values.update(
            commission_rate=payout.commission_rate,
            commission_amount=payout.commission_amount,
            provider_payout=payout.provider_payout,
        )

    assignee_id = request.assignee_id
    assignee_type = request.assignee_type
    if not await _write_if_status(db, request, current, values):
        await db.refresh(request)
        if is_idempotent_repeat(request.status, target):
            return request
        raise ConflictError(
            "request_status_changed",
            f"Request moved to {request.status.value} before {target.value} could be applied",
        )

    if target == DispatchStatus.DELIVERED:
        await record_completed_delivery(db, assignee_id, assignee_type)

    logger.info(
        "Dispatch request %s: %s -> %s",
        request.order_id,
        current.value,
        target.value,
    )
    _notify(db, request, current)
    return request
