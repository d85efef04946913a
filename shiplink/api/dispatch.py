"""
Dispatch request API endpoints.
Creation, listing, edits, assignment and status transitions.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from shiplink.api.deps import get_actor, get_identifier_minter, http_error
from shiplink.config import get_settings
from shiplink.core.actor import Actor
from shiplink.core.errors import DispatchError
from shiplink.core.events import commit_and_publish
from shiplink.database import get_db
from shiplink.models import DispatchStatus
from shiplink.schemas.common import Pagination
from shiplink.schemas.dispatch import (
    AssignRequest,
    CandidateList,
    CandidateResponse,
    DispatchRequestCreate,
    DispatchRequestList,
    DispatchRequestResponse,
    DispatchRequestUpdate,
    StatusUpdateRequest,
    serialize_request,
)
from shiplink.services import dispatch_service
from shiplink.services.identifiers import IdentifierMinter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dispatch-requests", tags=["Dispatch Requests"])


async def _fail(db: AsyncSession, e: DispatchError, action: str):
    await db.rollback()
    logger.info("Rejected %s: %s (%s)", action, e.code, e.message)
    return http_error(e)


def _page(requests, page: int, limit: int, total: int) -> DispatchRequestList:
    return DispatchRequestList(
        requests=[serialize_request(r) for r in requests],
        pagination=Pagination.build(page, limit, total),
    )


@router.post(
    "",
    response_model=DispatchRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create dispatch request",
    description="Price a pickup/dropoff pair, mint identifiers and persist the request.",
)
async def create_dispatch_request(
    payload: DispatchRequestCreate,
    actor: Actor = Depends(get_actor),
    minter: IdentifierMinter = Depends(get_identifier_minter),
    db: AsyncSession = Depends(get_db),
) -> DispatchRequestResponse:
    try:
        request = await dispatch_service.create_request(db, minter, actor, payload)
        await commit_and_publish(db)
        return serialize_request(request)
    except DispatchError as e:
        raise await _fail(db, e, "create")


@router.get(
    "",
    response_model=DispatchRequestList,
    summary="List dispatch requests",
    description="Admins see every request; other callers see the requests they created.",
)
async def list_dispatch_requests(
    status_filter: Optional[DispatchStatus] = Query(None, alias="status"),
    requester_id: Optional[UUID] = Query(None),
    assignee_id: Optional[UUID] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> DispatchRequestList:
    if not actor.is_admin:
        requester_id = actor.user_id
    requests, total = await dispatch_service.list_requests(
        db,
        status=status_filter,
        requester_id=requester_id,
        assignee_id=assignee_id,
        page=page,
        limit=limit,
    )
    return _page(requests, page, limit, total)


@router.get(
    "/pending",
    response_model=DispatchRequestList,
    summary="Open requests",
    description="Unassigned pending requests any driver or company can accept.",
)
async def list_pending_dispatch_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> DispatchRequestList:
    requests, total = await dispatch_service.list_pending_requests(db, page=page, limit=limit)
    return _page(requests, page, limit, total)


@router.get("/mine", response_model=DispatchRequestList, summary="Requests I created")
async def list_my_dispatch_requests(
    status_filter: Optional[DispatchStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> DispatchRequestList:
    requests, total = await dispatch_service.list_my_requests(
        db, actor, status=status_filter, page=page, limit=limit
    )
    return _page(requests, page, limit, total)


@router.get("/deliveries", response_model=DispatchRequestList, summary="Requests assigned to me")
async def list_my_deliveries(
    status_filter: Optional[DispatchStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> DispatchRequestList:
    try:
        requests, total = await dispatch_service.list_my_deliveries(
            db, actor, status=status_filter, page=page, limit=limit
        )
    except DispatchError as e:
        raise await _fail(db, e, "deliveries listing")
    return _page(requests, page, limit, total)


@router.get("/{request_id}", response_model=DispatchRequestResponse, summary="Get dispatch request")
async def get_dispatch_request(
    request_id: UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> DispatchRequestResponse:
    try:
        request = await dispatch_service.get_request(db, request_id)
    except DispatchError as e:
        raise await _fail(db, e, "lookup")
    return serialize_request(request)


@router.put(
    "/{request_id}",
    response_model=DispatchRequestResponse,
    summary="Edit pending request",
    description="Change pickup, dropoff or package; distance, price and ETA are recomputed.",
)
async def update_dispatch_request(
    request_id: UUID,
    changes: DispatchRequestUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> DispatchRequestResponse:
    try:
        request = await dispatch_service.update_request(db, actor, request_id, changes)
        await commit_and_publish(db)
        return serialize_request(request)
    except DispatchError as e:
        raise await _fail(db, e, "edit")


@router.delete(
    "/{request_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete pending request",
)
async def delete_dispatch_request(
    request_id: UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> Response:
    try:
        await dispatch_service.delete_request(db, actor, request_id)
        await commit_and_publish(db)
    except DispatchError as e:
        raise await _fail(db, e, "delete")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{request_id}/assign",
    response_model=DispatchRequestResponse,
    summary="Assign to a driver or company",
)
async def assign_dispatch_request(
    request_id: UUID,
    body: AssignRequest,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> DispatchRequestResponse:
    try:
        request = await dispatch_service.assign_request(
            db, actor, request_id, body.assignee_id, body.assignee_type
        )
        await commit_and_publish(db)
        return serialize_request(request)
    except DispatchError as e:
        raise await _fail(db, e, "assignment")


@router.post(
    "/{request_id}/accept",
    response_model=DispatchRequestResponse,
    summary="Accept an open request",
    description="The calling driver or company takes the request. Only the first of concurrent accepts wins.",
)
async def accept_dispatch_request(
    request_id: UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> DispatchRequestResponse:
    try:
        request = await dispatch_service.accept_request(db, actor, request_id)
        await commit_and_publish(db)
        return serialize_request(request)
    except DispatchError as e:
        raise await _fail(db, e, "accept")


@router.patch(
    "/{request_id}/status",
    response_model=DispatchRequestResponse,
    summary="Change status",
)
async def update_dispatch_status(
    request_id: UUID,
    body: StatusUpdateRequest,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> DispatchRequestResponse:
    try:
        request = await dispatch_service.update_status(db, actor, request_id, body.status)
        await commit_and_publish(db)
        return serialize_request(request)
    except DispatchError as e:
        raise await _fail(db, e, f"status change to {body.status.value}")


@router.get(
    "/{request_id}/candidates",
    response_model=CandidateList,
    summary="Nearest eligible drivers",
)
async def list_candidates(
    request_id: UUID,
    limit: Optional[int] = Query(None, ge=1, le=100),
    radius_km: Optional[float] = Query(None, gt=0),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> CandidateList:
    settings = get_settings()
    try:
        candidates = await dispatch_service.get_candidates(
            db,
            request_id,
            limit=limit or settings.match_candidate_limit,
            radius_km=radius_km if radius_km is not None else settings.match_radius_km,
        )
    except DispatchError as e:
        raise await _fail(db, e, "candidate lookup")

    return CandidateList(
        request_id=request_id,
        candidates=[
            CandidateResponse(
                driver_id=c.driver.id,
                name=c.driver.name,
                vehicle_type=c.driver.vehicle_type.value,
                rating=c.driver.rating,
                distance_km=c.distance_km,
            )
            for c in candidates
        ],
    )
