"""
Quote API endpoints.
Price calculation, quote issuing, review and conversion to a dispatch request.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from shiplink.api.deps import get_actor, get_identifier_minter, http_error
from shiplink.core.actor import Actor
from shiplink.core.errors import DispatchError
from shiplink.core.events import commit_and_publish
from shiplink.database import get_db
from shiplink.models import QuoteStatus
from shiplink.schemas.common import Pagination
from shiplink.schemas.quote import (
    QuoteCalculateRequest,
    QuoteCalculateResponse,
    QuoteConversionResponse,
    QuoteCreate,
    QuoteList,
    QuoteResponse,
    QuoteStatusUpdate,
    QuoteUpdate,
    serialize_quote,
)
from shiplink.services import quote_service
from shiplink.services.identifiers import IdentifierMinter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quotes", tags=["Quotes"])


async def _fail(db: AsyncSession, e: DispatchError, action: str):
    await db.rollback()
    logger.info("Rejected quote %s: %s (%s)", action, e.code, e.message)
    return http_error(e)


@router.post(
    "/calculate",
    response_model=QuoteCalculateResponse,
    summary="Calculate a price",
    description="Distance, cost and ETA for a route without saving anything.",
)
async def calculate_quote(
    payload: QuoteCalculateRequest,
    actor: Actor = Depends(get_actor),
) -> QuoteCalculateResponse:
    try:
        result = quote_service.calculate_quote(
            payload.origin,
            payload.destination,
            payload.package_details,
            payload.service_type,
        )
    except DispatchError as e:
        raise http_error(e)
    return QuoteCalculateResponse(**result)


@router.post(
    "",
    response_model=QuoteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue a quote",
)
async def create_quote(
    payload: QuoteCreate,
    actor: Actor = Depends(get_actor),
    minter: IdentifierMinter = Depends(get_identifier_minter),
    db: AsyncSession = Depends(get_db),
) -> QuoteResponse:
    try:
        quote = await quote_service.create_quote(db, minter, actor, payload)
        await commit_and_publish(db)
        return serialize_quote(quote)
    except DispatchError as e:
        raise await _fail(db, e, "create")


@router.get("", response_model=QuoteList, summary="List quotes")
async def list_quotes(
    status_filter: Optional[QuoteStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> QuoteList:
    try:
        quotes, total = await quote_service.list_quotes(
            db, actor, status=status_filter, page=page, limit=limit
        )
    except DispatchError as e:
        raise await _fail(db, e, "listing")
    return QuoteList(
        quotes=[serialize_quote(q) for q in quotes],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/{quote_id}", response_model=QuoteResponse, summary="Get quote")
async def get_quote(
    quote_id: UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> QuoteResponse:
    try:
        quote = await quote_service.get_quote(db, actor, quote_id)
    except DispatchError as e:
        raise await _fail(db, e, "lookup")
    return serialize_quote(quote)


@router.put("/{quote_id}", response_model=QuoteResponse, summary="Revise a pending quote")
async def update_quote(
    quote_id: UUID,
    changes: QuoteUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> QuoteResponse:
    try:
        quote = await quote_service.update_quote(db, actor, quote_id, changes)
        await commit_and_publish(db)
        return serialize_quote(quote)
    except DispatchError as e:
        raise await _fail(db, e, "edit")


@router.patch("/{quote_id}/status", response_model=QuoteResponse, summary="Approve, reject or expire")
async def update_quote_status(
    quote_id: UUID,
    body: QuoteStatusUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> QuoteResponse:
    try:
        quote = await quote_service.update_quote_status(db, actor, quote_id, body.status)
        await commit_and_publish(db)
        return serialize_quote(quote)
    except DispatchError as e:
        raise await _fail(db, e, f"status change to {body.status.value}")


@router.post(
    "/{quote_id}/convert",
    response_model=QuoteConversionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Convert into a dispatch request",
    description="One-way. The new request is pre-assigned to the issuing company.",
)
async def convert_quote(
    quote_id: UUID,
    actor: Actor = Depends(get_actor),
    minter: IdentifierMinter = Depends(get_identifier_minter),
    db: AsyncSession = Depends(get_db),
) -> QuoteConversionResponse:
    try:
        quote, request = await quote_service.convert_quote(db, minter, actor, quote_id)
        await commit_and_publish(db)
    except DispatchError as e:
        raise await _fail(db, e, "conversion")
    return QuoteConversionResponse(
        quote=serialize_quote(quote),
        request_id=request.id,
        order_id=request.order_id,
        order_number=request.order_number,
    )
