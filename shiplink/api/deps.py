"""
Shared FastAPI dependencies: caller identity and identifier minting.

Authentication happens upstream; the gateway forwards the authenticated
user id and role as headers.
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import async_sessionmaker

from shiplink.core.actor import KNOWN_ROLES, ROLE_USER, Actor
from shiplink.core.errors import DispatchError
from shiplink.database import get_session_factory
from shiplink.services.identifiers import IdentifierMinter
from shiplink.services.sequence import SequenceAllocator


async def get_actor(
    x_user_id: Optional[str] = Header(None, description="Authenticated user id"),
    x_user_role: Optional[str] = Header(None, description="Authenticated user role"),
) -> Actor:
    """Build the calling Actor from the forwarded identity headers."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "unauthorized", "code": "missing_identity", "message": "X-User-Id header is required"},
        )
    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "unauthorized", "code": "invalid_identity", "message": "X-User-Id must be a UUID"},
        )

    role = (x_user_role or ROLE_USER).strip().lower()
    if role not in KNOWN_ROLES:
        role = ROLE_USER
    return Actor(user_id=user_id, role=role)


def http_error(e: DispatchError) -> HTTPException:
    """Map a domain error onto the HTTP response the routers raise."""
    return HTTPException(status_code=e.status_code, detail=e.to_detail())


def get_identifier_minter(
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> IdentifierMinter:
    """IdentifierMinter backed by counters committed outside the request transaction."""
    return IdentifierMinter(SequenceAllocator(session_factory))
