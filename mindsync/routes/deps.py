"""
MindSync Backend — Shared Route Dependencies
==============================================

What:  Resolves the caller's identity for every /api route except user
       registration.
How:   Reads the X-User-ID header, parses it as a UUID and loads the user.
       Token issuance and verification live outside this service; the
       gateway in front of it sets the header.

Failure modes (all 401 authentication_error):
    NO_IDENTITY       header missing or blank
    MALFORMED_ID      not a UUID
    UNKNOWN_USER      no such user
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from mindsync.database import get_db_session
from mindsync.exceptions import AuthenticationError, NotFoundError
from mindsync.models.user import User
from mindsync.services.user_service import user_service

USER_ID_HEADER = "X-User-ID"


def parse_user_id(raw: Optional[str]) -> UUID:
    """Turn a raw identity string into a UUID or raise AuthenticationError."""
    if raw is None or not raw.strip():
        raise AuthenticationError(
            message=f"Missing {USER_ID_HEADER} header",
            code="NO_IDENTITY",
        )
    try:
        return UUID(raw.strip())
    except ValueError:
        raise AuthenticationError(
            message=f"{USER_ID_HEADER} must be a valid UUID",
            code="MALFORMED_ID",
        )


async def resolve_user(db: AsyncSession, raw: Optional[str]) -> User:
    """Load the user behind a raw identity string."""
    user_id = parse_user_id(raw)
    try:
        return await user_service.get_user(db, user_id)
    except NotFoundError:
        raise AuthenticationError(message="Unknown user", code="UNKNOWN_USER")


async def get_current_user(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """FastAPI dependency: the authenticated caller."""
    return await resolve_user(db, x_user_id)
