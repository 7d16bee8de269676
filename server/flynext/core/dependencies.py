"""FastAPI dependencies for authentication and authorization."""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.agency import Agency
from ..models.user import User
from .database import get_db
from .exceptions import AuthenticationError, AuthorizationError
from .security import decode_access_token

logger = logging.getLogger(__name__)

DB_DEPENDENCY = Depends(get_db)
AUTHORIZATION_HEADER = Header(None, alias="Authorization")
API_KEY_HEADER = Header(None, alias="x-api-key")


@dataclass
class Principal:
    """The authenticated caller: either an agency (API key) or a user (bearer token)."""

    agency: Optional[Agency] = None
    user: Optional[User] = None

    @property
    def kind(self) -> str:
        return "agency" if self.agency is not None else "user"

    @property
    def is_admin(self) -> bool:
        return self.user is not None and self.user.is_admin


def _parse_bearer(authorization: str) -> str:
    try:
        scheme, token = authorization.split()
    except ValueError:
        raise AuthenticationError(detail="Invalid authorization header format") from None

    if scheme.lower() != "bearer":
        raise AuthenticationError(detail="Invalid authentication scheme")

    return token


async def _user_from_token(db: AsyncSession, authorization: str) -> User:
    payload = decode_access_token(_parse_bearer(authorization))

    try:
        user_id = UUID(payload["sub"])
    except ValueError:
        raise AuthenticationError(detail="Invalid token payload") from None

    user = await db.get(User, user_id)
    if user is None:
        logger.warning("Bearer token for unknown user", extra={"user_id": str(user_id)})
        raise AuthenticationError(detail="Invalid token")

    return user


async def _agency_from_api_key(db: AsyncSession, api_key: str) -> Agency:
    stmt = select(Agency).where(Agency.api_key == api_key, Agency.is_active.is_(True))
    agency = (await db.execute(stmt)).scalar_one_or_none()

    if agency is None:
        logger.warning("Rejected request with invalid API key")
        raise AuthorizationError(detail="Invalid API key")

    return agency


async def get_current_user(
    authorization: Optional[str] = AUTHORIZATION_HEADER,
    db: AsyncSession = DB_DEPENDENCY,
) -> User:
    """
    Authentication dependency that validates Bearer tokens.

    Returns:
        User: The user the token was issued to

    Raises:
        AuthenticationError: If the header is missing or the token is invalid
    """
    if not authorization:
        raise AuthenticationError(detail="Authorization header missing")

    return await _user_from_token(db, authorization)


async def get_current_agency(
    x_api_key: Optional[str] = API_KEY_HEADER,
    db: AsyncSession = DB_DEPENDENCY,
) -> Agency:
    """
    Authentication dependency for agencies using the ``x-api-key`` header.

    Raises:
        AuthenticationError: If no API key is present (401)
        AuthorizationError: If the key is unknown or the agency inactive (403)
    """
    if not x_api_key:
        raise AuthenticationError(detail="No API key found in request", scheme="ApiKey")

    return await _agency_from_api_key(db, x_api_key)


async def get_principal(
    authorization: Optional[str] = AUTHORIZATION_HEADER,
    x_api_key: Optional[str] = API_KEY_HEADER,
    db: AsyncSession = DB_DEPENDENCY,
) -> Principal:
    """Accept either an agency API key or a user bearer token; the API key wins when both are sent."""
    if x_api_key:
        return Principal(agency=await _agency_from_api_key(db, x_api_key))

    if authorization:
        return Principal(user=await _user_from_token(db, authorization))

    raise AuthenticationError(detail="No API key or bearer token found in request")


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Authorization dependency that only lets administrators through."""
    if not user.is_admin:
        raise AuthorizationError(required_permissions=["ADMIN"])
    return user


CurrentUser = Depends(get_current_user)
CurrentAgency = Depends(get_current_agency)
CurrentPrincipal = Depends(get_principal)
AdminUser = Depends(require_admin)
