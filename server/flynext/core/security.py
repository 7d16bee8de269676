"""Password hashing, bearer token and API key helpers."""

import secrets
from datetime import datetime, timedelta
from typing import Any

import jwt
from jwt import PyJWTError
from passlib.context import CryptContext

from .config import settings
from .exceptions import AuthenticationError

JWT_ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def generate_api_key() -> str:
    """Generate a 64 character hex API key for an agency."""
    return secrets.token_hex(32)


def token_lifetime() -> timedelta:
    return timedelta(days=settings.jwt_expires_days)


def create_access_token(user_id: str, email: str, role: str) -> str:
    """
    Issue a signed bearer token for a user.

    Args:
        user_id: User primary key
        email: User e-mail
        role: User role

    Returns:
        str: Encoded JWT
    """
    now = datetime.utcnow()
    payload = {
        "sub": user_id,
        "email": email,
        "role": role,
        "iat": now,
        "exp": now + token_lifetime(),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Validate a bearer token and return its claims.

    Raises:
        AuthenticationError: If the token is malformed, expired or carries no subject
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALGORITHM])
    except PyJWTError as e:
        raise AuthenticationError(detail=f"Token validation failed: {e}") from e

    if not payload.get("sub"):
        raise AuthenticationError(detail="Invalid token payload")

    return payload
