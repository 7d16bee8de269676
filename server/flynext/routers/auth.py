"""Authentication router for registration, login and profile."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import CurrentUser
from ..core.security import token_lifetime
from ..models.user import User
from ..schemas.auth import LoginRequest, RegisterRequest, TokenResponse, UpdateProfileRequest, UserProfile
from ..services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

DB_DEPENDENCY = Depends(get_db)


def convert_user_to_profile(user_model: User) -> UserProfile:
    return UserProfile(
        id=str(user_model.id),
        email=user_model.email,
        first_name=user_model.first_name,
        last_name=user_model.last_name,
        phone=user_model.phone,
        role=user_model.role
    )


@router.post("/register", response_model=UserProfile, status_code=201)
async def register(request: RegisterRequest, db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """Create a user account."""
    user = await AuthService(db).register(request)
    return JSONResponse(status_code=201, content=convert_user_to_profile(user).model_dump(mode="json"))


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest, db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """Exchange e-mail and password for a bearer token."""
    user, token = await AuthService(db).authenticate(request)

    response_data = TokenResponse(
        access_token=token,
        expires_in=int(token_lifetime().total_seconds()),
        user=convert_user_to_profile(user)
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.get("/profile", response_model=UserProfile)
async def profile(user: User = CurrentUser) -> JSONResponse:
    """Return the authenticated user's profile."""
    return JSONResponse(status_code=200, content=convert_user_to_profile(user).model_dump(mode="json"))


@router.put("/profile", response_model=UserProfile)
async def update_profile(
    request: UpdateProfileRequest,
    user: User = CurrentUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Edit the authenticated user's name, phone, e-mail or password."""
    user = await AuthService(db).update_profile(user, request)
    return JSONResponse(status_code=200, content=convert_user_to_profile(user).model_dump(mode="json"))
