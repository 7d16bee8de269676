"""Authentication service for user registration and login."""

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import AuthenticationError, ConflictError, ValidationError
from ..core.security import create_access_token, hash_password, verify_password
from ..models.user import User, UserRole
from ..schemas.auth import LoginRequest, RegisterRequest, UpdateProfileRequest

logger = logging.getLogger(__name__)


class AuthService:
    """Service for user accounts and bearer tokens."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_email(self, email: str) -> User | None:
        stmt = select(User).where(func.lower(User.email) == email.lower())
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def register(self, request: RegisterRequest, role: UserRole = UserRole.USER) -> User:
        """
        Register a new user.

        Raises:
            ConflictError: If the e-mail address is already registered
        """
        if await self.get_user_by_email(request.email):
            logger.warning("Registration failed - e-mail already registered")
            raise ConflictError(detail="A user with this email already exists")

        user = User(
            email=request.email.lower(),
            first_name=request.first_name,
            last_name=request.last_name,
            phone=request.phone,
            password_hash=hash_password(request.password),
            role=role
        )

        try:
            self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(detail="A user with this email already exists") from e

        logger.info("User registered", extra={"user_id": str(user.id), "role": str(role.value)})
        return user

    async def authenticate(self, request: LoginRequest) -> tuple[User, str]:
        """
        Check credentials and issue a bearer token.

        Returns:
            Tuple of (user, access token)

        Raises:
            AuthenticationError: If the e-mail is unknown or the password is wrong
        """
        user = await self.get_user_by_email(request.email)

        if user is None or not verify_password(request.password, user.password_hash):
            logger.warning("Login failed - invalid credentials")
            raise AuthenticationError(detail="Invalid email or password")

        token = create_access_token(str(user.id), user.email, str(UserRole(user.role).value))
        logger.info("User logged in", extra={"user_id": str(user.id)})
        return user, token

    async def update_profile(self, user: User, request: UpdateProfileRequest) -> User:
        """
        Apply the fields sent in ``request`` to the user's profile.

        Raises:
            ValidationError: If the current password is wrong
            ConflictError: If the new e-mail address belongs to another user
        """
        changes = request.model_dump(exclude_unset=True, exclude={"current_password", "new_password"})

        if request.new_password is not None:
            if not verify_password(request.current_password, user.password_hash):
                logger.warning("Profile update failed - wrong current password", extra={"user_id": str(user.id)})
                raise ValidationError(
                    detail="Current password is incorrect",
                    extensions={"code": "WRONG_PASSWORD"}
                )
            user.password_hash = hash_password(request.new_password)

        email = changes.pop("email", None)
        if email is not None and email.lower() != user.email:
            existing = await self.get_user_by_email(email)
            if existing is not None and existing.id != user.id:
                raise ConflictError(detail="A user with this email already exists")
            user.email = email.lower()

        for field, value in changes.items():
            if value is not None:
                setattr(user, field, value)

        try:
            await self.db.commit()
            await self.db.refresh(user)
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(detail="A user with this email already exists") from e

        logger.info(
            "Profile updated",
            extra={
                "user_id": str(user.id),
                "fields": sorted(changes) + (["email"] if email is not None else []),
                "password_changed": request.new_password is not None
            }
        )
        return user
