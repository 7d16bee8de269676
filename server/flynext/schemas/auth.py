"""Authentication and user profile schemas."""

from pydantic import BaseModel, EmailStr, Field, model_validator

from ..models.user import UserRole


class RegisterRequest(BaseModel):
    """Request schema for registering a user."""

    email: EmailStr = Field(..., description="Login e-mail address")
    password: str = Field(..., min_length=8, max_length=128, description="Plain-text password")
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str | None = Field(None, max_length=32)


class LoginRequest(BaseModel):
    """Request schema for logging in."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class UserProfile(BaseModel):
    """User response schema."""

    id: str
    email: str
    first_name: str
    last_name: str
    phone: str | None = None
    role: UserRole


class UpdateProfileRequest(BaseModel):
    """
    Request schema for editing the caller's profile.

    Only fields that are sent are changed. A new password needs the current one.
    """

    email: EmailStr | None = None
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    phone: str | None = Field(None, max_length=32, pattern=r"^\+?[\d\s-]{10,}$")
    current_password: str | None = Field(None, min_length=1, max_length=128)
    new_password: str | None = Field(None, min_length=8, max_length=128)

    @model_validator(mode="after")
    def check_password_change(self):
        if (self.current_password is None) != (self.new_password is None):
            raise ValueError("current_password and new_password must be sent together")
        return self


class TokenResponse(BaseModel):
    """Issued bearer token."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user: UserProfile


class CreateAgencyRequest(BaseModel):
    """Request schema for registering a travel agency."""

    name: str = Field(..., min_length=1, max_length=255)


class AgencyCredentials(BaseModel):
    """Agency response including its API key; only returned on creation."""

    id: str
    name: str
    api_key: str
    is_active: bool
