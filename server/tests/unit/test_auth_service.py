"""Unit tests for accounts, tokens and agency keys."""

import pytest

from flynext.core.exceptions import AuthenticationError, ConflictError, NotFoundError
from flynext.core.security import create_access_token, decode_access_token, hash_password, verify_password
from flynext.models.user import UserRole
from flynext.schemas.auth import CreateAgencyRequest, LoginRequest, RegisterRequest
from flynext.services.agency_service import AgencyService
from flynext.services.auth_service import AuthService


@pytest.fixture
def registration():
    return RegisterRequest(
        email="Grace.Hopper@Example.com",
        password="cobol-forever",
        first_name="Grace",
        last_name="Hopper",
    )


def test_password_hashing():
    """Test that hashes verify only the original password."""
    hashed = hash_password("s3cret-pass")

    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong-pass", hashed)


def test_access_token_round_trip():
    """Test that issued tokens decode to their claims."""
    token = create_access_token("user-1", "user@example.com", "USER")

    claims = decode_access_token(token)

    assert claims["sub"] == "user-1"
    assert claims["email"] == "user@example.com"
    assert claims["role"] == "USER"


def test_tampered_token_rejected():
    """Test that a token with a broken signature is refused."""
    token = create_access_token("user-1", "user@example.com", "USER")

    with pytest.raises(AuthenticationError):
        decode_access_token(token[:-2] + ("aa" if not token.endswith("aa") else "bb"))


@pytest.mark.asyncio
async def test_register_user(test_session, registration):
    """Test registering a user normalizes the e-mail."""
    service = AuthService(test_session)

    user = await service.register(registration)

    assert user.email == "grace.hopper@example.com"
    assert user.role == UserRole.USER
    assert user.password_hash != registration.password


@pytest.mark.asyncio
async def test_register_duplicate_email(test_session, registration):
    """Test that e-mail addresses are unique regardless of case."""
    service = AuthService(test_session)
    await service.register(registration)

    with pytest.raises(ConflictError):
        await service.register(registration.model_copy(update={"email": "GRACE.HOPPER@example.com"}))


@pytest.mark.asyncio
async def test_login(test_session, registration):
    """Test logging in returns a token for the user."""
    service = AuthService(test_session)
    registered = await service.register(registration)

    user, token = await service.authenticate(
        LoginRequest(email="grace.hopper@example.com", password="cobol-forever")
    )

    assert user.id == registered.id
    assert decode_access_token(token)["sub"] == str(registered.id)


@pytest.mark.asyncio
async def test_login_wrong_password(test_session, registration):
    """Test that a wrong password is rejected."""
    service = AuthService(test_session)
    await service.register(registration)

    with pytest.raises(AuthenticationError) as exc_info:
        await service.authenticate(LoginRequest(email=registration.email, password="not-my-password"))

    assert exc_info.value.problem_details["detail"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_agency_keys(test_session):
    """Test issuing and revoking an agency API key."""
    service = AgencyService(test_session)

    agency = await service.create_agency(CreateAgencyRequest(name="Northern Lights Travel"))
    assert agency.is_active
    assert len(agency.api_key) == 64

    deactivated = await service.deactivate_agency(agency.id)
    assert deactivated.is_active is False

    listed = await service.list_agencies()
    assert [a.name for a in listed] == ["Northern Lights Travel"]


@pytest.mark.asyncio
async def test_deactivate_unknown_agency(test_session):
    """Test deactivating a non-existent agency."""
    from uuid import uuid4

    with pytest.raises(NotFoundError):
        await AgencyService(test_session).deactivate_agency(uuid4())
