"""Test configuration and fixtures."""

import os

# Settings are read at import time; point them at SQLite before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("AFS_BASE_URL", "http://afs.test")
os.environ.setdefault("AFS_API_KEY", "test-afs-key")

from dataclasses import dataclass, field  # noqa: E402
from datetime import date, datetime  # noqa: E402
from uuid import UUID  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import select  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from flynext.core.database import Base, get_db  # noqa: E402
from flynext.core.security import create_access_token, generate_api_key, hash_password  # noqa: E402
from flynext.models import *  # noqa: E402,F403 - Import all models
from flynext.models import Agency, Airline, Airport, City, Flight, FlightStatus, Hotel, Room, User, UserRole  # noqa: E402
from flynext.services.afs_client import AFSClient, get_afs_client  # noqa: E402

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

PASSWORD = "correct-horse-battery"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


# AFS stub

@dataclass
class AFSStub:
    """Records AFS calls and answers them from canned data."""

    cities: list = field(default_factory=lambda: [
        {"city": "Toronto", "country": "Canada"},
        {"city": "Tokyo", "country": "Japan"},
        {"city": "Montreal", "country": "Canada"},
        {"city": "Vancouver", "country": "Canada"},
    ])
    flights: dict = field(default_factory=dict)
    calls: list = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if request.url.path == "/api/cities":
            return httpx.Response(200, json=self.cities)
        if request.url.path == "/api/flights":
            key = (request.url.params["origin"], request.url.params["destination"])
            return httpx.Response(200, json={"results": [{"flights": self.flights.get(key, [])}]})
        return httpx.Response(404, json={"error": "not found"})

    def client(self) -> AFSClient:
        return AFSClient(
            base_url="http://afs.test",
            api_key="test-afs-key",
            max_attempts=3,
            city_cache_ttl=3600,
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def afs_stub():
    return AFSStub()


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session, afs_stub):
    """Create a test FastAPI application."""
    from fastapi import FastAPI
    from fastapi.middleware.cors import CORSMiddleware

    from flynext.main import include_routers, register_exception_handlers

    # Simplified test app without lifespan or telemetry
    app = FastAPI(title="FlyNext API (Test)", version="1.0.0-test")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    include_routers(app)

    async def override_get_db():
        yield test_session

    afs_client = afs_stub.client()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_afs_client] = lambda: afs_client

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# Principals

async def _create_user(session: AsyncSession, email: str, role: UserRole = UserRole.USER) -> User:
    user = User(
        email=email,
        first_name="Test",
        last_name=email.split("@")[0].title(),
        password_hash=hash_password(PASSWORD),
        role=role,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


def bearer(user: User) -> dict[str, str]:
    token = create_access_token(str(user.id), user.email, str(UserRole(user.role).value))
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def admin_user(test_session):
    return await _create_user(test_session, "admin@example.com", UserRole.ADMIN)


@pytest_asyncio.fixture
async def traveller(test_session):
    return await _create_user(test_session, "traveller@example.com")


@pytest_asyncio.fixture
async def other_traveller(test_session):
    return await _create_user(test_session, "other@example.com")


@pytest_asyncio.fixture
async def hotel_owner(test_session):
    return await _create_user(test_session, "owner@example.com")


@pytest_asyncio.fixture
async def agency(test_session):
    agency = Agency(name="Maple Travel", api_key=generate_api_key(), is_active=True)
    test_session.add(agency)
    await test_session.commit()
    await test_session.refresh(agency)
    return agency


@pytest_asyncio.fixture
async def other_agency(test_session):
    agency = Agency(name="Prairie Trips", api_key=generate_api_key(), is_active=True)
    test_session.add(agency)
    await test_session.commit()
    await test_session.refresh(agency)
    return agency


@pytest.fixture
def admin_headers(admin_user):
    return bearer(admin_user)


@pytest.fixture
def traveller_headers(traveller):
    return bearer(traveller)


@pytest.fixture
def other_headers(other_traveller):
    return bearer(other_traveller)


@pytest.fixture
def owner_headers(hotel_owner):
    return bearer(hotel_owner)


@pytest.fixture
def agency_headers(agency):
    return {"x-api-key": agency.api_key}


# Catalogue

@dataclass
class FlightNetwork:
    """IDs of the seeded flights; all depart on 2030-05-01."""

    yyz_yul: str        # 08:00-09:30
    yul_yvr: str        # 11:00-16:00, connects after yyz_yul
    yul_yvr_early: str  # 09:00-14:00, departs before yyz_yul lands
    yvr_yyz_full: str   # sold out
    yyz_yvr_cancelled: str


async def _add_flight(session, number, airline, origin, destination, departs, arrives, seats=100, capacity=100,
                      status=FlightStatus.SCHEDULED, price=25000) -> Flight:
    flight = Flight(
        flight_number=number,
        airline_id=airline.id,
        origin_id=origin.id,
        destination_id=destination.id,
        departure_time=departs,
        arrival_time=arrives,
        price_amount=price,
        price_currency="CAD",
        capacity=capacity,
        available_seats=seats,
        status=status,
    )
    session.add(flight)
    return flight


@pytest_asyncio.fixture
async def cities(test_session):
    toronto = City(name="Toronto", country="Canada")
    montreal = City(name="Montreal", country="Canada")
    vancouver = City(name="Vancouver", country="Canada")
    test_session.add_all([toronto, montreal, vancouver])
    await test_session.commit()
    return {"toronto": toronto, "montreal": montreal, "vancouver": vancouver}


@pytest_asyncio.fixture
async def flight_network(test_session, cities) -> FlightNetwork:
    yyz = Airport(code="YYZ", name="Toronto Pearson", city_id=cities["toronto"].id)
    yul = Airport(code="YUL", name="Montreal Trudeau", city_id=cities["montreal"].id)
    yvr = Airport(code="YVR", name="Vancouver International", city_id=cities["vancouver"].id)
    airline = Airline(code="AC", name="Air Canada", base_city_id=cities["montreal"].id)
    test_session.add_all([yyz, yul, yvr, airline])
    await test_session.flush()

    day = datetime(2030, 5, 1)
    flights = [
        await _add_flight(test_session, "AC401", airline, yyz, yul, day.replace(hour=8), day.replace(hour=9, minute=30)),
        await _add_flight(test_session, "AC301", airline, yul, yvr, day.replace(hour=11), day.replace(hour=16)),
        await _add_flight(test_session, "AC303", airline, yul, yvr, day.replace(hour=9), day.replace(hour=14)),
        await _add_flight(test_session, "AC118", airline, yvr, yyz, day.replace(hour=17), day.replace(hour=23),
                          seats=0, capacity=150),
        await _add_flight(test_session, "AC101", airline, yyz, yvr, day.replace(hour=7), day.replace(hour=12),
                          status=FlightStatus.CANCELLED),
    ]
    await test_session.commit()

    return FlightNetwork(*(str(flight.id) for flight in flights))


@pytest.fixture
def seats_left(test_session):
    """Read available seats straight from the table, bypassing the identity map."""

    async def _seats_left(flight_id) -> int:
        stmt = select(Flight.available_seats).where(Flight.id == UUID(str(flight_id)))
        return (await test_session.execute(stmt)).scalar_one()

    return _seats_left


@dataclass
class HotelSetup:
    hotel_id: str
    single_room_id: str   # one unit
    suite_room_id: str    # two units


@pytest_asyncio.fixture
async def hotel_setup(test_session, cities, hotel_owner) -> HotelSetup:
    hotel = Hotel(
        owner_id=hotel_owner.id,
        city_id=cities["toronto"].id,
        name="Harbourfront Inn",
        address="1 Queens Quay",
        star_rating=4,
    )
    test_session.add(hotel)
    await test_session.flush()

    single = Room(hotel_id=hotel.id, room_type="Single", max_guests=1, available_count=1,
                  price_amount=12000, price_currency="CAD", amenities=["wifi"])
    suite = Room(hotel_id=hotel.id, room_type="Suite", max_guests=4, available_count=2,
                 price_amount=30000, price_currency="CAD", amenities=["wifi", "kitchen"])
    test_session.add_all([single, suite])
    await test_session.commit()

    return HotelSetup(str(hotel.id), str(single.id), str(suite.id))


@pytest.fixture
def passenger():
    """Passenger details for a flight booking."""
    return {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "ada@example.com",
        "passport_number": "AB1234567",
    }


@pytest.fixture
def stay():
    return {"check_in_date": date(2030, 6, 10), "check_out_date": date(2030, 6, 13)}
