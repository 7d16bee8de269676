"""Concurrency tests for flight seat inventory."""

import asyncio
from datetime import datetime
from uuid import UUID

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from flynext.core.database import Base
from flynext.core.dependencies import Principal
from flynext.core.exceptions import ProblemDetailsException
from flynext.core.security import generate_api_key
from flynext.models.agency import Agency
from flynext.models.booking import Booking
from flynext.models.catalog import Airline, Airport, City
from flynext.models.flight import Flight, FlightStatus
from flynext.schemas.booking import CreateBookingRequest
from flynext.services.availability import SeatsUnavailableError
from flynext.services.booking_service import BookingService, SeatsNoLongerAvailableError


@pytest_asyncio.fixture
async def file_sessions(tmp_path):
    """Session factory on a file database so every session has its own connection."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'concurrency.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()


async def _seed(sessions, seats: int):
    async with sessions() as session:
        toronto = City(name="Toronto", country="Canada")
        montreal = City(name="Montreal", country="Canada")
        session.add_all([toronto, montreal])
        await session.flush()

        yyz = Airport(code="YYZ", name="Toronto Pearson", city_id=toronto.id)
        yul = Airport(code="YUL", name="Montreal Trudeau", city_id=montreal.id)
        airline = Airline(code="AC", name="Air Canada")
        agency = Agency(name="Rush Hour Travel", api_key=generate_api_key(), is_active=True)
        session.add_all([yyz, yul, airline, agency])
        await session.flush()

        flight = Flight(
            flight_number="AC401",
            airline_id=airline.id,
            origin_id=yyz.id,
            destination_id=yul.id,
            departure_time=datetime(2030, 5, 1, 8, 0),
            arrival_time=datetime(2030, 5, 1, 9, 30),
            price_amount=25000,
            price_currency="CAD",
            available_seats=seats,
            capacity=100,
            status=FlightStatus.SCHEDULED,
        )
        session.add(flight)
        await session.commit()
        return str(flight.id), agency


async def _seats_left(sessions, flight_id: str) -> int:
    async with sessions() as session:
        stmt = select(Flight.available_seats).where(Flight.id == UUID(flight_id))
        return (await session.execute(stmt)).scalar_one()


async def _booking_count(sessions) -> int:
    async with sessions() as session:
        return len((await session.execute(select(Booking.id))).scalars().all())


def _request(index: int, flight_id: str) -> CreateBookingRequest:
    return CreateBookingRequest(
        first_name="Racer",
        last_name=f"Number{index}",
        email=f"racer{index}@example.com",
        passport_number=f"RC{index:07d}",
        flight_ids=[flight_id],
    )


async def _race(sessions, flight_id: str, principal: Principal, contenders: int):
    async def book(index: int):
        async with sessions() as session:
            return await BookingService(session).create_booking(_request(index, flight_id), principal)

    return await asyncio.gather(*(book(i) for i in range(contenders)), return_exceptions=True)


@pytest.mark.asyncio
async def test_last_seat_sold_once(file_sessions):
    """Test that concurrent requests for the last seat produce exactly one booking."""
    flight_id, agency = await _seed(file_sessions, seats=1)

    results = await _race(file_sessions, flight_id, Principal(agency=agency), contenders=8)

    booked = [r for r in results if isinstance(r, Booking)]
    rejected = [r for r in results if isinstance(r, ProblemDetailsException)]

    assert len(booked) == 1
    assert len(rejected) == 7
    assert all(isinstance(r, (SeatsUnavailableError, SeatsNoLongerAvailableError)) for r in rejected)
    assert await _seats_left(file_sessions, flight_id) == 0
    assert await _booking_count(file_sessions) == 1


@pytest.mark.asyncio
async def test_seats_sold_match_inventory(file_sessions):
    """Test that seats sold plus seats left always equals the starting inventory."""
    flight_id, agency = await _seed(file_sessions, seats=5)

    results = await _race(file_sessions, flight_id, Principal(agency=agency), contenders=12)

    booked = [r for r in results if isinstance(r, Booking)]
    unexpected = [r for r in results if not isinstance(r, (Booking, ProblemDetailsException))]

    assert unexpected == []
    assert len(booked) == 5
    assert await _seats_left(file_sessions, flight_id) == 0
    assert await _booking_count(file_sessions) == 5
    assert len({b.booking_reference for b in booked}) == 5


@pytest.mark.asyncio
async def test_cancellations_return_seats_under_contention(file_sessions):
    """Test that concurrent cancellations each restore exactly one seat."""
    flight_id, agency = await _seed(file_sessions, seats=3)
    principal = Principal(agency=agency)

    booked = [r for r in await _race(file_sessions, flight_id, principal, contenders=3) if isinstance(r, Booking)]
    assert len(booked) == 3

    async def cancel(booking_id):
        async with file_sessions() as session:
            return await BookingService(session).cancel_booking(booking_id, principal)

    await asyncio.gather(*(cancel(b.id) for b in booked))

    assert await _seats_left(file_sessions, flight_id) == 3
