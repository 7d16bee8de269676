"""Unit tests for the catalogue and flight services."""

from datetime import date, datetime, timedelta, timezone

import pytest

from flynext.core.dependencies import Principal
from flynext.core.exceptions import ConflictError, NotFoundError, ValidationError
from flynext.models.flight import FlightStatus
from flynext.models.notification import NotificationType
from flynext.schemas.booking import CreateBookingRequest
from flynext.schemas.catalog import (
    CreateAirlineRequest,
    CreateAirportRequest,
    CreateCityRequest,
    CreateFlightRequest,
    SearchFlightsRequest,
)
from flynext.schemas.common import Money
from flynext.services.booking_service import BookingService
from flynext.services.catalog_service import CatalogService
from flynext.services.flight_service import FlightService
from flynext.services.notification_service import NotificationService


@pytest.mark.asyncio
async def test_create_city(test_session):
    """Test creating a city."""
    service = CatalogService(test_session)

    city = await service.create_city(CreateCityRequest(name="Halifax", country="Canada"))

    assert city.id is not None
    assert city.name == "Halifax"


@pytest.mark.asyncio
async def test_create_city_duplicate(test_session):
    """Test creating the same city twice raises error."""
    service = CatalogService(test_session)

    await service.create_city(CreateCityRequest(name="Halifax", country="Canada"))

    with pytest.raises(ConflictError):
        await service.create_city(CreateCityRequest(name="Halifax", country="Canada"))


@pytest.mark.asyncio
async def test_list_cities_by_prefix(test_session, cities):
    """Test the city name prefix filter."""
    service = CatalogService(test_session)

    names = [city.name for city in await service.list_cities("mon")]

    assert names == ["Montreal"]


@pytest.mark.asyncio
async def test_create_airport_and_airline(test_session, cities):
    """Test registering an airport and an airline; codes are upper-cased."""
    service = CatalogService(test_session)

    airport = await service.create_airport(
        CreateAirportRequest(code="ytz", name="Billy Bishop", city_id=str(cities["toronto"].id))
    )
    airline = await service.create_airline(CreateAirlineRequest(code="pd", name="Porter Airlines"))

    assert airport.code == "YTZ"
    assert airline.code == "PD"
    assert (await service.get_airport_by_code("YTZ")).id == airport.id


@pytest.mark.asyncio
async def test_create_airport_unknown_city(test_session):
    """Test that an airport must be in a known city."""
    service = CatalogService(test_session)

    with pytest.raises(NotFoundError):
        await service.create_airport(CreateAirportRequest(code="YTZ", name="Billy Bishop", city_id="unknown"))


@pytest.mark.asyncio
async def test_create_flight(test_session, flight_network):
    """Test scheduling a flight opens every seat."""
    service = FlightService(test_session)

    flight = await service.create_flight(
        CreateFlightRequest(
            flight_number="AC999",
            airline_code="AC",
            origin_code="yyz",
            destination_code="yvr",
            departure_time=datetime(2030, 5, 2, 10, 0, tzinfo=timezone(timedelta(hours=-4))),
            arrival_time=datetime(2030, 5, 2, 13, 0, tzinfo=timezone(timedelta(hours=-7))),
            price=Money(amount=40000, currency="CAD"),
            capacity=180
        )
    )

    assert flight.available_seats == 180
    assert flight.status == FlightStatus.SCHEDULED
    assert flight.origin.code == "YYZ"
    # Stored as naive UTC
    assert flight.departure_time == datetime(2030, 5, 2, 14, 0)
    assert flight.duration_minutes == 360


@pytest.mark.asyncio
async def test_create_flight_unknown_airport(test_session, flight_network):
    """Test that both airports must exist."""
    service = FlightService(test_session)

    with pytest.raises(NotFoundError):
        await service.create_flight(
            CreateFlightRequest(
                flight_number="AC998",
                airline_code="AC",
                origin_code="YYZ",
                destination_code="LHR",
                departure_time=datetime(2030, 5, 2, 10, 0),
                arrival_time=datetime(2030, 5, 2, 20, 0),
                price=Money(amount=90000, currency="CAD"),
                capacity=300
            )
        )


def test_flight_schedule_must_move_forward():
    """Test that arrival before departure is a validation error."""
    with pytest.raises(ValueError):
        CreateFlightRequest(
            flight_number="AC997",
            airline_code="AC",
            origin_code="YYZ",
            destination_code="YUL",
            departure_time=datetime(2030, 5, 2, 10, 0),
            arrival_time=datetime(2030, 5, 2, 9, 0),
            price=Money(amount=10000, currency="CAD"),
            capacity=100
        )


@pytest.mark.asyncio
async def test_search_flights_by_route_and_day(test_session, flight_network):
    """Test searching flights between two airports on a day."""
    service = FlightService(test_session)

    flights = await service.search_flights(
        SearchFlightsRequest(origin="YUL", destination="YVR", departure_date=date(2030, 5, 1))
    )

    assert [str(f.id) for f in flights] == [flight_network.yul_yvr_early, flight_network.yul_yvr]

    next_day = await service.search_flights(
        SearchFlightsRequest(origin="YUL", destination="YVR", departure_date=date(2030, 5, 2))
    )
    assert next_day == []


@pytest.mark.asyncio
async def test_search_hides_unbookable_flights(test_session, flight_network):
    """Test that sold-out and cancelled flights are only listed on request."""
    service = FlightService(test_session)

    bookable = await service.search_flights(SearchFlightsRequest(departure_date=date(2030, 5, 1)))
    everything = await service.search_flights(
        SearchFlightsRequest(departure_date=date(2030, 5, 1), available_only=False)
    )

    bookable_ids = {str(f.id) for f in bookable}
    assert flight_network.yvr_yyz_full not in bookable_ids
    assert flight_network.yyz_yvr_cancelled not in bookable_ids
    assert len(everything) == 5


@pytest.mark.asyncio
async def test_status_change_notifies_booked_users(test_session, traveller, flight_network, passenger):
    """Test that users with a seat are told about a status change."""
    await BookingService(test_session).create_booking(
        CreateBookingRequest(**passenger, flight_ids=[flight_network.yyz_yul]),
        Principal(user=traveller)
    )
    service = FlightService(test_session)

    flight = await service.update_status(flight_network.yyz_yul, FlightStatus.DELAYED)
    assert flight.status == FlightStatus.DELAYED

    notifications = await NotificationService(test_session).list_for_user(traveller, unread_only=True)
    status_notes = [n for n in notifications if n.type == NotificationType.FLIGHT_STATUS_CHANGE]
    assert len(status_notes) == 1
    assert "AC401" in status_notes[0].message

    with pytest.raises(ValidationError):
        await service.update_status(flight_network.yyz_yul, FlightStatus.DELAYED)


@pytest.mark.asyncio
async def test_get_flight_not_found(test_session):
    """Test getting a non-existent flight."""
    service = FlightService(test_session)

    with pytest.raises(NotFoundError):
        await service.get_flight_by_id_or_raise("00000000-0000-0000-0000-000000000000")
