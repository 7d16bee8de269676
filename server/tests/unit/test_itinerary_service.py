"""Unit tests for itineraries: flights and a hotel stay booked as one trip."""

from datetime import date
from uuid import UUID

import pytest
from sqlalchemy import func, select

from flynext.core.exceptions import AuthorizationError, NotFoundError
from flynext.models.booking import Booking, BookingStatus
from flynext.models.hotel import HotelBooking, HotelBookingStatus, Room
from flynext.models.itinerary import Itinerary, ItineraryComponent, ItineraryStatus
from flynext.schemas.booking import CreateBookingRequest
from flynext.schemas.hotel import CreateHotelBookingRequest
from flynext.schemas.itinerary import CreateItineraryRequest
from flynext.services.availability import MixedCurrenciesError, RoomUnavailableError
from flynext.services.hotel_booking_service import HotelBookingService
from flynext.services.itinerary_service import (
    ItineraryAlreadyCancelledError,
    ItineraryService,
    NothingToCheckOutError,
)


def trip(passenger, flight_ids=(), room_id=None, stay=None, **hotel_kwargs) -> CreateItineraryRequest:
    flight = CreateBookingRequest(**passenger, flight_ids=list(flight_ids)) if flight_ids else None
    hotel = None
    if room_id is not None:
        hotel = CreateHotelBookingRequest(room_id=room_id, **stay, **hotel_kwargs)
    return CreateItineraryRequest(flight=flight, hotel=hotel)


async def count(session, model) -> int:
    return (await session.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.mark.asyncio
async def test_book_flight_and_hotel_together(test_session, flight_network, hotel_setup, traveller,
                                              passenger, stay, seats_left):
    """Test that both parts are stored under one itinerary reference."""
    service = ItineraryService(test_session)

    itinerary = await service.create_itinerary(
        trip(passenger, [flight_network.yyz_yul, flight_network.yul_yvr], hotel_setup.suite_room_id, stay),
        traveller
    )

    assert itinerary.status == ItineraryStatus.CONFIRMED
    assert len(itinerary.booking_reference) == 6
    assert itinerary.user_id == traveller.id
    assert itinerary.flight_booking.status == BookingStatus.CONFIRMED
    assert len(itinerary.flight_booking.legs) == 2
    assert itinerary.hotel_booking.status == HotelBookingStatus.CONFIRMED
    assert itinerary.hotel_booking.price_amount == 90000
    assert await seats_left(flight_network.yul_yvr) == 99


@pytest.mark.asyncio
async def test_hotel_only_itinerary(test_session, hotel_setup, traveller, passenger, stay):
    service = ItineraryService(test_session)

    itinerary = await service.create_itinerary(trip(passenger, room_id=hotel_setup.single_room_id, stay=stay), traveller)

    assert itinerary.flight_booking is None
    assert itinerary.booking_id is None
    assert itinerary.hotel_booking.room_id == UUID(hotel_setup.single_room_id)


def test_itinerary_needs_a_component():
    with pytest.raises(ValueError, match="At least one of flight or hotel"):
        CreateItineraryRequest()


@pytest.mark.asyncio
async def test_unavailable_room_books_nothing(test_session, flight_network, hotel_setup, traveller,
                                              other_traveller, passenger, stay, seats_left):
    """Test that a rejected hotel part also drops the flight part and its seat."""
    await HotelBookingService(test_session).create_booking(
        CreateHotelBookingRequest(room_id=hotel_setup.single_room_id, **stay),
        other_traveller
    )
    flights_before = await count(test_session, Booking)

    with pytest.raises(RoomUnavailableError):
        await ItineraryService(test_session).create_itinerary(
            trip(passenger, [flight_network.yul_yvr], hotel_setup.single_room_id, stay),
            traveller
        )

    assert await seats_left(flight_network.yul_yvr) == 100
    assert await count(test_session, Booking) == flights_before
    assert await count(test_session, HotelBooking) == 1
    assert await count(test_session, Itinerary) == 0


@pytest.mark.asyncio
async def test_flight_and_room_in_different_currencies(test_session, flight_network, hotel_setup, traveller,
                                                       passenger, stay, seats_left):
    """Test that a trip is priced in a single currency."""
    suite = await test_session.get(Room, UUID(hotel_setup.suite_room_id))
    suite.price_currency = "USD"
    await test_session.commit()

    with pytest.raises(MixedCurrenciesError) as exc_info:
        await ItineraryService(test_session).create_itinerary(
            trip(passenger, [flight_network.yul_yvr], hotel_setup.suite_room_id, stay),
            traveller
        )

    assert exc_info.value.status_code == 400
    assert exc_info.value.problem_details["currencies"] == ["CAD", "USD"]
    assert await seats_left(flight_network.yul_yvr) == 100
    assert await count(test_session, Itinerary) == 0


@pytest.mark.asyncio
async def test_checkout_pending_stay(test_session, flight_network, hotel_setup, traveller, passenger, stay):
    service = ItineraryService(test_session)

    itinerary = await service.create_itinerary(
        trip(passenger, [flight_network.yul_yvr], hotel_setup.suite_room_id, stay,
             status=HotelBookingStatus.PENDING),
        traveller
    )
    assert itinerary.status == ItineraryStatus.PENDING

    pending = await service.list_for_user(traveller, ItineraryStatus.PENDING)
    assert [i.id for i in pending] == [itinerary.id]

    checked_out = await service.checkout(itinerary.id, traveller)

    assert checked_out.status == ItineraryStatus.CONFIRMED
    assert checked_out.hotel_booking.status == HotelBookingStatus.CONFIRMED
    assert await service.list_for_user(traveller, ItineraryStatus.PENDING) == []

    with pytest.raises(NothingToCheckOutError) as exc_info:
        await service.checkout(itinerary.id, traveller)
    assert exc_info.value.problem_details["code"] == "NOT_PENDING"


@pytest.mark.asyncio
async def test_cancel_one_component_then_the_rest(test_session, flight_network, hotel_setup, traveller,
                                                  passenger, stay, seats_left):
    """Test that cancelling the hotel keeps the flight, and cancelling the trip releases the seat."""
    service = ItineraryService(test_session)
    itinerary = await service.create_itinerary(
        trip(passenger, [flight_network.yul_yvr], hotel_setup.suite_room_id, stay),
        traveller
    )
    itinerary_id = itinerary.id

    after_hotel = await service.cancel_component(itinerary_id, ItineraryComponent.HOTEL, traveller)

    assert after_hotel.hotel_booking.status == HotelBookingStatus.CANCELLED
    assert after_hotel.flight_booking.status == BookingStatus.CONFIRMED
    assert after_hotel.status == ItineraryStatus.CONFIRMED
    assert await seats_left(flight_network.yul_yvr) == 99

    cancelled = await service.cancel_itinerary(itinerary_id, traveller)

    assert cancelled.status == ItineraryStatus.CANCELLED
    assert cancelled.flight_booking.status == BookingStatus.CANCELLED
    assert await seats_left(flight_network.yul_yvr) == 100

    with pytest.raises(ItineraryAlreadyCancelledError):
        await service.cancel_itinerary(itinerary_id, traveller)


@pytest.mark.asyncio
async def test_cancel_missing_component(test_session, hotel_setup, traveller, passenger, stay):
    service = ItineraryService(test_session)
    itinerary = await service.create_itinerary(trip(passenger, room_id=hotel_setup.single_room_id, stay=stay), traveller)

    with pytest.raises(NotFoundError):
        await service.cancel_component(itinerary.id, ItineraryComponent.FLIGHT, traveller)


@pytest.mark.asyncio
async def test_itinerary_access(test_session, hotel_setup, traveller, other_traveller, admin_user, passenger):
    """Test that only the owner and admins can see an itinerary."""
    service = ItineraryService(test_session)
    itinerary = await service.create_itinerary(
        trip(passenger, room_id=hotel_setup.single_room_id,
             stay={"check_in_date": date(2030, 7, 1), "check_out_date": date(2030, 7, 2)}),
        traveller
    )

    with pytest.raises(AuthorizationError):
        await service.get_itinerary_for_user(itinerary.id, other_traveller)
    with pytest.raises(AuthorizationError):
        await service.cancel_itinerary(itinerary.id, other_traveller)

    seen_by_admin = await service.get_itinerary_for_user(itinerary.id, admin_user)
    assert seen_by_admin.id == itinerary.id
    assert await service.list_for_user(other_traveller) == []
