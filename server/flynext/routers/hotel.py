"""Hotel router for hotels, rooms, availability and the owner booking view."""

import logging
from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import CurrentUser
from ..models.hotel import HotelBookingStatus
from ..models.user import User
from ..schemas.common import Money
from ..schemas.hotel import (
    CreateHotelRequest,
    CreateRoomRequest,
    Hotel,
    HotelBooking,
    NightAvailability,
    Room,
    RoomAvailability,
    UpdateHotelRequest,
    UpdateRoomRequest,
)
from ..services.hotel_booking_service import HotelBookingService
from ..services.hotel_service import HotelService
from .hotel_booking import convert_hotel_booking_to_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/hotels", tags=["hotels"])

DB_DEPENDENCY = Depends(get_db)


def _convert_hotel_to_schema(hotel_model) -> Hotel:
    return Hotel(
        id=str(hotel_model.id),
        owner_id=str(hotel_model.owner_id),
        name=hotel_model.name,
        address=hotel_model.address,
        city=hotel_model.city.name,
        country=hotel_model.city.country,
        description=hotel_model.description,
        star_rating=hotel_model.star_rating
    )


def _convert_room_to_schema(room_model) -> Room:
    return Room(
        id=str(room_model.id),
        hotel_id=str(room_model.hotel_id),
        room_type=room_model.room_type,
        max_guests=room_model.max_guests,
        available_count=room_model.available_count,
        price=Money(amount=room_model.price_amount, currency=room_model.price_currency),
        amenities=list(room_model.amenities or [])
    )


@router.get("", response_model=list[Hotel])
async def list_hotels(
    city: str | None = Query(None, description="City name"),
    name: str | None = Query(None, description="Part of the hotel name"),
    min_star_rating: int | None = Query(None, ge=1, le=5),
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Search hotels."""
    hotels = await HotelService(db).list_hotels(city=city, name=name, min_star_rating=min_star_rating)
    return JSONResponse(status_code=200, content=[_convert_hotel_to_schema(hotel).model_dump() for hotel in hotels])


@router.post("", response_model=Hotel, status_code=201)
async def create_hotel(
    request: CreateHotelRequest,
    user: User = CurrentUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Register a hotel; the caller becomes its owner."""
    hotel = await HotelService(db).create_hotel(request, user)
    return JSONResponse(status_code=201, content=_convert_hotel_to_schema(hotel).model_dump())


@router.get("/{hotel_id}", response_model=Hotel)
async def get_hotel(hotel_id: UUID, db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    hotel = await HotelService(db).get_hotel_by_id_or_raise(hotel_id)
    return JSONResponse(status_code=200, content=_convert_hotel_to_schema(hotel).model_dump())


@router.put("/{hotel_id}", response_model=Hotel)
async def update_hotel(
    hotel_id: UUID,
    request: UpdateHotelRequest,
    user: User = CurrentUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Update hotel details (owner or admin)."""
    hotel = await HotelService(db).update_hotel(hotel_id, request, user)
    return JSONResponse(status_code=200, content=_convert_hotel_to_schema(hotel).model_dump())


@router.get("/{hotel_id}/rooms", response_model=list[Room])
async def list_rooms(hotel_id: UUID, db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    rooms = await HotelService(db).list_rooms(hotel_id)
    return JSONResponse(status_code=200, content=[_convert_room_to_schema(room).model_dump() for room in rooms])


@router.post("/{hotel_id}/rooms", response_model=Room, status_code=201)
async def create_room(
    hotel_id: UUID,
    request: CreateRoomRequest,
    user: User = CurrentUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Add a room type (owner or admin)."""
    room = await HotelService(db).create_room(hotel_id, request, user)
    return JSONResponse(status_code=201, content=_convert_room_to_schema(room).model_dump())


@router.put("/{hotel_id}/rooms/{room_id}", response_model=Room)
async def update_room(
    hotel_id: UUID,
    room_id: UUID,
    request: UpdateRoomRequest,
    user: User = CurrentUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Update a room type (owner or admin)."""
    room = await HotelService(db).update_room(hotel_id, room_id, request, user)
    return JSONResponse(status_code=200, content=_convert_room_to_schema(room).model_dump())


@router.get("/{hotel_id}/rooms/{room_id}/availability", response_model=RoomAvailability)
async def get_room_availability(
    hotel_id: UUID,
    room_id: UUID,
    check_in_date: date = Query(...),
    check_out_date: date = Query(...),
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Free units of a room for every night of a stay."""
    remaining, unavailable = await HotelService(db).room_availability(
        hotel_id, room_id, check_in_date, check_out_date
    )

    response_data = RoomAvailability(
        room_id=str(room_id),
        check_in_date=check_in_date,
        check_out_date=check_out_date,
        nights=[
            NightAvailability(night=night, available=max(free, 0))
            for night, free in sorted(remaining.items())
        ],
        bookable=not unavailable
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.get("/{hotel_id}/bookings", response_model=list[HotelBooking])
async def list_hotel_bookings(
    hotel_id: UUID,
    room_id: UUID | None = Query(None),
    status: HotelBookingStatus | None = Query(None),
    user: User = CurrentUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Bookings of a hotel (owner or admin)."""
    bookings = await HotelBookingService(db).list_for_hotel(hotel_id, user, room_id=room_id, status=status)
    return JSONResponse(
        status_code=200,
        content=[convert_hotel_booking_to_schema(booking).model_dump(mode="json") for booking in bookings]
    )
