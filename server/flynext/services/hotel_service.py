"""Hotel service for hotels, rooms and room-night availability."""

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..core.identifiers import parse_id
from ..models.catalog import City
from ..models.hotel import Hotel, HotelBooking, HotelBookingStatus, Room
from ..models.user import User
from ..schemas.hotel import CreateHotelRequest, CreateRoomRequest, UpdateHotelRequest, UpdateRoomRequest
from .availability import nightly_remaining, stay_nights, unavailable_nights
from .catalog_service import CatalogService

logger = logging.getLogger(__name__)


class HotelService:
    """Service for hotel and room operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.catalog_service = CatalogService(db)

    # Hotels

    async def get_hotel_by_id(self, hotel_id: UUID) -> Hotel | None:
        stmt = select(Hotel).options(selectinload(Hotel.city)).where(Hotel.id == hotel_id)
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def get_hotel_by_id_or_raise(self, hotel_id: UUID | str) -> Hotel:
        if isinstance(hotel_id, str):
            hotel_id = parse_id(hotel_id, "hotel")

        hotel = await self.get_hotel_by_id(hotel_id)
        if hotel is None:
            raise NotFoundError("hotel", str(hotel_id))
        return hotel

    async def list_hotels(
        self,
        city: str | None = None,
        name: str | None = None,
        min_star_rating: int | None = None,
    ) -> list[Hotel]:
        """Search hotels by city name, hotel name fragment and minimum star rating."""
        stmt = select(Hotel).join(City, Hotel.city_id == City.id).options(selectinload(Hotel.city))

        if city:
            stmt = stmt.where(func.lower(City.name) == city.lower())
        if name:
            stmt = stmt.where(func.lower(Hotel.name).contains(name.lower()))
        if min_star_rating is not None:
            stmt = stmt.where(Hotel.star_rating >= min_star_rating)

        stmt = stmt.order_by(Hotel.star_rating.desc(), Hotel.name)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def create_hotel(self, request: CreateHotelRequest, owner: User) -> Hotel:
        """
        Register a hotel owned by the calling user.

        Raises:
            NotFoundError: If the city does not exist
        """
        city = await self.catalog_service.get_city_by_id_or_raise(request.city_id)

        hotel = Hotel(
            owner_id=owner.id,
            city_id=city.id,
            name=request.name,
            address=request.address,
            description=request.description,
            star_rating=request.star_rating
        )
        self.db.add(hotel)
        await self.db.commit()

        logger.info(
            "Hotel created",
            extra={"hotel_id": str(hotel.id), "owner_id": str(owner.id), "city": city.name}
        )
        return await self.get_hotel_by_id_or_raise(hotel.id)

    async def update_hotel(self, hotel_id: UUID, request: UpdateHotelRequest, user: User) -> Hotel:
        """
        Update hotel details.

        Raises:
            NotFoundError: If the hotel does not exist
            AuthorizationError: If the caller neither owns the hotel nor is an admin
        """
        hotel = await self.get_hotel_by_id_or_raise(hotel_id)
        self.check_owner(hotel, user)

        for field, value in request.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(hotel, field, value)

        await self.db.commit()
        logger.info("Hotel updated", extra={"hotel_id": str(hotel.id), "user_id": str(user.id)})
        return await self.get_hotel_by_id_or_raise(hotel.id)

    @staticmethod
    def check_owner(hotel: Hotel, user: User) -> None:
        if hotel.owner_id != user.id and not user.is_admin:
            logger.warning(
                "Hotel owner check failed",
                extra={"hotel_id": str(hotel.id), "user_id": str(user.id)}
            )
            raise AuthorizationError(detail="Only the hotel owner can manage this hotel")

    # Rooms

    async def list_rooms(self, hotel_id: UUID) -> list[Room]:
        hotel = await self.get_hotel_by_id_or_raise(hotel_id)

        stmt = select(Room).where(Room.hotel_id == hotel.id).order_by(Room.price_amount, Room.room_type)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_room_or_raise(self, room_id: UUID | str, hotel_id: UUID | str | None = None) -> Room:
        """
        Get a room, optionally requiring it to belong to a given hotel.

        Raises:
            NotFoundError: If the room does not exist or is in another hotel
        """
        if isinstance(room_id, str):
            room_id = parse_id(room_id, "room")
        if isinstance(hotel_id, str):
            hotel_id = parse_id(hotel_id, "hotel")

        stmt = select(Room).options(selectinload(Room.hotel)).where(Room.id == room_id)
        room = (await self.db.execute(stmt)).scalar_one_or_none()

        if room is None or (hotel_id is not None and room.hotel_id != hotel_id):
            raise NotFoundError("room", str(room_id))
        return room

    async def create_room(self, hotel_id: UUID, request: CreateRoomRequest, user: User) -> Room:
        """Add a room type to a hotel the caller owns."""
        hotel = await self.get_hotel_by_id_or_raise(hotel_id)
        self.check_owner(hotel, user)

        room = Room(
            hotel_id=hotel.id,
            room_type=request.room_type,
            max_guests=request.max_guests,
            available_count=request.available_count,
            price_amount=request.price.amount,
            price_currency=request.price.currency,
            amenities=list(request.amenities)
        )
        self.db.add(room)
        await self.db.commit()
        await self.db.refresh(room)

        logger.info(
            "Room created",
            extra={
                "room_id": str(room.id),
                "hotel_id": str(hotel.id),
                "room_type": room.room_type,
                "available_count": room.available_count
            }
        )
        return room

    async def update_room(self, hotel_id: UUID, room_id: UUID, request: UpdateRoomRequest, user: User) -> Room:
        """
        Update a room type.

        Lowering ``available_count`` below what is already confirmed for some
        night would overbook that night, so it is rejected.

        Raises:
            NotFoundError: If the hotel or room does not exist
            AuthorizationError: If the caller does not own the hotel
            ValidationError: If the new unit count is below existing confirmed bookings
        """
        hotel = await self.get_hotel_by_id_or_raise(hotel_id)
        self.check_owner(hotel, user)
        room = await self.get_room_or_raise(room_id, hotel_id=hotel.id)

        changes = request.model_dump(exclude_unset=True, exclude_none=True)

        if "available_count" in changes and changes["available_count"] < room.available_count:
            peak = await self.peak_confirmed_occupancy(room.id)
            if changes["available_count"] < peak:
                raise ValidationError(
                    detail=f"Room has {peak} confirmed bookings on a single night",
                    extensions={"code": "UNITS_BELOW_BOOKINGS", "peak_occupancy": peak}
                )

        price = changes.pop("price", None)
        if price is not None:
            room.price_amount = price["amount"]
            room.price_currency = price["currency"]

        for field, value in changes.items():
            setattr(room, field, value)

        await self.db.commit()
        await self.db.refresh(room)

        logger.info("Room updated", extra={"room_id": str(room.id), "fields": sorted(request.model_fields_set)})
        return room

    # Availability

    async def confirmed_stays(
        self,
        room_id: UUID,
        check_in: date,
        check_out: date,
        exclude_booking_id: UUID | None = None,
    ) -> list[tuple[date, date]]:
        """Date ranges of confirmed bookings of a room that overlap [check_in, check_out)."""
        stmt = select(HotelBooking.check_in_date, HotelBooking.check_out_date).where(
            HotelBooking.room_id == room_id,
            HotelBooking.status == HotelBookingStatus.CONFIRMED,
            HotelBooking.check_in_date < check_out,
            HotelBooking.check_out_date > check_in
        )
        if exclude_booking_id is not None:
            stmt = stmt.where(HotelBooking.id != exclude_booking_id)

        result = await self.db.execute(stmt)
        return [(row.check_in_date, row.check_out_date) for row in result]

    async def nightly_availability(
        self,
        room: Room,
        check_in: date,
        check_out: date,
        exclude_booking_id: UUID | None = None,
    ) -> dict[date, int]:
        """Free units of a room for every night of [check_in, check_out)."""
        stays = await self.confirmed_stays(room.id, check_in, check_out, exclude_booking_id)
        return nightly_remaining(stay_nights(check_in, check_out), room.available_count, stays)

    async def room_availability(self, hotel_id: UUID, room_id: UUID, check_in: date, check_out: date):
        """
        Availability of a room over a date range.

        Returns:
            Tuple of (nightly free units, nights without a free unit)

        Raises:
            ValidationError: If check_out is not after check_in
            NotFoundError: If the room does not exist in the hotel
        """
        if check_out <= check_in:
            raise ValidationError(detail="Checkout date must be after checkin date")

        room = await self.get_room_or_raise(room_id, hotel_id=hotel_id)
        remaining = await self.nightly_availability(room, check_in, check_out)
        return remaining, unavailable_nights(remaining)

    async def peak_confirmed_occupancy(self, room_id: UUID) -> int:
        """Largest number of confirmed bookings of a room on any single night from today on."""
        today = date.today()
        stmt = select(HotelBooking.check_in_date, HotelBooking.check_out_date).where(
            HotelBooking.room_id == room_id,
            HotelBooking.status == HotelBookingStatus.CONFIRMED,
            HotelBooking.check_out_date > today
        )
        stays = [(row.check_in_date, row.check_out_date) for row in await self.db.execute(stmt)]
        if not stays:
            return 0

        horizon = max(stay_out for _, stay_out in stays)
        booked = nightly_remaining(stay_nights(today, horizon), 0, stays)
        return max(-free for free in booked.values())
