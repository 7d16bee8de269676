"""Hotel booking service: per-night availability, cart confirmation and cancellation."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.database import acquire_row_lock
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..core.identifiers import (
    BookingReferenceConflictError,
    allocate_booking_reference,
    flush_booking,
    parse_id,
)
from ..core.observability import metrics_collector
from ..models.hotel import Hotel, HotelBooking, HotelBookingStatus, Room
from ..models.notification import NotificationType
from ..models.user import User
from ..schemas.hotel import CreateHotelBookingRequest
from .availability import RoomUnavailableError, unavailable_nights
from .hotel_service import HotelService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

HOTEL_BOOKING_LOAD_OPTIONS = (
    selectinload(HotelBooking.hotel),
    selectinload(HotelBooking.room),
)


class HotelBookingAlreadyCancelledError(ValidationError):
    """Exception when cancelling a hotel booking twice."""

    def __init__(self, booking_id: str):
        super().__init__(
            detail="Booking is already cancelled",
            extensions={"code": "ALREADY_CANCELLED", "booking_id": booking_id}
        )


class HotelBookingService:
    """Service for hotel booking operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.hotel_service = HotelService(db)
        self.notification_service = NotificationService(db)

    async def get_booking_by_id(self, booking_id: UUID) -> HotelBooking | None:
        stmt = select(HotelBooking).options(*HOTEL_BOOKING_LOAD_OPTIONS).where(HotelBooking.id == booking_id)
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def get_booking_by_id_or_raise(self, booking_id: UUID | str) -> HotelBooking:
        if isinstance(booking_id, str):
            booking_id = parse_id(booking_id, "hotel booking")

        booking = await self.get_booking_by_id(booking_id)
        if booking is None:
            raise NotFoundError("hotel booking", str(booking_id))
        return booking

    async def list_for_user(self, user: User, status: HotelBookingStatus | None = None) -> list[HotelBooking]:
        """List the user's hotel bookings, newest first."""
        stmt = select(HotelBooking).options(*HOTEL_BOOKING_LOAD_OPTIONS).where(HotelBooking.user_id == user.id)
        if status is not None:
            stmt = stmt.where(HotelBooking.status == status)
        stmt = stmt.order_by(HotelBooking.created_at.desc())

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_for_hotel(
        self,
        hotel_id: UUID,
        user: User,
        room_id: UUID | None = None,
        status: HotelBookingStatus | None = None,
    ) -> list[HotelBooking]:
        """
        Hotel owner view of a hotel's bookings, ordered by check-in date.

        Raises:
            NotFoundError: If the hotel does not exist
            AuthorizationError: If the caller neither owns the hotel nor is an admin
        """
        hotel = await self.hotel_service.get_hotel_by_id_or_raise(hotel_id)
        self.hotel_service.check_owner(hotel, user)

        stmt = select(HotelBooking).options(*HOTEL_BOOKING_LOAD_OPTIONS).where(HotelBooking.hotel_id == hotel.id)
        if room_id is not None:
            stmt = stmt.where(HotelBooking.room_id == room_id)
        if status is not None:
            stmt = stmt.where(HotelBooking.status == status)
        stmt = stmt.order_by(HotelBooking.check_in_date, HotelBooking.created_at)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def create_booking(self, request: CreateHotelBookingRequest, user: User) -> HotelBooking:
        """
        Book one unit of a room for [check_in_date, check_out_date).

        Availability is checked night by night against confirmed bookings
        while holding a lock on the room, and the booking is inserted in the
        same transaction.

        Raises:
            NotFoundError: If the room does not exist or is not in the given hotel
            ValidationError: If there are more guests than the room allows
            RoomUnavailableError: If any night has no free unit (409)
            BookingReferenceConflictError: If no unused reference could be stored (409)
        """
        booking = await self.stage_booking(request, user)
        await self.db.commit()
        self.record_created(booking)
        return await self._reload(booking.id)

    async def stage_booking(self, request: CreateHotelBookingRequest, user: User) -> HotelBooking:
        """Check the stay and add the booking to the session without committing."""
        hotel_id = parse_id(request.hotel_id, "hotel") if request.hotel_id else None
        room = await self.hotel_service.get_room_or_raise(request.room_id, hotel_id=hotel_id)

        if request.guest_count > room.max_guests:
            metrics_collector.record_rejection("hotel", "too_many_guests")
            raise ValidationError(
                detail=f"Room allows at most {room.max_guests} guests",
                extensions={"code": "TOO_MANY_GUESTS", "max_guests": room.max_guests}
            )

        status = HotelBookingStatus(request.status)

        if status == HotelBookingStatus.CONFIRMED:
            await self._lock_and_check(room, request.check_in_date, request.check_out_date)

        try:
            reference = await allocate_booking_reference(self.db, HotelBooking.booking_reference)
        except BookingReferenceConflictError:
            await self.db.rollback()
            raise

        nights = (request.check_out_date - request.check_in_date).days
        booking = HotelBooking(
            booking_reference=reference,
            user_id=user.id,
            hotel_id=room.hotel_id,
            room_id=room.id,
            check_in_date=request.check_in_date,
            check_out_date=request.check_out_date,
            guest_count=request.guest_count,
            price_amount=room.price_amount * nights,
            price_currency=room.price_currency,
            guest_details=request.guest_details,
            status=status
        )
        self.db.add(booking)
        await flush_booking(self.db, "hotel")

        if status == HotelBookingStatus.CONFIRMED:
            self._notify_confirmed(booking, room, user.id)
        else:
            self.notification_service.add(
                user.id,
                f"{room.room_type} at {room.hotel.name} was added to your cart",
                NotificationType.BOOKING_CART_ADDITION
            )

        return booking

    def record_created(self, booking: HotelBooking) -> None:
        """Metrics and log line for a committed booking."""
        status = HotelBookingStatus(booking.status)
        metrics_collector.record_hotel_booking(status.value, booking.nights)
        logger.info(
            "Hotel booking created",
            extra={
                "hotel_booking_id": str(booking.id),
                "booking_reference": booking.booking_reference,
                "room_id": str(booking.room_id),
                "check_in_date": booking.check_in_date.isoformat(),
                "check_out_date": booking.check_out_date.isoformat(),
                "nights": booking.nights,
                "status": status.value
            }
        )

    async def confirm_booking(self, booking_id: UUID, user: User) -> HotelBooking:
        """
        Check out a pending (cart) booking.

        Raises:
            NotFoundError: If the booking does not exist
            AuthorizationError: If the booking belongs to another user
            ValidationError: If the booking is not pending
            RoomUnavailableError: If the stay is no longer available (409)
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)

        if booking.user_id != user.id and not user.is_admin:
            raise AuthorizationError(detail="You do not have access to this booking")

        if booking.status != HotelBookingStatus.PENDING:
            raise ValidationError(
                detail=f"Only pending bookings can be confirmed; booking is {HotelBookingStatus(booking.status).value}",
                extensions={"code": "NOT_PENDING"}
            )

        room = await self.hotel_service.get_room_or_raise(booking.room_id)
        await self._lock_and_check(room, booking.check_in_date, booking.check_out_date, exclude_booking_id=booking.id)

        booking.status = HotelBookingStatus.CONFIRMED
        self._notify_confirmed(booking, room, booking.user_id)
        await self.db.commit()

        metrics_collector.record_hotel_booking(HotelBookingStatus.CONFIRMED.value, booking.nights)
        logger.info(
            "Hotel booking confirmed",
            extra={"hotel_booking_id": str(booking.id), "booking_reference": booking.booking_reference}
        )

        return await self._reload(booking.id)

    async def cancel_booking(self, booking_id: UUID, user: User) -> HotelBooking:
        """
        Cancel a hotel booking.

        Availability is derived from confirmed bookings, so the room nights
        become bookable again as soon as the status changes.

        Raises:
            NotFoundError: If the booking does not exist
            AuthorizationError: If the caller is not the guest, the hotel owner or an admin
            HotelBookingAlreadyCancelledError: If the booking is already cancelled
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)

        if booking.user_id != user.id and booking.hotel.owner_id != user.id and not user.is_admin:
            logger.warning(
                "Hotel booking cancellation denied",
                extra={"hotel_booking_id": str(booking.id), "user_id": str(user.id)}
            )
            raise AuthorizationError(detail="You do not have access to this booking")

        if booking.status == HotelBookingStatus.CANCELLED:
            raise HotelBookingAlreadyCancelledError(str(booking.id))

        booking.status = HotelBookingStatus.CANCELLED

        self.notification_service.add(
            booking.user_id,
            f"Your booking {booking.booking_reference} at {booking.hotel.name} has been cancelled",
            NotificationType.BOOKING_CANCELLATION
        )
        if booking.hotel.owner_id != booking.user_id:
            self.notification_service.add(
                booking.hotel.owner_id,
                f"Booking {booking.booking_reference} for {booking.room.room_type} has been cancelled",
                NotificationType.BOOKING_CANCELLATION
            )

        await self.db.commit()

        metrics_collector.record_cancellation("hotel")
        logger.info(
            "Hotel booking cancelled",
            extra={
                "hotel_booking_id": str(booking.id),
                "booking_reference": booking.booking_reference,
                "cancelled_by": str(user.id)
            }
        )

        return await self._reload(booking.id)

    async def _lock_and_check(self, room: Room, check_in, check_out, exclude_booking_id: UUID | None = None) -> None:
        await acquire_row_lock(self.db, f"room:{room.id}")

        remaining = await self.hotel_service.nightly_availability(
            room, check_in, check_out, exclude_booking_id=exclude_booking_id
        )
        unavailable = unavailable_nights(remaining)

        if unavailable:
            room_id = str(room.id)
            await self.db.rollback()
            logger.warning(
                "Hotel booking rejected - room unavailable",
                extra={
                    "room_id": room_id,
                    "unavailable_dates": [night.isoformat() for night in unavailable]
                }
            )
            metrics_collector.record_rejection("hotel", "room_unavailable")
            raise RoomUnavailableError(room_id, unavailable)

    def _notify_confirmed(self, booking: HotelBooking, room: Room, guest_id: UUID) -> None:
        hotel: Hotel = room.hotel
        self.notification_service.add(
            guest_id,
            f"Your booking {booking.booking_reference} at {hotel.name} is confirmed "
            f"({booking.check_in_date.isoformat()} to {booking.check_out_date.isoformat()})",
            NotificationType.BOOKING_CONFIRMATION
        )
        if hotel.owner_id != guest_id:
            self.notification_service.add(
                hotel.owner_id,
                f"New booking {booking.booking_reference} for {room.room_type} "
                f"from {booking.check_in_date.isoformat()} to {booking.check_out_date.isoformat()}",
                NotificationType.NEW_BOOKING
            )

    async def _reload(self, booking_id: UUID) -> HotelBooking:
        stmt = (
            select(HotelBooking)
            .options(*HOTEL_BOOKING_LOAD_OPTIONS)
            .where(HotelBooking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        return (await self.db.execute(stmt)).scalar_one()
