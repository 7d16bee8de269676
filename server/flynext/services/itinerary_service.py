"""Itinerary service: book flights and a hotel stay together, check out and cancel by part."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.dependencies import Principal
from ..core.exceptions import AuthorizationError, NotFoundError, ProblemDetailsException, ValidationError
from ..core.identifiers import allocate_booking_reference, flush_booking, parse_id
from ..core.observability import metrics_collector
from ..models.hotel import HotelBookingStatus
from ..models.itinerary import Itinerary, ItineraryComponent, ItineraryStatus
from ..models.user import User
from ..schemas.itinerary import CreateItineraryRequest
from .availability import single_currency
from .booking_service import BOOKING_LOAD_OPTIONS, BookingService
from .hotel_booking_service import HOTEL_BOOKING_LOAD_OPTIONS, HotelBookingService

logger = logging.getLogger(__name__)

ITINERARY_LOAD_OPTIONS = (
    selectinload(Itinerary.flight_booking).options(*BOOKING_LOAD_OPTIONS),
    selectinload(Itinerary.hotel_booking).options(*HOTEL_BOOKING_LOAD_OPTIONS),
)


class NothingToCheckOutError(ValidationError):
    """Exception when an itinerary has no pending part."""

    def __init__(self, itinerary_id: str):
        super().__init__(
            detail="Itinerary has nothing to check out",
            extensions={"code": "NOT_PENDING", "itinerary_id": itinerary_id}
        )


class ItineraryAlreadyCancelledError(ValidationError):
    """Exception when cancelling an itinerary whose parts are all cancelled."""

    def __init__(self, itinerary_id: str):
        super().__init__(
            detail="Itinerary is already cancelled",
            extensions={"code": "ALREADY_CANCELLED", "itinerary_id": itinerary_id}
        )


class ItineraryService:
    """Service for itinerary operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.booking_service = BookingService(db)
        self.hotel_booking_service = HotelBookingService(db)

    async def get_itinerary_by_id(self, itinerary_id: UUID) -> Itinerary | None:
        stmt = (
            select(Itinerary)
            .options(*ITINERARY_LOAD_OPTIONS)
            .where(Itinerary.id == itinerary_id)
            .execution_options(populate_existing=True)
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def get_itinerary_for_user(self, itinerary_id: UUID | str, user: User) -> Itinerary:
        """
        Get an itinerary the caller may see.

        Raises:
            NotFoundError: If the itinerary does not exist
            AuthorizationError: If the caller neither owns it nor is an admin
        """
        if isinstance(itinerary_id, str):
            itinerary_id = parse_id(itinerary_id, "itinerary")

        itinerary = await self.get_itinerary_by_id(itinerary_id)
        if itinerary is None:
            raise NotFoundError("itinerary", str(itinerary_id))

        if itinerary.user_id != user.id and not user.is_admin:
            logger.warning(
                "Itinerary access denied",
                extra={"itinerary_id": str(itinerary.id), "user_id": str(user.id)}
            )
            raise AuthorizationError(detail="You do not have access to this itinerary")

        return itinerary

    async def list_for_user(self, user: User, status: ItineraryStatus | None = None) -> list[Itinerary]:
        """List the user's itineraries, newest first."""
        stmt = (
            select(Itinerary)
            .options(*ITINERARY_LOAD_OPTIONS)
            .where(Itinerary.user_id == user.id)
            .order_by(Itinerary.created_at.desc())
        )
        itineraries = list((await self.db.execute(stmt)).scalars().all())

        # Status is derived from the parts, so it is filtered after loading
        if status is not None:
            itineraries = [itinerary for itinerary in itineraries if itinerary.status == status]
        return itineraries

    async def create_itinerary(self, request: CreateItineraryRequest, user: User) -> Itinerary:
        """
        Book the flight and hotel parts of a trip in one transaction.

        Each part goes through the same checks as booking it on its own. If
        any part is rejected nothing is stored and no seat is taken.

        Raises:
            Whatever booking either part on its own raises, and
            MixedCurrenciesError: If the parts are priced in different currencies (400)
        """
        principal = Principal(user=user)
        user_id = str(user.id)

        try:
            flight_booking = None
            if request.flight is not None:
                flight_booking = await self.booking_service.stage_booking(request.flight, principal)

            hotel_booking = None
            if request.hotel is not None:
                hotel_booking = await self.hotel_booking_service.stage_booking(request.hotel, user)

            parts = [part for part in (flight_booking, hotel_booking) if part is not None]
            single_currency(part.price_currency for part in parts)

            itinerary = Itinerary(
                booking_reference=await allocate_booking_reference(self.db, Itinerary.booking_reference),
                user_id=user.id,
                flight_booking=flight_booking,
                hotel_booking=hotel_booking
            )
            self.db.add(itinerary)
            await flush_booking(self.db, "itinerary")

        except ProblemDetailsException as e:
            await self.db.rollback()
            logger.warning(
                "Itinerary rejected",
                extra={"user_id": user_id, "status_code": e.status_code, "detail": e.problem_details.get("detail")}
            )
            metrics_collector.record_rejection("itinerary", e.problem_details.get("code", "rejected"))
            raise

        await self.db.commit()

        if flight_booking is not None:
            self.booking_service.record_created(flight_booking, principal)
        if hotel_booking is not None:
            self.hotel_booking_service.record_created(hotel_booking)

        components = "+".join(
            kind.value for kind, part in (
                (ItineraryComponent.FLIGHT, flight_booking),
                (ItineraryComponent.HOTEL, hotel_booking),
            ) if part is not None
        )
        metrics_collector.record_itinerary(components)
        logger.info(
            "Itinerary created",
            extra={
                "itinerary_id": str(itinerary.id),
                "booking_reference": itinerary.booking_reference,
                "components": components,
                "user_id": user_id
            }
        )

        return await self.get_itinerary_by_id(itinerary.id)

    async def checkout(self, itinerary_id: UUID, user: User) -> Itinerary:
        """
        Confirm the pending hotel part of an itinerary.

        Raises:
            NotFoundError: If the itinerary does not exist
            AuthorizationError: If the caller neither owns it nor is an admin
            NothingToCheckOutError: If no part is pending
            RoomUnavailableError: If the stay is no longer available (409)
        """
        itinerary = await self.get_itinerary_for_user(itinerary_id, user)
        hotel_booking = itinerary.hotel_booking

        if hotel_booking is None or hotel_booking.status != HotelBookingStatus.PENDING:
            raise NothingToCheckOutError(str(itinerary.id))

        await self.hotel_booking_service.confirm_booking(hotel_booking.id, user)

        logger.info(
            "Itinerary checked out",
            extra={"itinerary_id": str(itinerary.id), "booking_reference": itinerary.booking_reference}
        )
        return await self.get_itinerary_by_id(itinerary.id)

    async def cancel_component(self, itinerary_id: UUID, component: ItineraryComponent, user: User) -> Itinerary:
        """
        Cancel one part of an itinerary and release its inventory.

        Raises:
            NotFoundError: If the itinerary does not exist or has no such part
            AuthorizationError: If the caller neither owns it nor is an admin
            ValidationError: If that part is already cancelled
        """
        itinerary = await self.get_itinerary_for_user(itinerary_id, user)
        itinerary_key = str(itinerary.id)

        if component == ItineraryComponent.FLIGHT:
            if itinerary.booking_id is None:
                raise NotFoundError("flight booking", detail="This itinerary has no flight booking")
            await self.booking_service.cancel_booking(itinerary.booking_id, Principal(user=user))
        else:
            if itinerary.hotel_booking_id is None:
                raise NotFoundError("hotel booking", detail="This itinerary has no hotel booking")
            await self.hotel_booking_service.cancel_booking(itinerary.hotel_booking_id, user)

        logger.info(
            "Itinerary component cancelled",
            extra={"itinerary_id": itinerary_key, "component": component.value, "user_id": str(user.id)}
        )
        return await self.get_itinerary_by_id(UUID(itinerary_key))

    async def cancel_itinerary(self, itinerary_id: UUID, user: User) -> Itinerary:
        """
        Cancel every part of an itinerary that is still active.

        Raises:
            NotFoundError: If the itinerary does not exist
            AuthorizationError: If the caller neither owns it nor is an admin
            ItineraryAlreadyCancelledError: If every part is already cancelled
        """
        itinerary = await self.get_itinerary_for_user(itinerary_id, user)
        itinerary_key = str(itinerary.id)

        if itinerary.status == ItineraryStatus.CANCELLED:
            raise ItineraryAlreadyCancelledError(itinerary_key)

        active = [
            kind for kind, part in (
                (ItineraryComponent.FLIGHT, itinerary.flight_booking),
                (ItineraryComponent.HOTEL, itinerary.hotel_booking),
            ) if part is not None and part.status != ItineraryStatus.CANCELLED
        ]
        for kind in active:
            await self.cancel_component(UUID(itinerary_key), kind, user)

        return await self.get_itinerary_by_id(UUID(itinerary_key))
