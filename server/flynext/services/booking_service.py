"""Flight booking service: multi-leg booking, lookup and cancellation."""

import logging
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.dependencies import Principal
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..core.identifiers import (
    BookingReferenceConflictError,
    allocate_booking_reference,
    flush_booking,
    generate_ticket_number,
    parse_id,
)
from ..core.observability import metrics_collector
from ..models.booking import Booking, BookingFlight, BookingStatus, LegStatus
from ..models.catalog import Airport
from ..models.flight import Flight, FlightStatus
from ..models.notification import NotificationType
from ..schemas.booking import CreateBookingRequest
from .availability import (
    LegsNotConsecutiveError,
    MixedCurrenciesError,
    SeatsUnavailableError,
    order_legs,
    single_currency,
    validate_itinerary,
)
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

BOOKING_LOAD_OPTIONS = (
    selectinload(Booking.legs).selectinload(BookingFlight.flight).selectinload(Flight.airline),
    selectinload(Booking.legs).selectinload(BookingFlight.flight)
    .selectinload(Flight.origin).selectinload(Airport.city),
    selectinload(Booking.legs).selectinload(BookingFlight.flight)
    .selectinload(Flight.destination).selectinload(Airport.city),
)


class FlightsNotFoundError(NotFoundError):
    """Exception when some requested flights do not exist."""

    def __init__(self, missing_ids: list[str]):
        super().__init__(
            resource_type="flight",
            detail="One or more flights not found"
        )
        self.problem_details["missing_flight_ids"] = missing_ids


class SeatsNoLongerAvailableError(ConflictError):
    """Exception when a seat decrement lost a race with another booking."""

    def __init__(self, flight_id: str):
        super().__init__(
            detail="Seats no longer available",
            conflicting_resource={"flight_id": flight_id}
        )
        self.problem_details.update({
            "code": "SEATS_TAKEN",
            "retryable": True
        })


class BookingAlreadyCancelledError(ValidationError):
    """Exception when cancelling a booking twice."""

    def __init__(self, booking_id: str):
        super().__init__(
            detail="Booking is already cancelled",
            extensions={"code": "ALREADY_CANCELLED", "booking_id": booking_id}
        )


class BookingService:
    """Service for flight booking operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.notification_service = NotificationService(db)

    async def get_booking_by_id(self, booking_id: UUID) -> Booking | None:
        stmt = select(Booking).options(*BOOKING_LOAD_OPTIONS).where(Booking.id == booking_id)
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def get_booking_by_id_or_raise(self, booking_id: UUID | str) -> Booking:
        if isinstance(booking_id, str):
            booking_id = parse_id(booking_id, "booking")

        booking = await self.get_booking_by_id(booking_id)
        if booking is None:
            raise NotFoundError("booking", str(booking_id))
        return booking

    async def get_booking_for_principal(self, booking_id: UUID, principal: Principal) -> Booking:
        """
        Get a booking the caller is allowed to see.

        Raises:
            NotFoundError: If the booking does not exist
            AuthorizationError: If the caller neither owns it nor is an admin
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)
        self._check_access(booking, principal)
        return booking

    async def list_bookings(self, principal: Principal, status: BookingStatus | None = None) -> list[Booking]:
        """List the caller's bookings, newest first."""
        stmt = select(Booking).options(*BOOKING_LOAD_OPTIONS)

        if principal.agency is not None:
            stmt = stmt.where(Booking.agency_id == principal.agency.id)
        else:
            stmt = stmt.where(Booking.user_id == principal.user.id)

        if status is not None:
            stmt = stmt.where(Booking.status == status)

        stmt = stmt.order_by(Booking.created_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def verify_booking(self, booking_reference: str, last_name: str) -> Booking:
        """
        Look a booking up by its reference and the passenger's last name.

        Both must match; the pair identifies the booking without an owner check.

        Raises:
            NotFoundError: If no booking matches both
        """
        stmt = (
            select(Booking)
            .options(*BOOKING_LOAD_OPTIONS)
            .where(
                Booking.booking_reference == booking_reference.strip().upper(),
                func.lower(Booking.last_name) == last_name.strip().lower()
            )
        )
        booking = (await self.db.execute(stmt)).scalar_one_or_none()

        if booking is None:
            logger.info("Booking verification failed", extra={"booking_reference": booking_reference})
            raise NotFoundError("booking", detail="No booking matches this reference and last name")

        return booking

    async def create_booking(self, request: CreateBookingRequest, principal: Principal) -> Booking:
        """
        Book one passenger onto a sequence of flights.

        The booking row, its leg links and every seat decrement are written in
        one transaction. A decrement only applies while the flight is still
        scheduled with a free seat, so two requests racing for the last seat
        cannot both succeed.

        Args:
            request: Passenger details and flight IDs
            principal: Agency or user making the booking

        Returns:
            The confirmed booking with its legs in departure order

        Raises:
            FlightsNotFoundError: If any flight ID does not exist (404)
            SeatsUnavailableError: If a flight is not bookable (400)
            LegsNotConsecutiveError: If two legs overlap in time (400)
            MixedCurrenciesError: If the flights are priced in different currencies (400)
            SeatsNoLongerAvailableError: If a seat was taken concurrently (409)
            BookingReferenceConflictError: If no unused reference could be stored (409)
        """
        booking = await self.stage_booking(request, principal)
        await self.db.commit()
        self.record_created(booking, principal)
        return await self._reload(booking.id)

    async def stage_booking(self, request: CreateBookingRequest, principal: Principal) -> Booking:
        """
        Validate the itinerary, add the booking and take the seats without committing.

        Any rejection rolls the session back before raising.
        """
        flight_ids = [parse_id(flight_id, "flight") for flight_id in request.flight_ids]

        stmt = (
            select(Flight)
            .where(Flight.id.in_(flight_ids))
            .order_by(Flight.departure_time)
            .with_for_update()
        )
        flights = list((await self.db.execute(stmt)).scalars().all())

        if len(flights) != len(flight_ids):
            found = {flight.id for flight in flights}
            missing = [str(flight_id) for flight_id in flight_ids if flight_id not in found]
            await self.db.rollback()
            logger.warning(
                "Booking rejected - flights not found",
                extra={"missing_flight_ids": missing, "principal": principal.kind}
            )
            metrics_collector.record_rejection("flight", "not_found")
            raise FlightsNotFoundError(missing)

        flights = order_legs(flights)
        ordered_ids = [str(flight.id) for flight in flights]

        try:
            validate_itinerary(flights)
            currency = single_currency(flight.price_currency for flight in flights)
        except (SeatsUnavailableError, LegsNotConsecutiveError, MixedCurrenciesError) as e:
            await self.db.rollback()
            if isinstance(e, SeatsUnavailableError):
                reason = "no_seats"
            elif isinstance(e, LegsNotConsecutiveError):
                reason = "not_consecutive"
            else:
                reason = "mixed_currencies"
            logger.warning(
                "Booking rejected - invalid itinerary",
                extra={
                    "reason": reason,
                    "flight_ids": ordered_ids,
                    "principal": principal.kind
                }
            )
            metrics_collector.record_rejection("flight", reason)
            raise

        try:
            reference = await allocate_booking_reference(self.db, Booking.booking_reference)
        except BookingReferenceConflictError:
            await self.db.rollback()
            raise

        booking = Booking(
            booking_reference=reference,
            ticket_number=generate_ticket_number(),
            first_name=request.first_name,
            last_name=request.last_name,
            email=request.email,
            passport_number=request.passport_number,
            status=BookingStatus.CONFIRMED,
            agency_id=principal.agency.id if principal.agency is not None else None,
            user_id=principal.user.id if principal.user is not None else None,
            total_price_amount=sum(flight.price_amount for flight in flights),
            price_currency=currency,
            legs=[
                BookingFlight(flight_id=flight.id, leg_index=index, status=LegStatus.CONFIRMED)
                for index, flight in enumerate(flights)
            ]
        )
        self.db.add(booking)
        await flush_booking(self.db, "flight")

        for flight, flight_id in zip(flights, ordered_ids):
            result = await self.db.execute(
                update(Flight)
                .where(
                    Flight.id == flight.id,
                    Flight.available_seats >= 1,
                    Flight.status == FlightStatus.SCHEDULED
                )
                .values(available_seats=Flight.available_seats - 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await self.db.rollback()
                logger.warning(
                    "Booking rolled back - seat taken concurrently",
                    extra={"flight_id": flight_id, "principal": principal.kind}
                )
                metrics_collector.record_rejection("flight", "seat_race")
                raise SeatsNoLongerAvailableError(flight_id)

        if principal.user is not None:
            self.notification_service.add(
                principal.user.id,
                f"Your flight booking {booking.booking_reference} is confirmed",
                NotificationType.BOOKING_CONFIRMATION
            )

        return booking

    def record_created(self, booking: Booking, principal: Principal) -> None:
        """Metrics and log line for a committed booking."""
        metrics_collector.record_flight_booking(len(booking.legs), principal.kind)
        logger.info(
            "Flight booking created",
            extra={
                "booking_id": str(booking.id),
                "booking_reference": booking.booking_reference,
                "legs": len(booking.legs),
                "flight_ids": [str(leg.flight_id) for leg in booking.legs],
                "principal": principal.kind
            }
        )

    async def cancel_booking(self, booking_id: UUID, principal: Principal) -> Booking:
        """
        Cancel a booking and give its seats back.

        Every leg that is still confirmed is marked cancelled and its flight
        regains one seat, capped at capacity. A cancelled booking cannot be
        cancelled again, so seats are restored exactly once.

        Raises:
            NotFoundError: If the booking does not exist
            AuthorizationError: If the caller neither owns it nor is an admin
            BookingAlreadyCancelledError: If the booking is already cancelled
        """
        if isinstance(booking_id, str):
            booking_id = parse_id(booking_id, "booking")

        stmt = (
            select(Booking)
            .options(selectinload(Booking.legs))
            .where(Booking.id == booking_id)
            .with_for_update()
        )
        booking = (await self.db.execute(stmt)).scalar_one_or_none()
        if booking is None:
            raise NotFoundError("booking", str(booking_id))

        self._check_access(booking, principal)

        if booking.status == BookingStatus.CANCELLED:
            await self.db.rollback()
            raise BookingAlreadyCancelledError(str(booking_id))

        restored = 0
        for leg in booking.legs:
            if leg.status == LegStatus.CANCELLED:
                continue
            leg.status = LegStatus.CANCELLED
            result = await self.db.execute(
                update(Flight)
                .where(Flight.id == leg.flight_id, Flight.available_seats < Flight.capacity)
                .values(available_seats=Flight.available_seats + 1)
                .execution_options(synchronize_session=False)
            )
            restored += result.rowcount

        booking.status = BookingStatus.CANCELLED

        if booking.user_id is not None:
            self.notification_service.add(
                booking.user_id,
                f"Your flight booking {booking.booking_reference} has been cancelled",
                NotificationType.BOOKING_CANCELLATION
            )

        await self.db.commit()

        metrics_collector.record_cancellation("flight")
        logger.info(
            "Flight booking cancelled",
            extra={
                "booking_id": str(booking.id),
                "booking_reference": booking.booking_reference,
                "seats_restored": restored,
                "cancelled_by": principal.kind
            }
        )

        return await self._reload(booking.id)

    async def _reload(self, booking_id: UUID) -> Booking:
        # populate_existing refreshes objects already in the identity map
        stmt = (
            select(Booking)
            .options(*BOOKING_LOAD_OPTIONS)
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        return (await self.db.execute(stmt)).scalar_one()

    @staticmethod
    def _check_access(booking: Booking, principal: Principal) -> None:
        if principal.is_admin:
            return
        if principal.agency is not None and booking.agency_id == principal.agency.id:
            return
        if principal.user is not None and booking.user_id == principal.user.id:
            return

        logger.warning(
            "Booking access denied",
            extra={"booking_id": str(booking.id), "principal": principal.kind}
        )
        raise AuthorizationError(detail="You do not have access to this booking")
