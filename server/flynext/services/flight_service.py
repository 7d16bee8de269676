"""Flight service for scheduling, searching and status changes."""

import logging
from datetime import datetime, time, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased, selectinload

from ..core.exceptions import NotFoundError, ValidationError
from ..core.identifiers import parse_id
from ..models.booking import Booking, BookingFlight, LegStatus
from ..models.catalog import Airport
from ..models.flight import Flight, FlightStatus
from ..models.notification import NotificationType
from ..schemas.catalog import CreateFlightRequest, SearchFlightsRequest
from .catalog_service import CatalogService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

FLIGHT_LOAD_OPTIONS = (
    selectinload(Flight.airline),
    selectinload(Flight.origin).selectinload(Airport.city),
    selectinload(Flight.destination).selectinload(Airport.city),
)


class FlightService:
    """Service for flight-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.catalog_service = CatalogService(db)
        self.notification_service = NotificationService(db)

    async def get_flight_by_id(self, flight_id: UUID) -> Flight | None:
        stmt = select(Flight).options(*FLIGHT_LOAD_OPTIONS).where(Flight.id == flight_id)
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def get_flight_by_id_or_raise(self, flight_id: UUID | str) -> Flight:
        """
        Get flight by ID or raise NotFoundError.

        Raises:
            NotFoundError: If the flight does not exist
        """
        if isinstance(flight_id, str):
            flight_id = parse_id(flight_id, "flight")

        flight = await self.get_flight_by_id(flight_id)
        if flight is None:
            raise NotFoundError("flight", str(flight_id))
        return flight

    async def create_flight(self, request: CreateFlightRequest) -> Flight:
        """
        Schedule a new flight with a full cabin of available seats.

        Raises:
            NotFoundError: If the airline or either airport does not exist
        """
        airline = await self.catalog_service.get_airline_by_code_or_raise(request.airline_code)
        origin = await self.catalog_service.get_airport_by_code_or_raise(request.origin_code)
        destination = await self.catalog_service.get_airport_by_code_or_raise(request.destination_code)

        flight = Flight(
            flight_number=request.flight_number,
            airline_id=airline.id,
            origin_id=origin.id,
            destination_id=destination.id,
            departure_time=request.departure_time,
            arrival_time=request.arrival_time,
            price_amount=request.price.amount,
            price_currency=request.price.currency,
            capacity=request.capacity,
            available_seats=request.capacity,
            status=FlightStatus.SCHEDULED
        )

        self.db.add(flight)
        await self.db.commit()

        logger.info(
            "Flight scheduled",
            extra={
                "flight_id": str(flight.id),
                "flight_number": flight.flight_number,
                "origin": origin.code,
                "destination": destination.code,
                "departure_time": flight.departure_time.isoformat(),
                "capacity": flight.capacity
            }
        )

        return await self.get_flight_by_id_or_raise(flight.id)

    async def search_flights(self, request: SearchFlightsRequest) -> list[Flight]:
        """Search flights by route and departure day, earliest departure first."""
        origin = aliased(Airport)
        destination = aliased(Airport)

        stmt = (
            select(Flight)
            .options(*FLIGHT_LOAD_OPTIONS)
            .join(origin, Flight.origin_id == origin.id)
            .join(destination, Flight.destination_id == destination.id)
        )

        if request.origin:
            stmt = stmt.where(origin.code == request.origin.upper())
        if request.destination:
            stmt = stmt.where(destination.code == request.destination.upper())
        if request.departure_date:
            day_start = datetime.combine(request.departure_date, time.min)
            stmt = stmt.where(
                Flight.departure_time >= day_start,
                Flight.departure_time < day_start + timedelta(days=1)
            )
        if request.available_only:
            stmt = stmt.where(
                Flight.status == FlightStatus.SCHEDULED,
                Flight.available_seats > 0
            )

        stmt = stmt.order_by(Flight.departure_time).limit(request.limit)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def update_status(self, flight_id: UUID, status: FlightStatus) -> Flight:
        """
        Change a flight's operational status and notify booked users.

        Raises:
            NotFoundError: If the flight does not exist
            ValidationError: If the flight already has that status
        """
        flight = await self.get_flight_by_id_or_raise(flight_id)

        if flight.status == status:
            raise ValidationError(detail=f"Flight is already {status.value}")

        previous_status = flight.status
        flight.status = status

        # Users holding a confirmed seat on this flight
        stmt = (
            select(Booking.user_id)
            .join(BookingFlight, BookingFlight.booking_id == Booking.id)
            .where(
                BookingFlight.flight_id == flight.id,
                BookingFlight.status == LegStatus.CONFIRMED,
                Booking.user_id.is_not(None)
            )
            .distinct()
        )
        user_ids = list((await self.db.execute(stmt)).scalars().all())

        for user_id in user_ids:
            self.notification_service.add(
                user_id,
                f"Flight {flight.flight_number} on {flight.departure_time:%Y-%m-%d} is now {status.value}",
                NotificationType.FLIGHT_STATUS_CHANGE
            )

        await self.db.commit()

        logger.info(
            "Flight status changed",
            extra={
                "flight_id": str(flight.id),
                "previous_status": str(previous_status),
                "status": status.value,
                "notified_users": len(user_ids)
            }
        )

        return flight
