"""Flight router for schedules, search and external flight search."""

import logging
from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import AdminUser, CurrentUser
from ..core.exceptions import ProblemDetailsException, ValidationError
from ..models.flight import Flight as FlightModel
from ..models.user import User
from ..schemas.afs import ExternalFlightSearchResponse
from ..schemas.catalog import (
    AirlineSummary,
    AirportSummary,
    CreateFlightRequest,
    Flight,
    SearchFlightsRequest,
    UpdateFlightStatusRequest,
)
from ..schemas.common import Money
from ..services.afs_client import AFSClient, get_afs_client
from ..services.flight_service import FlightService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/flights", tags=["flights"])

DB_DEPENDENCY = Depends(get_db)
AFS_CLIENT_DEPENDENCY = Depends(get_afs_client)


def _convert_airport_to_summary(airport_model) -> AirportSummary:
    return AirportSummary(
        code=airport_model.code,
        name=airport_model.name,
        city=airport_model.city.name,
        country=airport_model.city.country
    )


def convert_flight_fields(flight_model: FlightModel) -> dict:
    """Flight response fields shared by flight and booked-flight schemas."""
    return {
        "id": str(flight_model.id),
        "flight_number": flight_model.flight_number,
        "departure_time": flight_model.departure_time,
        "arrival_time": flight_model.arrival_time,
        "duration_minutes": flight_model.duration_minutes,
        "price": Money(amount=flight_model.price_amount, currency=flight_model.price_currency),
        "capacity": flight_model.capacity,
        "available_seats": flight_model.available_seats,
        "status": flight_model.status,
        "airline": AirlineSummary(name=flight_model.airline.name, code=flight_model.airline.code),
        "origin": _convert_airport_to_summary(flight_model.origin),
        "destination": _convert_airport_to_summary(flight_model.destination),
    }


def _convert_flight_to_schema(flight_model: FlightModel) -> Flight:
    """Convert flight model to schema."""
    return Flight(**convert_flight_fields(flight_model))


@router.get("/afs-search", response_model=ExternalFlightSearchResponse)
async def search_external_flights(
    origin: str = Query(..., min_length=1, description="City name, partial city name or airport code"),
    destination: str = Query(..., min_length=1, description="City name, partial city name or airport code"),
    departure_date: date = Query(..., alias="date"),
    return_date: date | None = Query(None),
    user: User = CurrentUser,
    afs_client: AFSClient = AFS_CLIENT_DEPENDENCY
) -> JSONResponse:
    """
    Search flights in the Advanced Flights System.

    City names are autocompleted against the AFS city list before searching.
    With ``return_date`` the return leg is searched as well.
    """
    if return_date is not None and return_date < departure_date:
        raise ValidationError(detail="Return date must not be before departure date")

    resolved_origin = await afs_client.autocomplete_city(origin)
    resolved_destination = await afs_client.autocomplete_city(destination)

    if return_date is None:
        outbound = await afs_client.search_flights(resolved_origin, resolved_destination, departure_date)
        return_flights = None
    else:
        outbound, return_flights = await afs_client.search_round_trip(
            resolved_origin, resolved_destination, departure_date, return_date
        )

    logger.info(
        "External flight search completed",
        extra={
            "user_id": str(user.id),
            "origin": resolved_origin,
            "destination": resolved_destination,
            "date": departure_date.isoformat(),
            "round_trip": return_date is not None,
            "outbound_count": len(outbound)
        }
    )

    response_data = ExternalFlightSearchResponse(
        origin=resolved_origin,
        destination=resolved_destination,
        outbound=outbound,
        return_flights=return_flights
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.get("", response_model=list[Flight])
async def search_flights(
    origin: str | None = Query(None, pattern=r"^[A-Za-z]{3}$", description="Origin airport code"),
    destination: str | None = Query(None, pattern=r"^[A-Za-z]{3}$", description="Destination airport code"),
    departure_date: date | None = Query(None, alias="date"),
    available_only: bool = Query(True),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Search scheduled flights by route and day."""
    request = SearchFlightsRequest(
        origin=origin,
        destination=destination,
        departure_date=departure_date,
        available_only=available_only,
        limit=limit
    )
    flight_service = FlightService(db)

    try:
        flights = await flight_service.search_flights(request)
        return JSONResponse(
            status_code=200,
            content=[_convert_flight_to_schema(flight).model_dump(mode="json") for flight in flights]
        )

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error("Unexpected error in flight search", extra={"error": str(e)}, exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.get("/{flight_id}", response_model=Flight)
async def get_flight(flight_id: UUID, db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """Get flight details."""
    flight = await FlightService(db).get_flight_by_id_or_raise(flight_id)
    return JSONResponse(status_code=200, content=_convert_flight_to_schema(flight).model_dump(mode="json"))


@router.post("", response_model=Flight, status_code=201)
async def create_flight(
    request: CreateFlightRequest,
    admin: User = AdminUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Schedule a flight (admin only)."""
    flight_service = FlightService(db)

    try:
        flight = await flight_service.create_flight(request)
        return JSONResponse(status_code=201, content=_convert_flight_to_schema(flight).model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in flight creation",
            extra={"flight_number": request.flight_number, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.patch("/{flight_id}/status", response_model=Flight)
async def update_flight_status(
    flight_id: UUID,
    request: UpdateFlightStatusRequest,
    admin: User = AdminUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Change a flight's status (admin only); booked users are notified."""
    flight = await FlightService(db).update_status(flight_id, request.status)
    return JSONResponse(status_code=200, content=_convert_flight_to_schema(flight).model_dump(mode="json"))
