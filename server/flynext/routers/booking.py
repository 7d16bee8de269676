"""Booking router for multi-leg flight bookings."""

import json
import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import CurrentPrincipal, Principal
from ..core.exceptions import ProblemDetailsException
from ..models.booking import Booking as BookingModel
from ..models.booking import BookingStatus
from ..schemas.booking import BookedFlight, Booking, CreateBookingRequest
from ..schemas.common import Money
from ..services.booking_service import BookingService
from ..services.idempotency_service import IdempotencyService
from .flight import convert_flight_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["bookings"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)
IDEMPOTENCY_KEY_DEPENDENCY = Header(None, alias="Idempotency-Key")


def convert_booking_to_schema(booking_model: BookingModel) -> Booking:
    """Convert booking model to schema."""
    return Booking(
        id=str(booking_model.id),
        booking_reference=booking_model.booking_reference,
        ticket_number=booking_model.ticket_number,
        first_name=booking_model.first_name,
        last_name=booking_model.last_name,
        email=booking_model.email,
        passport_number=booking_model.passport_number,
        status=booking_model.status,
        agency_id=str(booking_model.agency_id) if booking_model.agency_id else None,
        user_id=str(booking_model.user_id) if booking_model.user_id else None,
        total_price=Money(amount=booking_model.total_price_amount, currency=booking_model.price_currency),
        flights=[
            BookedFlight(
                **convert_flight_fields(leg.flight),
                leg_index=leg.leg_index,
                leg_status=leg.status
            )
            for leg in booking_model.legs
        ],
        created_at=booking_model.created_at
    )


def _idempotency_scope(principal: Principal) -> str:
    if principal.agency is not None:
        return f"agency:{principal.agency.id}"
    return f"user:{principal.user.id}"


async def _handle_idempotent_operation(
    method: str,
    idempotency_key: str,
    scope: str,
    request_body: dict[str, Any],
    operation_func,
    db: AsyncSession
) -> JSONResponse:
    """Handle idempotent operation with caching."""
    idempotency_service = IdempotencyService(db)

    cached_response = await idempotency_service.check_idempotency(
        idempotency_key=idempotency_key,
        scope=scope,
        method=method,
        request_body=request_body
    )

    if cached_response:
        status_code, response_body = cached_response
        return JSONResponse(status_code=status_code, content=response_body)

    try:
        result = await operation_func()

    except ProblemDetailsException as e:
        # Retryable failures are not cached so a retry with the same key can succeed
        if not e.problem_details.get("retryable"):
            await idempotency_service.store_response(
                idempotency_key=idempotency_key,
                scope=scope,
                method=method,
                request_body=request_body,
                status_code=e.status_code,
                response_body=e.problem_details
            )
        raise

    await idempotency_service.store_response(
        idempotency_key=idempotency_key,
        scope=scope,
        method=method,
        request_body=request_body,
        status_code=result.status_code,
        response_body=json.loads(result.body)
    )
    return result


@router.post("", response_model=Booking, status_code=201)
async def create_booking(
    request: CreateBookingRequest,
    principal: Principal = CurrentPrincipal,
    db: AsyncSession = DB_DEPENDENCY,
    idempotency_key: str | None = IDEMPOTENCY_KEY_DEPENDENCY
) -> JSONResponse:
    """
    Book a passenger onto one or more consecutive flights.

    Callable by agencies (``x-api-key``) and users (bearer token). When an
    Idempotency-Key header is sent, a retried request returns the stored
    response instead of booking twice.
    """
    booking_service = BookingService(db)
    scope = _idempotency_scope(principal)

    async def operation() -> JSONResponse:
        booking = await booking_service.create_booking(request, principal)
        response_data = convert_booking_to_schema(booking)

        logger.info(
            "Booking created successfully",
            extra={
                "booking_id": str(booking.id),
                "booking_reference": booking.booking_reference,
                "legs": len(booking.legs),
                "principal": scope,
                "idempotency_key": idempotency_key
            }
        )

        return JSONResponse(status_code=201, content=response_data.model_dump(mode="json"))

    try:
        if idempotency_key is None:
            return await operation()

        return await _handle_idempotent_operation(
            method="bookings/create",
            idempotency_key=idempotency_key,
            scope=scope,
            request_body=request.model_dump(mode="json"),
            operation_func=operation,
            db=db
        )

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in booking creation",
            extra={
                "flight_ids": request.flight_ids,
                "principal": scope,
                "idempotency_key": idempotency_key,
                "error": str(e)
            },
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.get("", response_model=list[Booking])
async def list_bookings(
    status: BookingStatus | None = Query(None),
    principal: Principal = CurrentPrincipal,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """List the caller's flight bookings, newest first."""
    bookings = await BookingService(db).list_bookings(principal, status)
    return JSONResponse(
        status_code=200,
        content=[convert_booking_to_schema(booking).model_dump(mode="json") for booking in bookings]
    )


@router.get("/verify", response_model=Booking)
async def verify_booking(
    booking_reference: str = Query(..., min_length=6, max_length=6),
    last_name: str = Query(..., min_length=1, max_length=100),
    principal: Principal = CurrentPrincipal,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Find a booking by reference and passenger last name.

    Used at check-in and by agents assisting a passenger; the caller need not own the booking.
    """
    booking = await BookingService(db).verify_booking(booking_reference, last_name)
    return JSONResponse(status_code=200, content=convert_booking_to_schema(booking).model_dump(mode="json"))


@router.get("/{booking_id}", response_model=Booking)
async def get_booking(
    booking_id: UUID,
    principal: Principal = CurrentPrincipal,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Get a booking owned by the caller."""
    booking = await BookingService(db).get_booking_for_principal(booking_id, principal)
    return JSONResponse(status_code=200, content=convert_booking_to_schema(booking).model_dump(mode="json"))


@router.delete("/{booking_id}", response_model=Booking)
async def cancel_booking(
    booking_id: UUID,
    principal: Principal = CurrentPrincipal,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Cancel a booking and release its seats.

    Allowed for the agency or user that made the booking and for admins.
    """
    booking_service = BookingService(db)
    scope = _idempotency_scope(principal)

    try:
        booking = await booking_service.cancel_booking(booking_id, principal)

        logger.info(
            "Booking cancelled successfully",
            extra={
                "booking_id": str(booking_id),
                "booking_reference": booking.booking_reference,
                "principal": scope
            }
        )

        return JSONResponse(status_code=200, content=convert_booking_to_schema(booking).model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in booking cancellation",
            extra={"booking_id": str(booking_id), "principal": scope, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e
