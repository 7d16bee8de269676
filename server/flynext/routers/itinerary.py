"""Itinerary router: book a trip, check it out and cancel it part by part."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import CurrentUser
from ..core.exceptions import ProblemDetailsException
from ..models.booking import BookingStatus
from ..models.itinerary import Itinerary as ItineraryModel
from ..models.itinerary import ItineraryComponent, ItineraryStatus
from ..models.user import User
from ..schemas.common import Money
from ..schemas.itinerary import CreateItineraryRequest, Itinerary
from ..services.itinerary_service import ItineraryService
from .booking import convert_booking_to_schema
from .hotel_booking import convert_hotel_booking_to_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/itineraries", tags=["itineraries"])

DB_DEPENDENCY = Depends(get_db)


def _total_price(itinerary_model: ItineraryModel) -> Money:
    flight_booking = itinerary_model.flight_booking
    hotel_booking = itinerary_model.hotel_booking

    amount = 0
    if flight_booking is not None and flight_booking.status != BookingStatus.CANCELLED:
        amount += flight_booking.total_price_amount
    if hotel_booking is not None and hotel_booking.status != BookingStatus.CANCELLED:
        amount += hotel_booking.price_amount

    # Parts share one currency; creation rejects anything else
    currency = itinerary_model.components[0].price_currency
    return Money(amount=amount, currency=currency)


def convert_itinerary_to_schema(itinerary_model: ItineraryModel) -> Itinerary:
    """Convert itinerary model to schema."""
    flight_booking = itinerary_model.flight_booking
    hotel_booking = itinerary_model.hotel_booking

    return Itinerary(
        id=str(itinerary_model.id),
        booking_reference=itinerary_model.booking_reference,
        user_id=str(itinerary_model.user_id),
        status=itinerary_model.status,
        total_price=_total_price(itinerary_model),
        flight_booking=convert_booking_to_schema(flight_booking) if flight_booking is not None else None,
        hotel_booking=convert_hotel_booking_to_schema(hotel_booking) if hotel_booking is not None else None,
        created_at=itinerary_model.created_at
    )


def _itinerary_response(itinerary: ItineraryModel, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=convert_itinerary_to_schema(itinerary).model_dump(mode="json"))


@router.post("", response_model=Itinerary, status_code=201)
async def create_itinerary(
    request: CreateItineraryRequest,
    user: User = CurrentUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Book flights and a hotel stay together.

    Both parts are stored in one transaction: if either is rejected, neither
    is booked.
    """
    user_id = str(user.id)

    try:
        itinerary = await ItineraryService(db).create_itinerary(request, user)

        logger.info(
            "Itinerary created successfully",
            extra={
                "itinerary_id": str(itinerary.id),
                "booking_reference": itinerary.booking_reference,
                "user_id": user_id
            }
        )

        return _itinerary_response(itinerary, status_code=201)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in itinerary creation",
            extra={"user_id": user_id, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.get("", response_model=list[Itinerary])
async def list_itineraries(
    status: ItineraryStatus | None = Query(None),
    user: User = CurrentUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """List the caller's itineraries, newest first. ``status=PENDING`` lists drafts."""
    itineraries = await ItineraryService(db).list_for_user(user, status)
    return JSONResponse(
        status_code=200,
        content=[convert_itinerary_to_schema(itinerary).model_dump(mode="json") for itinerary in itineraries]
    )


@router.get("/{itinerary_id}", response_model=Itinerary)
async def get_itinerary(
    itinerary_id: UUID,
    user: User = CurrentUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    itinerary = await ItineraryService(db).get_itinerary_for_user(itinerary_id, user)
    return _itinerary_response(itinerary)


@router.post("/{itinerary_id}/checkout", response_model=Itinerary)
async def checkout_itinerary(
    itinerary_id: UUID,
    user: User = CurrentUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Confirm the pending hotel stay of an itinerary after re-checking availability."""
    itinerary = await ItineraryService(db).checkout(itinerary_id, user)
    return _itinerary_response(itinerary)


@router.delete("/{itinerary_id}/components/{component}", response_model=Itinerary)
async def cancel_itinerary_component(
    itinerary_id: UUID,
    component: ItineraryComponent,
    user: User = CurrentUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Cancel the flight or the hotel part of an itinerary and keep the rest."""
    itinerary = await ItineraryService(db).cancel_component(itinerary_id, component, user)
    return _itinerary_response(itinerary)


@router.delete("/{itinerary_id}", response_model=Itinerary)
async def cancel_itinerary(
    itinerary_id: UUID,
    user: User = CurrentUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Cancel every active part of an itinerary."""
    user_id = str(user.id)

    try:
        itinerary = await ItineraryService(db).cancel_itinerary(itinerary_id, user)

        logger.info(
            "Itinerary cancelled successfully",
            extra={"itinerary_id": str(itinerary_id), "user_id": user_id}
        )

        return _itinerary_response(itinerary)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in itinerary cancellation",
            extra={"itinerary_id": str(itinerary_id), "user_id": user_id, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e
