"""Hotel booking router: book, confirm cart items, list and cancel."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import CurrentUser
from ..core.exceptions import ProblemDetailsException
from ..models.hotel import HotelBooking as HotelBookingModel
from ..models.hotel import HotelBookingStatus
from ..models.user import User
from ..schemas.common import Money
from ..schemas.hotel import CreateHotelBookingRequest, HotelBooking
from ..services.hotel_booking_service import HotelBookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/hotels/bookings", tags=["hotel-bookings"])

DB_DEPENDENCY = Depends(get_db)


def convert_hotel_booking_to_schema(booking_model: HotelBookingModel) -> HotelBooking:
    """Convert hotel booking model to schema."""
    return HotelBooking(
        id=str(booking_model.id),
        booking_reference=booking_model.booking_reference,
        user_id=str(booking_model.user_id),
        hotel_id=str(booking_model.hotel_id),
        hotel_name=booking_model.hotel.name,
        room_id=str(booking_model.room_id),
        room_type=booking_model.room.room_type,
        check_in_date=booking_model.check_in_date,
        check_out_date=booking_model.check_out_date,
        nights=booking_model.nights,
        guest_count=booking_model.guest_count,
        total_price=Money(amount=booking_model.price_amount, currency=booking_model.price_currency),
        guest_details=booking_model.guest_details,
        status=booking_model.status,
        created_at=booking_model.created_at
    )


@router.post("", response_model=HotelBooking, status_code=201)
async def create_hotel_booking(
    request: CreateHotelBookingRequest,
    user: User = CurrentUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Book a room for a date range.

    Every night of the stay must have a free unit, otherwise the request
    fails with 409 and lists the unavailable dates. ``status=PENDING`` puts
    the stay in the cart without reserving it.
    """
    hotel_booking_service = HotelBookingService(db)
    user_id = str(user.id)

    try:
        booking = await hotel_booking_service.create_booking(request, user)

        logger.info(
            "Hotel booking created successfully",
            extra={
                "hotel_booking_id": str(booking.id),
                "room_id": request.room_id,
                "user_id": user_id,
                "status": str(booking.status)
            }
        )

        return JSONResponse(
            status_code=201,
            content=convert_hotel_booking_to_schema(booking).model_dump(mode="json")
        )

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in hotel booking creation",
            extra={"room_id": request.room_id, "user_id": user_id, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.get("", response_model=list[HotelBooking])
async def list_hotel_bookings(
    status: HotelBookingStatus | None = Query(None),
    user: User = CurrentUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """List the caller's hotel bookings, newest first."""
    bookings = await HotelBookingService(db).list_for_user(user, status)
    return JSONResponse(
        status_code=200,
        content=[convert_hotel_booking_to_schema(booking).model_dump(mode="json") for booking in bookings]
    )


@router.post("/{booking_id}/confirm", response_model=HotelBooking)
async def confirm_hotel_booking(
    booking_id: UUID,
    user: User = CurrentUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Confirm a pending (cart) booking after re-checking availability."""
    booking = await HotelBookingService(db).confirm_booking(booking_id, user)
    return JSONResponse(status_code=200, content=convert_hotel_booking_to_schema(booking).model_dump(mode="json"))


@router.delete("/{booking_id}", response_model=HotelBooking)
async def cancel_hotel_booking(
    booking_id: UUID,
    user: User = CurrentUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Cancel a hotel booking (guest, hotel owner or admin)."""
    user_id = str(user.id)

    try:
        booking = await HotelBookingService(db).cancel_booking(booking_id, user)

        logger.info(
            "Hotel booking cancelled successfully",
            extra={"hotel_booking_id": str(booking_id), "user_id": user_id}
        )

        return JSONResponse(
            status_code=200,
            content=convert_hotel_booking_to_schema(booking).model_dump(mode="json")
        )

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in hotel booking cancellation",
            extra={"hotel_booking_id": str(booking_id), "user_id": user_id, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e
