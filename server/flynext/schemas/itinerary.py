"""Itinerary schemas."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from ..models.itinerary import ItineraryStatus
from .booking import Booking, CreateBookingRequest
from .common import Money
from .hotel import CreateHotelBookingRequest, HotelBooking


class CreateItineraryRequest(BaseModel):
    """
    Request schema for booking a trip in one step.

    Either part may be left out. A hotel part sent with ``status=PENDING``
    stays in the cart until the itinerary is checked out.
    """

    flight: CreateBookingRequest | None = Field(None, description="Passenger and flights to book")
    hotel: CreateHotelBookingRequest | None = Field(None, description="Room and dates to book")

    @model_validator(mode="after")
    def check_components(self):
        if self.flight is None and self.hotel is None:
            raise ValueError("At least one of flight or hotel must be provided")
        return self


class Itinerary(BaseModel):
    """Itinerary response schema."""

    id: str
    booking_reference: str
    user_id: str
    status: ItineraryStatus
    total_price: Money = Field(..., description="Sum of the parts that are not cancelled")
    flight_booking: Booking | None = None
    hotel_booking: HotelBooking | None = None
    created_at: datetime
